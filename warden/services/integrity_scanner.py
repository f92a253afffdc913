"""Read-only referential-integrity scan of the user graph.

The scan is a fixed, ordered sequence of independent checks. Each check
returns its issues; the scanner keeps no state between scans, so one
instance (or several) can serve concurrent requests.
"""

import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, and_, exists, func, or_, select, true
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import SchemaCapabilities
from warden.core.errors import TransientSchemaError
from warden.models import City, Country, DeletedUser, State, User, UserAttributes, UserPreferences
from warden.schemas.integrity import IntegrityReport, Issue, IssueType, Severity
from warden.services.dependents import DEPENDENT_TABLES

logger = logging.getLogger(__name__)

VALID_GENDERS = ("m", "male", "f", "female", "other", "non-binary")
EARLIEST_BIRTHDATE = date(1900, 1, 1)
MAX_AGE = 120


def completed_years(birthdate: date, today: date) -> int:
    """Whole years between ``birthdate`` and ``today`` (negative for future dates)."""
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years


def years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return today.replace(year=today.year - years, day=28)


def not_tombstoned(capabilities: SchemaCapabilities, user_id: Any) -> ColumnElement[bool]:
    """Exclude users that already have a tombstone."""
    if not capabilities.has(DeletedUser.__tablename__):
        return true()
    return ~exists(select(DeletedUser.id).where(DeletedUser.deleted_user_id == user_id))


@dataclass(frozen=True)
class IntegrityCheck:
    name: str
    tables: tuple[str, ...]
    run: Callable[["IntegrityScanner", date], Awaitable[list[Issue]]]


class IntegrityScanner:
    """Runs every integrity check and returns an ``IntegrityReport``."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities) -> None:
        self.db = db
        self.capabilities = capabilities

    async def scan(self, today: date | None = None) -> IntegrityReport:
        """Run all checks in order.

        A check whose tables are missing, or that fails on schema drift, is
        skipped and named in ``summary.skipped_checks``; the rest still run.
        """
        today = today or date.today()
        issues: list[Issue] = []
        skipped: list[str] = []

        for check in CHECKS:
            missing = self.capabilities.missing(check.tables)
            if missing:
                logger.warning(
                    "Skipping integrity check %s: missing tables %s",
                    check.name,
                    ", ".join(missing),
                )
                skipped.append(check.name)
                continue

            try:
                found = await self._run(check, today)
            except TransientSchemaError as e:
                logger.warning("Skipping integrity check %s: %s", check.name, e.message)
                skipped.append(check.name)
                continue

            logger.debug("Integrity check %s found %d issue(s)", check.name, len(found))
            issues.extend(found)

        report = IntegrityReport.from_issues(issues, skipped)
        logger.info(
            "Integrity scan finished: %d issue(s), %d high, %d medium, %d low, %d check(s) skipped",
            report.summary.total_issues,
            report.summary.high_severity,
            report.summary.medium_severity,
            report.summary.low_severity,
            len(skipped),
        )
        return report

    async def _run(self, check: IntegrityCheck, today: date) -> list[Issue]:
        try:
            return await check.run(self, today)
        except (ProgrammingError, OperationalError) as e:
            # Leave the session usable for the next check
            await self.db.rollback()
            raise TransientSchemaError(
                f"{check.name} failed against this schema", cause=str(e.orig)
            ) from e

    # --- Helpers ---

    def _live(self, user_id: Any) -> ColumnElement[bool]:
        return not_tombstoned(self.capabilities, user_id)

    async def _rows(self, stmt: Any) -> list[Any]:
        result = await self.db.execute(stmt)
        return list(result.all())

    # --- Checks ---

    async def check_orphaned_country_ids(self, today: date) -> list[Issue]:
        return await self._orphaned_location_ids(User.country_id, Country, "country_id")

    async def check_orphaned_state_ids(self, today: date) -> list[Issue]:
        return await self._orphaned_location_ids(User.state_id, State, "state_id")

    async def check_orphaned_city_ids(self, today: date) -> list[Issue]:
        return await self._orphaned_location_ids(User.city_id, City, "city_id")

    async def _orphaned_location_ids(self, column: Any, lookup: Any, label: str) -> list[Issue]:
        rows = await self._rows(
            select(User.id, User.email, column)
            .where(
                column.is_not(None),
                ~exists(select(lookup.id).where(lookup.id == column)),
                self._live(User.id),
            )
            .order_by(User.id)
        )
        return [
            Issue(
                type=IssueType.ORPHANED_FOREIGN_KEY,
                severity=Severity.HIGH,
                user_id=row.id,
                email=row.email,
                message=f"Invalid {label}: {row[2]}",
            )
            for row in rows
        ]

    async def check_invalid_dates(self, today: date) -> list[Issue]:
        future = await self._rows(
            select(User.id, User.email, User.birthdate)
            .where(User.birthdate > today, self._live(User.id))
            .order_by(User.id)
        )
        ancient = await self._rows(
            select(User.id, User.email, User.birthdate)
            .where(User.birthdate < EARLIEST_BIRTHDATE, self._live(User.id))
            .order_by(User.id)
        )
        return [
            Issue(
                type=IssueType.INVALID_DATE,
                severity=Severity.HIGH,
                user_id=row.id,
                email=row.email,
                message=f"Future birthdate: {row.birthdate.isoformat()}",
            )
            for row in future
        ] + [
            Issue(
                type=IssueType.INVALID_DATE,
                severity=Severity.MEDIUM,
                user_id=row.id,
                email=row.email,
                message=f"Very old birthdate: {row.birthdate.isoformat()}",
            )
            for row in ancient
        ]

    async def check_invalid_ages(self, today: date) -> list[Issue]:
        oldest_allowed = years_before(today, MAX_AGE + 1)
        rows = await self._rows(
            select(User.id, User.email, User.birthdate)
            .where(
                User.birthdate.is_not(None),
                or_(User.birthdate > today, User.birthdate <= oldest_allowed),
                self._live(User.id),
            )
            .order_by(User.id)
        )
        issues = []
        for row in rows:
            age = completed_years(row.birthdate, today)
            issues.append(
                Issue(
                    type=IssueType.INVALID_AGE,
                    severity=Severity.HIGH,
                    user_id=row.id,
                    email=row.email,
                    message=f"Invalid age: {age} (birthdate: {row.birthdate.isoformat()})",
                )
            )
        return issues

    async def check_missing_required_fields(self, today: date) -> list[Issue]:
        no_email = await self._rows(
            select(User.id, User.email)
            .where(or_(User.email.is_(None), User.email == ""), self._live(User.id))
            .order_by(User.id)
        )
        no_name = await self._rows(
            select(User.id, User.email)
            .where(or_(User.real_name.is_(None), User.real_name == ""), self._live(User.id))
            .order_by(User.id)
        )
        return [
            Issue(
                type=IssueType.MISSING_REQUIRED_FIELD,
                severity=Severity.HIGH,
                user_id=row.id,
                email=row.email or None,
                message="Missing email",
            )
            for row in no_email
        ] + [
            Issue(
                type=IssueType.MISSING_REQUIRED_FIELD,
                severity=Severity.MEDIUM,
                user_id=row.id,
                email=row.email or None,
                message="Missing real_name",
            )
            for row in no_name
        ]

    async def check_duplicate_emails(self, today: date) -> list[Issue]:
        has_email = and_(User.email.is_not(None), User.email != "", self._live(User.id))
        duplicated = (
            select(User.email).where(has_email).group_by(User.email).having(func.count() > 1)
        )
        rows = await self._rows(
            select(User.id, User.email)
            .where(has_email, User.email.in_(duplicated))
            .order_by(User.email, User.id)
        )
        counts = Counter(row.email for row in rows)
        return [
            Issue(
                type=IssueType.DUPLICATE_EMAIL,
                severity=Severity.HIGH,
                user_id=row.id,
                email=row.email,
                message=f"Duplicate email: {row.email} ({counts[row.email]} users)",
            )
            for row in rows
        ]

    async def check_invalid_gender(self, today: date) -> list[Issue]:
        rows = await self._rows(
            select(User.id, User.email, User.gender)
            .where(
                User.gender.is_not(None),
                func.lower(User.gender).not_in(VALID_GENDERS),
                self._live(User.id),
            )
            .order_by(User.id)
        )
        return [
            Issue(
                type=IssueType.INVALID_GENDER,
                severity=Severity.LOW,
                user_id=row.id,
                email=row.email,
                message=f'Unexpected gender value: "{row.gender}"',
            )
            for row in rows
        ]

    async def check_orphaned_records(self, today: date) -> list[Issue]:
        issues: list[Issue] = []
        for table in DEPENDENT_TABLES:
            if not self.capabilities.has(table.name):
                logger.debug("Orphan check: table %s not present", table.name)
                continue

            seen: set[int] = set()
            for column in table.columns():
                rows = await self._rows(
                    select(column)
                    .distinct()
                    .where(
                        column.is_not(None),
                        ~exists(select(User.id).where(User.id == column)),
                    )
                    .order_by(column)
                )
                for (user_id,) in rows:
                    if user_id in seen:
                        continue
                    seen.add(user_id)
                    issues.append(
                        Issue(
                            type=IssueType.ORPHANED_RECORD,
                            severity=table.severity,
                            user_id=user_id,
                            message=f"Orphaned {table.name} record",
                        )
                    )
        return issues

    async def check_state_references(self, today: date) -> list[Issue]:
        rows = await self._rows(
            select(User.id, User.email, User.country_id, User.state_id)
            .join(State, State.id == User.state_id)
            .where(
                User.country_id.is_not(None),
                State.country_id != User.country_id,
                self._live(User.id),
            )
            .order_by(User.id)
        )
        return [
            Issue(
                type=IssueType.INVALID_LOCATION_REFERENCE,
                severity=Severity.HIGH,
                user_id=row.id,
                email=row.email,
                message=f"State {row.state_id} does not belong to country {row.country_id}",
            )
            for row in rows
        ]

    async def check_city_references(self, today: date) -> list[Issue]:
        rows = await self._rows(
            select(User.id, User.email, User.state_id, User.city_id)
            .join(City, City.id == User.city_id)
            .where(
                User.state_id.is_not(None),
                City.state_id != User.state_id,
                self._live(User.id),
            )
            .order_by(User.id)
        )
        return [
            Issue(
                type=IssueType.INVALID_LOCATION_REFERENCE,
                severity=Severity.HIGH,
                user_id=row.id,
                email=row.email,
                message=f"City {row.city_id} does not belong to state {row.state_id}",
            )
            for row in rows
        ]

    async def check_inconsistent_data(self, today: date) -> list[Issue]:
        missing_preferences = await self._rows(
            select(User.id, User.email)
            .where(
                exists(select(UserAttributes.id).where(UserAttributes.user_id == User.id)),
                ~exists(select(UserPreferences.id).where(UserPreferences.user_id == User.id)),
                self._live(User.id),
            )
            .order_by(User.id)
        )
        inverted = await self._rows(
            select(UserPreferences.user_id, User.email, UserPreferences.age_min, UserPreferences.age_max)
            .join(User, User.id == UserPreferences.user_id)
            .where(
                UserPreferences.age_min.is_not(None),
                UserPreferences.age_max.is_not(None),
                UserPreferences.age_min > UserPreferences.age_max,
                self._live(User.id),
            )
            .order_by(UserPreferences.user_id)
        )
        return [
            Issue(
                type=IssueType.INCONSISTENT_DATA,
                severity=Severity.LOW,
                user_id=row.id,
                email=row.email,
                message="Has user_attributes but no user_preferences",
            )
            for row in missing_preferences
        ] + [
            Issue(
                type=IssueType.INVALID_AGE_PREFERENCES,
                severity=Severity.MEDIUM,
                user_id=row.user_id,
                email=row.email,
                message=f"Invalid age range: min={row.age_min} > max={row.age_max}",
            )
            for row in inverted
        ]


CHECKS: tuple[IntegrityCheck, ...] = (
    IntegrityCheck(
        "orphaned_country_ids", ("users", "country"), IntegrityScanner.check_orphaned_country_ids
    ),
    IntegrityCheck(
        "orphaned_state_ids", ("users", "state"), IntegrityScanner.check_orphaned_state_ids
    ),
    IntegrityCheck("orphaned_city_ids", ("users", "city"), IntegrityScanner.check_orphaned_city_ids),
    IntegrityCheck("invalid_dates", ("users",), IntegrityScanner.check_invalid_dates),
    IntegrityCheck("invalid_ages", ("users",), IntegrityScanner.check_invalid_ages),
    IntegrityCheck(
        "missing_required_fields", ("users",), IntegrityScanner.check_missing_required_fields
    ),
    IntegrityCheck("duplicate_emails", ("users",), IntegrityScanner.check_duplicate_emails),
    IntegrityCheck("invalid_gender", ("users",), IntegrityScanner.check_invalid_gender),
    IntegrityCheck("orphaned_records", ("users",), IntegrityScanner.check_orphaned_records),
    IntegrityCheck(
        "invalid_state_references", ("users", "state"), IntegrityScanner.check_state_references
    ),
    IntegrityCheck(
        "invalid_city_references", ("users", "city"), IntegrityScanner.check_city_references
    ),
    IntegrityCheck(
        "inconsistent_data",
        ("users", "user_attributes", "user_preferences"),
        IntegrityScanner.check_inconsistent_data,
    ),
)
