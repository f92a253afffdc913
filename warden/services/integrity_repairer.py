"""Automatic repair of the integrity issues that have one safe answer.

Only three fixes are ever applied:

* a state that does not belong to the user's country is cleared, and a city
  that does not belong to the user's state is cleared;
* inverted age preferences are put back in order;
* users with profile attributes but no preferences get default preferences.

Everything else the scanner reports (duplicate emails, invalid genders,
impossible ages, missing identity fields) needs a human and is left alone.
"""

import logging
from datetime import date

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import SchemaCapabilities
from warden.core.errors import TransactionFailure
from warden.models import City, State, User, UserAttributes, UserPreferences
from warden.schemas.integrity import RepairFixes, RepairResult
from warden.services.integrity_scanner import IntegrityScanner, not_tombstoned

logger = logging.getLogger(__name__)

DEFAULT_AGE_MIN = 18
DEFAULT_AGE_MAX = 65
DEFAULT_LOCATION_RADIUS = 0


class IntegrityRepairer:
    """Applies the automatic fixes in one transaction, then re-scans."""

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities) -> None:
        self.db = db
        self.capabilities = capabilities

    async def repair(self, today: date | None = None) -> RepairResult:
        """Apply every fix and return the counts plus the residual report.

        Raises:
            TransactionFailure: if any statement fails. No fix is kept.
        """
        fixes = RepairFixes()
        try:
            if self.capabilities.has_all(("users", "state", "city")):
                await self._fix_locations(fixes)
            if self.capabilities.has_all(("users", "user_preferences")):
                await self._fix_age_preferences(fixes)
            if self.capabilities.has_all(("users", "user_attributes", "user_preferences")):
                await self._create_missing_preferences(fixes)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Integrity repair failed, all fixes rolled back")
            raise TransactionFailure(
                "Integrity repair failed; no fixes were applied", cause=str(e)
            ) from e

        logger.info(
            "Integrity repair committed: %d state(s) cleared, %d city(ies) cleared, "
            "%d age range(s) swapped, %d preference row(s) created",
            fixes.state_cleared,
            fixes.city_cleared,
            fixes.age_preferences_swapped,
            fixes.preferences_created,
        )

        report = await IntegrityScanner(self.db, self.capabilities).scan(today)
        return RepairResult(fixes=fixes, report=report)

    async def _fix_locations(self, fixes: RepairFixes) -> None:
        # Both decisions use the row as read: a city is judged against the
        # user's original state even when that state is being cleared.
        state_country = State.country_id.label("state_country_id")
        city_state = City.state_id.label("city_state_id")
        result = await self.db.execute(
            select(User.id, User.country_id, User.state_id, User.city_id, state_country, city_state)
            .outerjoin(State, State.id == User.state_id)
            .outerjoin(City, City.id == User.city_id)
            .where(
                or_(
                    and_(User.country_id.is_not(None), State.country_id != User.country_id),
                    and_(User.state_id.is_not(None), City.state_id != User.state_id),
                ),
                not_tombstoned(self.capabilities, User.id),
            )
            .order_by(User.id)
        )

        for row in result.all():
            values: dict[str, None] = {}
            if (
                row.country_id is not None
                and row.state_country_id is not None
                and row.state_country_id != row.country_id
            ):
                values["state_id"] = None
                fixes.state_cleared += 1
            if (
                row.state_id is not None
                and row.city_state_id is not None
                and row.city_state_id != row.state_id
            ):
                values["city_id"] = None
                fixes.city_cleared += 1

            if values:
                logger.info("Clearing %s for user %s", ", ".join(values), row.id)
                await self.db.execute(update(User).where(User.id == row.id).values(**values))

    async def _fix_age_preferences(self, fixes: RepairFixes) -> None:
        result = await self.db.execute(
            select(UserPreferences.id, UserPreferences.user_id, UserPreferences.age_min, UserPreferences.age_max)
            .join(User, User.id == UserPreferences.user_id)
            .where(
                UserPreferences.age_min.is_not(None),
                UserPreferences.age_max.is_not(None),
                UserPreferences.age_min > UserPreferences.age_max,
                not_tombstoned(self.capabilities, User.id),
            )
            .order_by(UserPreferences.user_id)
        )

        for row in result.all():
            age_min, age_max = sorted((row.age_min, row.age_max))
            logger.info(
                "Swapping age preferences for user %s: %s-%s -> %s-%s",
                row.user_id,
                row.age_min,
                row.age_max,
                age_min,
                age_max,
            )
            await self.db.execute(
                update(UserPreferences)
                .where(UserPreferences.id == row.id)
                .values(age_min=age_min, age_max=age_max)
            )
            fixes.age_preferences_swapped += 1

    async def _create_missing_preferences(self, fixes: RepairFixes) -> None:
        result = await self.db.execute(
            select(User.id)
            .where(
                select(UserAttributes.id).where(UserAttributes.user_id == User.id).exists(),
                ~select(UserPreferences.id).where(UserPreferences.user_id == User.id).exists(),
                not_tombstoned(self.capabilities, User.id),
            )
            .order_by(User.id)
        )
        user_ids = list(result.scalars().all())

        for user_id in user_ids:
            logger.info("Creating default preferences for user %s", user_id)
            self.db.add(
                UserPreferences(
                    user_id=user_id,
                    age_min=DEFAULT_AGE_MIN,
                    age_max=DEFAULT_AGE_MAX,
                    preferred_gender=None,
                    location_radius=DEFAULT_LOCATION_RADIUS,
                )
            )
        if user_ids:
            await self.db.flush()
        fixes.preferences_created += len(user_ids)
