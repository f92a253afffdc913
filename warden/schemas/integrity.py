"""Integrity scan, repair, orphan cleanup and table statistics schemas."""

import enum
from collections import Counter
from collections.abc import Iterable

from pydantic import computed_field

from warden.schemas.common import BaseSchema


class Severity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueType(str, enum.Enum):
    ORPHANED_FOREIGN_KEY = "orphaned_foreign_key"
    INVALID_DATE = "invalid_date"
    INVALID_AGE = "invalid_age"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_GENDER = "invalid_gender"
    ORPHANED_RECORD = "orphaned_record"
    INVALID_LOCATION_REFERENCE = "invalid_location_reference"
    INCONSISTENT_DATA = "inconsistent_data"
    INVALID_AGE_PREFERENCES = "invalid_age_preferences"


class Issue(BaseSchema):
    """One detected problem. Never persisted."""

    type: IssueType
    severity: Severity
    user_id: int | None
    email: str | None = None
    message: str


class IntegritySummary(BaseSchema):
    total_issues: int
    high_severity: int
    medium_severity: int
    low_severity: int
    by_type: dict[str, int]
    affected_users: int
    skipped_checks: list[str] = []


class IntegrityReport(BaseSchema):
    """Ordered issues of one scan plus their summary."""

    summary: IntegritySummary
    issues: list[Issue]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_clean(self) -> bool:
        """No issues found and every check ran."""
        return self.summary.total_issues == 0 and not self.summary.skipped_checks

    @classmethod
    def from_issues(
        cls, issues: list[Issue], skipped_checks: Iterable[str] = ()
    ) -> "IntegrityReport":
        severities = Counter(issue.severity for issue in issues)
        by_type = Counter(issue.type.value for issue in issues)
        affected = {issue.user_id for issue in issues if issue.user_id is not None}
        summary = IntegritySummary(
            total_issues=len(issues),
            high_severity=severities[Severity.HIGH],
            medium_severity=severities[Severity.MEDIUM],
            low_severity=severities[Severity.LOW],
            by_type=dict(by_type),
            affected_users=len(affected),
            skipped_checks=list(skipped_checks),
        )
        return cls(summary=summary, issues=issues)


class IntegrityCheckResponse(IntegrityReport):
    success: bool = True


class RepairFixes(BaseSchema):
    """Rows touched by each kind of automatic fix."""

    state_cleared: int = 0
    city_cleared: int = 0
    age_preferences_swapped: int = 0
    preferences_created: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return (
            self.state_cleared
            + self.city_cleared
            + self.age_preferences_swapped
            + self.preferences_created
        )


class RepairResult(BaseSchema):
    fixes: RepairFixes
    report: IntegrityReport


class IntegrityFixResponse(IntegrityReport):
    success: bool = True
    message: str
    fixes: RepairFixes


# --- Table statistics ---


class UserTable(str, enum.Enum):
    """Tables whose row counts may be requested."""

    USERS = "users"
    USER_ATTRIBUTES = "user_attributes"
    USER_PREFERENCES = "user_preferences"
    USER_IMAGES = "user_images"
    USER_MESSAGES = "user_messages"
    USER_MESSAGE_ATTACHMENTS = "user_message_attachments"
    USERS_LIKES = "users_likes"
    USERS_FAVORITES = "users_favorites"
    USERS_PROFILE_VIEWS = "users_profile_views"
    USERS_BLOCKED_BY_USERS = "users_blocked_by_users"
    USER_REPORTS = "user_reports"
    USER_SESSIONS = "user_sessions"
    USER_MATCHES = "user_matches"
    USER_ACTIVITY = "user_activity"
    USER_COMPATIBILITY_CACHE = "user_compatibility_cache"
    USER_CONVERSATION_REMOVALS = "user_conversation_removals"
    USER_NAME_CHANGE_HISTORY = "user_name_change_history"
    USERS_DELETED = "users_deleted"
    USERS_DELETED_RECEIVERS = "users_deleted_receivers"
    ADMIN_BLACKLISTED_USERS = "admin_blacklisted_users"


class TableSort(str, enum.Enum):
    ROW_COUNT = "row_count"
    TABLE_NAME = "table_name"


class TableStat(BaseSchema):
    table: str
    row_count: int


class TableStatsResponse(BaseSchema):
    success: bool = True
    tables: list[TableStat]


# --- Orphan cleanup ---


class OrphanTableResult(BaseSchema):
    table: str
    description: str
    deleted: int = 0
    skipped: bool = False


class FileSweepSummary(BaseSchema):
    """Outcome of removing image files no ``user_images`` row references."""

    directory: str
    scanned: int = 0
    deleted: int = 0
    failed: int = 0
    skipped_recent: int = 0
    sample: list[str] = []


class OrphanCleanupSummary(BaseSchema):
    total_deleted: int
    tables: list[OrphanTableResult]
    files: FileSweepSummary
    warnings: list[str] = []


class OrphanCleanupResponse(BaseSchema):
    success: bool = True
    message: str
    summary: OrphanCleanupSummary
