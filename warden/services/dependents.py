"""Catalogue of tables whose rows belong to a user.

One ordered list drives three consumers: the orphaned-record check of the
integrity scanner, the cascade purge of user deletion and the explicit orphan
cleanup. Order is purge order. ``user_message_attachments`` is not listed:
it hangs off ``user_messages`` and is handled before it.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, and_, exists, or_, select

from warden.models import (
    BlacklistedUser,
    User,
    UserActivity,
    UserAttributes,
    UserBlock,
    UserCompatibilityCache,
    UserContactCountry,
    UserConversationRemoval,
    UserFavorite,
    UserImage,
    UserLanguage,
    UserLike,
    UserLocationHistory,
    UserMatch,
    UserMeasurementPreferences,
    UserMessage,
    UserNameChangeHistory,
    UserPreferences,
    UserProfileSettings,
    UserProfileView,
    UserReport,
    UserSession,
)
from warden.schemas.integrity import Severity


@dataclass(frozen=True)
class DependentTable:
    """A table with one or more columns referencing ``users.id``."""

    model: Any
    user_columns: tuple[str, ...]
    severity: Severity
    description: str
    optional: bool = False

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def columns(self) -> Iterator[Any]:
        for column in self.user_columns:
            yield getattr(self.model, column)

    def references(self, user_id: int) -> ColumnElement[bool]:
        """Rows pointing at ``user_id`` through any user column."""
        return or_(*(column == user_id for column in self.columns()))

    def orphaned(self) -> ColumnElement[bool]:
        """Rows with at least one non-null user column pointing nowhere."""
        return or_(
            *(
                and_(
                    column.is_not(None),
                    ~exists(select(User.id).where(User.id == column)),
                )
                for column in self.columns()
            )
        )


DEPENDENT_TABLES: tuple[DependentTable, ...] = (
    DependentTable(
        UserMessage,
        ("sender_id", "receiver_id"),
        Severity.MEDIUM,
        "Messages sent or received by removed users",
    ),
    DependentTable(
        UserLike, ("liked_by", "liked_user_id"), Severity.MEDIUM, "Likes involving removed users"
    ),
    DependentTable(
        UserProfileView,
        ("viewer_id", "viewed_user_id"),
        Severity.LOW,
        "Profile views involving removed users",
    ),
    DependentTable(
        UserImage, ("user_id",), Severity.MEDIUM, "Profile images referencing users that no longer exist"
    ),
    DependentTable(
        UserFavorite,
        ("favorited_by", "favorited_user_id"),
        Severity.MEDIUM,
        "Favorites involving removed users",
    ),
    DependentTable(
        UserBlock, ("blocker_id", "blocked_id"), Severity.MEDIUM, "Blocks involving removed users"
    ),
    DependentTable(
        UserAttributes, ("user_id",), Severity.MEDIUM, "Profile attributes of removed users"
    ),
    DependentTable(
        UserPreferences, ("user_id",), Severity.MEDIUM, "Match preferences of removed users"
    ),
    DependentTable(UserSession, ("user_id",), Severity.LOW, "Sessions of removed users"),
    DependentTable(
        UserMatch, ("user1_id", "user2_id"), Severity.MEDIUM, "Match pairs where one side is missing"
    ),
    DependentTable(
        UserActivity,
        ("user_id", "target_user_id"),
        Severity.LOW,
        "Activity entries involving removed users",
    ),
    DependentTable(
        UserReport,
        ("reporter_id", "reported_user_id"),
        Severity.MEDIUM,
        "Reports where reporter or reported account has been removed",
    ),
    DependentTable(
        UserCompatibilityCache,
        ("user_id", "target_user_id"),
        Severity.LOW,
        "Compatibility cache rows referencing removed users",
    ),
    DependentTable(
        UserConversationRemoval,
        ("remover_id", "removed_user_id"),
        Severity.LOW,
        "Conversation removal markers linked to deleted users",
    ),
    DependentTable(
        BlacklistedUser, ("user_id",), Severity.MEDIUM, "Blacklist entries of removed users"
    ),
    DependentTable(
        UserNameChangeHistory, ("user_id",), Severity.LOW, "Name history of removed users"
    ),
    DependentTable(
        UserProfileSettings,
        ("user_id",),
        Severity.LOW,
        "Profile settings of removed users",
        optional=True,
    ),
    DependentTable(
        UserMeasurementPreferences,
        ("user_id",),
        Severity.LOW,
        "Measurement preferences of removed users",
        optional=True,
    ),
    DependentTable(
        UserContactCountry,
        ("user_id",),
        Severity.LOW,
        "Contact countries of removed users",
        optional=True,
    ),
    DependentTable(
        UserLanguage, ("user_id",), Severity.LOW, "Languages of removed users", optional=True
    ),
    DependentTable(
        UserLocationHistory,
        ("user_id",),
        Severity.LOW,
        "Location history of removed users",
        optional=True,
    ),
)


def get_dependent(name: str) -> DependentTable:
    for table in DEPENDENT_TABLES:
        if table.name == name:
            return table
    raise KeyError(name)
