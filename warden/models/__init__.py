"""SQLAlchemy models."""

from warden.models.account import (
    UserContactCountry,
    UserImage,
    UserLanguage,
    UserLocationHistory,
    UserMeasurementPreferences,
    UserNameChangeHistory,
    UserProfileSettings,
    UserSession,
)
from warden.models.base import Base
from warden.models.lifecycle import BlacklistedUser, DeletedUser, DeletedUserReceiver
from warden.models.location import City, Country, State
from warden.models.message import UserMessage, UserMessageAttachment
from warden.models.social import (
    UserActivity,
    UserBlock,
    UserCompatibilityCache,
    UserConversationRemoval,
    UserFavorite,
    UserLike,
    UserMatch,
    UserProfileView,
    UserReport,
)
from warden.models.user import User, UserAttributes, UserPreferences

__all__ = [
    # Base
    "Base",
    # Users
    "User",
    "UserPreferences",
    "UserAttributes",
    # Location
    "Country",
    "State",
    "City",
    # Messaging
    "UserMessage",
    "UserMessageAttachment",
    # Interactions
    "UserLike",
    "UserFavorite",
    "UserProfileView",
    "UserBlock",
    "UserReport",
    "UserMatch",
    "UserActivity",
    "UserCompatibilityCache",
    "UserConversationRemoval",
    # Account
    "UserImage",
    "UserSession",
    "UserNameChangeHistory",
    "UserProfileSettings",
    "UserMeasurementPreferences",
    "UserContactCountry",
    "UserLanguage",
    "UserLocationHistory",
    # Lifecycle
    "DeletedUser",
    "DeletedUserReceiver",
    "BlacklistedUser",
]
