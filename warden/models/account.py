"""Per-user account tables: images, sessions, history and optional settings."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from warden.models.base import Base, JSONType


class UserImage(Base):
    """Profile image. ``file_name`` is relative to the profile images directory."""

    __tablename__ = "user_images"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_primary: Mapped[bool] = mapped_column(default=False, nullable=False)


class UserSession(Base):
    __tablename__ = "user_sessions"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    session_token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserNameChangeHistory(Base):
    __tablename__ = "user_name_change_history"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    old_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    new_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


# --- Deployment-optional settings tables ---


class UserProfileSettings(Base):
    __tablename__ = "user_profile_settings"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    settings: Mapped[dict[str, object]] = mapped_column(JSONType, default=dict, nullable=False)


class UserMeasurementPreferences(Base):
    __tablename__ = "user_measurement_preferences"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    measurement_system: Mapped[str] = mapped_column(String(10), default="metric", nullable=False)


class UserContactCountry(Base):
    __tablename__ = "user_contact_countries"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    country_id: Mapped[int] = mapped_column(Integer, nullable=False)


class UserLanguage(Base):
    __tablename__ = "user_languages"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    language_code: Mapped[str] = mapped_column(String(10), nullable=False)


class UserLocationHistory(Base):
    __tablename__ = "user_location_history"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    country_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    state_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    city_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
