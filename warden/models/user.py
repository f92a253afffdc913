"""User identity and its 1:1 profile tables."""

from datetime import date
from typing import Any

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from warden.models.base import Base, JSONType


class User(Base):
    """A platform member.

    The location columns predate foreign-key constraints in the platform
    database, so they are plain integers and their consistency is audited by
    the integrity scanner rather than enforced by the schema.
    """

    __tablename__ = "users"

    # Identity
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    real_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Demographics
    gender: Mapped[str | None] = mapped_column(String(32), nullable=True)
    birthdate: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Location
    country_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    state_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    city_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Status flags
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    profile_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    last_ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


class UserPreferences(Base):
    """Match preferences. Invariant: ``age_min <= age_max``."""

    __tablename__ = "user_preferences"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )
    age_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    age_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    preferred_gender: Mapped[str | None] = mapped_column(String(32), nullable=True)
    location_radius: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<UserPreferences user={self.user_id} {self.age_min}-{self.age_max}>"


class UserAttributes(Base):
    """Free-form profile fields."""

    __tablename__ = "user_attributes"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )
    height_cm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    body_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    education: Mapped[str | None] = mapped_column(String(100), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    about_me: Mapped[str | None] = mapped_column(Text, nullable=True)
    extra: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<UserAttributes user={self.user_id}>"
