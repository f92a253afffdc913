"""Records written when a user leaves the platform or is blacklisted.

``users_deleted`` and ``users_deleted_receivers`` outlive the user row they
describe, so they carry no foreign key to ``users``.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from warden.models.base import Base


class DeletedUser(Base):
    """Tombstone of a hard-deleted user.

    ``real_name`` and ``email`` are captured before any row is purged so that
    former conversation partners can still see who they talked to.
    """

    __tablename__ = "users_deleted"

    deleted_user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    real_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deleted_by: Mapped[str] = mapped_column(String(10), nullable=False)
    deleted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DeletedUser {self.deleted_user_id} by={self.deleted_by}>"


class DeletedUserReceiver(Base):
    """One former conversation partner of a deleted user."""

    __tablename__ = "users_deleted_receivers"
    __table_args__ = (UniqueConstraint("deleted_user_id", "receiver_id"),)

    deleted_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    receiver_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<DeletedUserReceiver {self.deleted_user_id}->{self.receiver_id}>"


class BlacklistedUser(Base):
    """Admin blacklist entry. At most one ``active`` entry per user."""

    __tablename__ = "admin_blacklisted_users"
    __table_args__ = (
        Index(
            "uq_admin_blacklisted_users_active_user",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    admin_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    # Admin's address at the time of the action, and the user's last known one
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    blacklisted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<BlacklistedUser user={self.user_id} status={self.status}>"
