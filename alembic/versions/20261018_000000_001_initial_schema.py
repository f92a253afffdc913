"""Initial schema: users, location lookups, dependents and lifecycle records.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def _user_table(name: str, *columns: sa.Column, user_columns: Sequence[str] = ("user_id",)) -> None:
    """Create a table whose ``user_columns`` reference ``users.id`` and are indexed."""
    op.create_table(
        name,
        *_base_columns(),
        *columns,
        sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{name}")),
        *(
            sa.ForeignKeyConstraint([col], ["users.id"], name=op.f(f"fk_{name}_{col}_users"))
            for col in user_columns
        ),
    )
    for col in user_columns:
        op.create_index(op.f(f"ix_{name}_{col}"), name, [col], unique=False)


# Child tables first so downgrade can drop in order
USER_TABLES = (
    "user_location_history",
    "user_languages",
    "user_contact_countries",
    "user_measurement_preferences",
    "user_profile_settings",
    "user_name_change_history",
    "admin_blacklisted_users",
    "user_conversation_removals",
    "user_compatibility_cache",
    "user_reports",
    "user_activity",
    "user_matches",
    "user_sessions",
    "user_attributes",
    "user_preferences",
    "users_blocked_by_users",
    "users_favorites",
    "user_images",
    "users_profile_views",
    "users_likes",
    "user_message_attachments",
    "user_messages",
)


def upgrade() -> None:
    # Location lookups
    op.create_table(
        "country",
        *_base_columns(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("iso_code", sa.String(3), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_country")),
    )
    op.create_table(
        "state",
        *_base_columns(),
        sa.Column("country_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_state")),
        sa.ForeignKeyConstraint(
            ["country_id"], ["country.id"], name=op.f("fk_state_country_id_country")
        ),
    )
    op.create_index(op.f("ix_state_country_id"), "state", ["country_id"], unique=False)
    op.create_table(
        "city",
        *_base_columns(),
        sa.Column("state_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_city")),
        sa.ForeignKeyConstraint(["state_id"], ["state.id"], name=op.f("fk_city_state_id_state")),
    )
    op.create_index(op.f("ix_city_state_id"), "city", ["state_id"], unique=False)

    # Users. Location columns are plain integers, audited by the integrity scanner.
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("real_name", sa.String(255), nullable=True),
        sa.Column("gender", sa.String(32), nullable=True),
        sa.Column("birthdate", sa.Date(), nullable=True),
        sa.Column("country_id", sa.Integer(), nullable=True),
        sa.Column("state_id", sa.Integer(), nullable=True),
        sa.Column("city_id", sa.Integer(), nullable=True),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("profile_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_ip_address", sa.String(45), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    for col in ("email", "country_id", "state_id", "city_id"):
        op.create_index(op.f(f"ix_users_{col}"), "users", [col], unique=False)

    # 1:1 profile tables
    op.create_table(
        "user_preferences",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("age_min", sa.Integer(), nullable=True),
        sa.Column("age_max", sa.Integer(), nullable=True),
        sa.Column("preferred_gender", sa.String(32), nullable=True),
        sa.Column("location_radius", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_preferences")),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_user_preferences_user_id_users")
        ),
        sa.UniqueConstraint("user_id", name=op.f("uq_user_preferences_user_id")),
    )
    op.create_table(
        "user_attributes",
        *_base_columns(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("height_cm", sa.Integer(), nullable=True),
        sa.Column("body_type", sa.String(50), nullable=True),
        sa.Column("education", sa.String(100), nullable=True),
        sa.Column("occupation", sa.String(100), nullable=True),
        sa.Column("about_me", sa.Text(), nullable=True),
        sa.Column("extra", JSONType, nullable=False, server_default="{}"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_attributes")),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_user_attributes_user_id_users")
        ),
        sa.UniqueConstraint("user_id", name=op.f("uq_user_attributes_user_id")),
    )

    # Messages and attachments
    _user_table(
        "user_messages",
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        user_columns=("sender_id", "receiver_id"),
    )
    op.create_table(
        "user_message_attachments",
        *_base_columns(),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=True),
        sa.Column("thumbnail_path", sa.String(500), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_message_attachments")),
        sa.ForeignKeyConstraint(
            ["message_id"],
            ["user_messages.id"],
            name=op.f("fk_user_message_attachments_message_id_user_messages"),
        ),
    )
    op.create_index(
        op.f("ix_user_message_attachments_message_id"),
        "user_message_attachments",
        ["message_id"],
        unique=False,
    )

    # User-to-user interactions
    _user_table(
        "users_likes",
        sa.Column("liked_by", sa.Integer(), nullable=False),
        sa.Column("liked_user_id", sa.Integer(), nullable=False),
        user_columns=("liked_by", "liked_user_id"),
    )
    _user_table(
        "users_favorites",
        sa.Column("favorited_by", sa.Integer(), nullable=False),
        sa.Column("favorited_user_id", sa.Integer(), nullable=False),
        user_columns=("favorited_by", "favorited_user_id"),
    )
    _user_table(
        "users_profile_views",
        sa.Column("viewer_id", sa.Integer(), nullable=False),
        sa.Column("viewed_user_id", sa.Integer(), nullable=False),
        user_columns=("viewer_id", "viewed_user_id"),
    )
    _user_table(
        "users_blocked_by_users",
        sa.Column("blocker_id", sa.Integer(), nullable=False),
        sa.Column("blocked_id", sa.Integer(), nullable=False),
        user_columns=("blocker_id", "blocked_id"),
    )
    _user_table(
        "user_reports",
        sa.Column("reporter_id", sa.Integer(), nullable=False),
        sa.Column("reported_user_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        user_columns=("reporter_id", "reported_user_id"),
    )
    _user_table(
        "user_matches",
        sa.Column("user1_id", sa.Integer(), nullable=False),
        sa.Column("user2_id", sa.Integer(), nullable=False),
        user_columns=("user1_id", "user2_id"),
    )
    _user_table(
        "user_activity",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("target_user_id", sa.Integer(), nullable=True),
        sa.Column("activity_type", sa.String(50), nullable=False),
        user_columns=("user_id", "target_user_id"),
    )
    _user_table(
        "user_compatibility_cache",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("target_user_id", sa.Integer(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        user_columns=("user_id", "target_user_id"),
    )
    _user_table(
        "user_conversation_removals",
        sa.Column("remover_id", sa.Integer(), nullable=False),
        sa.Column("removed_user_id", sa.Integer(), nullable=False),
        user_columns=("remover_id", "removed_user_id"),
    )

    # Per-user account tables
    _user_table(
        "user_images",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    _user_table(
        "user_sessions",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("session_token", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_unique_constraint(
        op.f("uq_user_sessions_session_token"), "user_sessions", ["session_token"]
    )
    _user_table(
        "user_name_change_history",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("old_name", sa.String(255), nullable=True),
        sa.Column("new_name", sa.String(255), nullable=True),
    )
    _user_table(
        "user_profile_settings",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("settings", JSONType, nullable=False, server_default="{}"),
    )
    _user_table(
        "user_measurement_preferences",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("measurement_system", sa.String(10), nullable=False, server_default="metric"),
    )
    _user_table(
        "user_contact_countries",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("country_id", sa.Integer(), nullable=False),
    )
    _user_table(
        "user_languages",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("language_code", sa.String(10), nullable=False),
    )
    _user_table(
        "user_location_history",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("country_id", sa.Integer(), nullable=True),
        sa.Column("state_id", sa.Integer(), nullable=True),
        sa.Column("city_id", sa.Integer(), nullable=True),
    )

    # Blacklist: at most one active entry per user
    _user_table(
        "admin_blacklisted_users",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("admin_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column(
            "blacklisted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        "uq_admin_blacklisted_users_active_user",
        "admin_blacklisted_users",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # Tombstones outlive the user row, so no foreign keys
    op.create_table(
        "users_deleted",
        *_base_columns(),
        sa.Column("deleted_user_id", sa.Integer(), nullable=False),
        sa.Column("real_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("deleted_by", sa.String(10), nullable=False),
        sa.Column(
            "deleted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users_deleted")),
        sa.UniqueConstraint("deleted_user_id", name=op.f("uq_users_deleted_deleted_user_id")),
    )
    op.create_table(
        "users_deleted_receivers",
        *_base_columns(),
        sa.Column("deleted_user_id", sa.Integer(), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users_deleted_receivers")),
        sa.UniqueConstraint(
            "deleted_user_id",
            "receiver_id",
            name=op.f("uq_users_deleted_receivers_deleted_user_id"),
        ),
    )
    op.create_index(
        op.f("ix_users_deleted_receivers_deleted_user_id"),
        "users_deleted_receivers",
        ["deleted_user_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_users_deleted_receivers_receiver_id"),
        "users_deleted_receivers",
        ["receiver_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("users_deleted_receivers")
    op.drop_table("users_deleted")
    for name in USER_TABLES:
        op.drop_table(name)
    op.drop_table("users")
    op.drop_table("city")
    op.drop_table("state")
    op.drop_table("country")
