"""Tests for per-table row counts."""

from collections.abc import Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import SchemaCapabilities
from warden.models import UserImage
from warden.schemas.integrity import TableSort, UserTable
from warden.services.table_stats_service import TableStatsService


class TestTableStatistics:
    """Tests for TableStatsService.get_table_statistics()."""

    async def test_every_table_by_default(
        self, db_session: AsyncSession, capabilities: SchemaCapabilities
    ) -> None:
        """All user tables are counted when none are named."""
        stats = await TableStatsService(db_session, capabilities).get_table_statistics()
        assert {s.table for s in stats} == {t.value for t in UserTable}
        assert all(s.row_count == 0 for s in stats)

    async def test_sorted_by_count_then_name(
        self,
        db_session: AsyncSession,
        capabilities: SchemaCapabilities,
        user_factory: Callable[..., Any],
        row_factory: Callable[..., Any],
    ) -> None:
        """Row count sort is descending with name as tie-break."""
        user = await user_factory()
        await user_factory()
        for n in range(3):
            await row_factory(UserImage, user_id=user.id, file_name=f"user_{n}.jpg")

        stats = await TableStatsService(db_session, capabilities).get_table_statistics(
            [UserTable.USERS, UserTable.USER_IMAGES, UserTable.USER_SESSIONS, UserTable.USER_MATCHES]
        )

        assert [(s.table, s.row_count) for s in stats] == [
            ("user_images", 3),
            ("users", 2),
            ("user_matches", 0),
            ("user_sessions", 0),
        ]

    async def test_sorted_by_name(
        self, db_session: AsyncSession, capabilities: SchemaCapabilities
    ) -> None:
        """Name sort is alphabetical."""
        stats = await TableStatsService(db_session, capabilities).get_table_statistics(
            [UserTable.USERS, UserTable.ADMIN_BLACKLISTED_USERS, UserTable.USER_IMAGES],
            sort=TableSort.TABLE_NAME,
        )
        assert [s.table for s in stats] == ["admin_blacklisted_users", "user_images", "users"]

    async def test_absent_tables_are_omitted(
        self,
        db_session: AsyncSession,
        capabilities_without: Callable[..., SchemaCapabilities],
    ) -> None:
        """Tables missing from the database are left out."""
        caps = capabilities_without("user_sessions")
        stats = await TableStatsService(db_session, caps).get_table_statistics(
            [UserTable.USERS, UserTable.USER_SESSIONS]
        )
        assert [s.table for s in stats] == ["users"]

    async def test_duplicates_are_counted_once(
        self, db_session: AsyncSession, capabilities: SchemaCapabilities
    ) -> None:
        """A table named twice is counted once."""
        stats = await TableStatsService(db_session, capabilities).get_table_statistics(
            [UserTable.USERS, UserTable.USERS]
        )
        assert len(stats) == 1
