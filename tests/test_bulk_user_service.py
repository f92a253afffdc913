"""Tests for bulk delete and bulk blacklist."""

from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import ADMIN_ID, count_rows
from warden.core.capabilities import SchemaCapabilities
from warden.models import BlacklistedUser, DeletedUser, User
from warden.schemas.users import BulkOperation
from warden.services.blacklist_service import BlacklistService
from warden.services.bulk_user_service import BulkUserService
from warden.services.file_janitor import FileJanitor
from warden.services.user_deletion_service import UserDeletionService


@pytest.fixture
def bulk(
    db_session: AsyncSession, capabilities: SchemaCapabilities, janitor: FileJanitor
) -> BulkUserService:
    return BulkUserService(
        UserDeletionService(db_session, capabilities, janitor),
        BlacklistService(db_session),
    )


class TestBulkDelete:
    """Tests for the delete operation."""

    async def test_deletes_each_user(
        self,
        bulk: BulkUserService,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
    ) -> None:
        """Every listed user is tombstoned and removed; others stay."""
        a_id = (await user_factory()).id
        b_id = (await user_factory()).id
        keep_id = (await user_factory()).id

        result = await bulk.run(BulkOperation.DELETE, [a_id, b_id])

        assert result.success
        assert result.affected_count == 2
        assert result.succeeded == [a_id, b_id]
        assert result.errors == []
        assert result.message == "Deleted 2 user account(s)."
        assert await count_rows(db_session, User) == 1
        assert await count_rows(db_session, User, User.id == keep_id) == 1
        assert await count_rows(db_session, DeletedUser) == 2

    async def test_duplicate_ids_are_processed_once(
        self, bulk: BulkUserService, user_factory: Callable[..., Any]
    ) -> None:
        """Repeated ids collapse to one deletion."""
        user_id = (await user_factory()).id
        result = await bulk.run(BulkOperation.DELETE, [user_id, user_id])
        assert result.succeeded == [user_id]

    async def test_one_failure_keeps_the_others(
        self,
        bulk: BulkUserService,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failed id is reported while the other ids stay deleted."""
        a_id = (await user_factory()).id
        b_id = (await user_factory()).id
        deletion = bulk.deletion
        real_delete_row = deletion._delete_user_row

        async def _fail_for_b(user_id: int) -> None:
            if user_id == b_id:
                raise RuntimeError("lock timeout")
            await real_delete_row(user_id)

        monkeypatch.setattr(deletion, "_delete_user_row", _fail_for_b)

        result = await bulk.run(BulkOperation.DELETE, [a_id, b_id])

        assert result.success
        assert result.succeeded == [a_id]
        assert [e.user_id for e in result.errors] == [b_id]
        assert result.message == "Deleted 1 user account(s). 1 failed."
        assert await count_rows(db_session, User, User.id == b_id) == 1
        assert await count_rows(db_session, DeletedUser, DeletedUser.deleted_user_id == b_id) == 0


class TestBulkBlacklist:
    """Tests for the blacklist operation."""

    async def test_blacklists_and_reports_failures(
        self,
        bulk: BulkUserService,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
    ) -> None:
        """Unknown ids become per-id errors."""
        user_id = (await user_factory()).id

        result = await bulk.run(
            BulkOperation.BLACKLIST, [user_id, 999], admin_id=ADMIN_ID, reason="spam ring"
        )

        assert result.success
        assert result.succeeded == [user_id]
        assert [(e.user_id, e.error) for e in result.errors] == [(999, "User not found")]
        assert result.message == "Blacklisted 1 user(s). 1 failed."
        assert await count_rows(db_session, BlacklistedUser) == 1

    async def test_all_failing(self, bulk: BulkUserService, user_factory: Callable[..., Any]) -> None:
        """When nothing succeeds the message lists the errors."""
        user_id = (await user_factory()).id
        await bulk.run(BulkOperation.BLACKLIST, [user_id], reason="spam")

        result = await bulk.run(BulkOperation.BLACKLIST, [user_id], reason="spam")

        assert not result.success
        assert result.affected_count == 0
        assert result.message == "Failed to blacklist users: User is already blacklisted"

    async def test_reason_defaults_to_empty(
        self,
        bulk: BulkUserService,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
    ) -> None:
        """Blacklisting without a reason records an empty one."""
        user_id = (await user_factory()).id

        result = await bulk.run(BulkOperation.BLACKLIST, [user_id], admin_id=ADMIN_ID)

        assert result.succeeded == [user_id]
        entry = await db_session.scalar(
            select(BlacklistedUser).where(BlacklistedUser.user_id == user_id)
        )
        assert entry is not None
        assert entry.reason == ""
