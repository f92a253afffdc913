"""Hard deletion of a user and everything that belongs to them.

A deletion walks a fixed sequence of states::

    REQUESTED -> IDENTITY_SNAPSHOTTED -> TOMBSTONED -> RECEIVER_MAPPED
              -> CASCADE_PURGED -> COMMITTED -> FILES_PURGED

``REQUESTED -> NO_OP`` covers a user that does not exist, and every state
before ``COMMITTED`` may end in ``ROLLED_BACK``. Everything up to the commit
happens in one transaction on one session; media files are removed only once
the rows that referenced them are gone for good.

The tombstone (``users_deleted``) keeps the identity captured *before* any
row is touched, and ``users_deleted_receivers`` keeps one row per former
conversation partner so their inbox can still show the deactivated account.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import Select, delete, func, or_, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import SchemaCapabilities
from warden.core.database import dialect_insert
from warden.core.errors import TransactionFailure
from warden.models import (
    DeletedUser,
    DeletedUserReceiver,
    User,
    UserImage,
    UserMessage,
    UserMessageAttachment,
)
from warden.schemas.users import DeletionInitiator, DeletionResult
from warden.services.dependents import DEPENDENT_TABLES
from warden.services.file_janitor import FileJanitor, MediaReferences, PurgeSummary

logger = logging.getLogger(__name__)

USER_CACHE_KEY = "admin:user:{user_id}"
USER_LIST_CACHE_PATTERN = "admin:users:*"

DELETED_MESSAGE = (
    "User account and all associated data permanently deleted. "
    'Receivers will still see "Account Deactivated" in their conversation list.'
)
NOT_FOUND_MESSAGE = "User not found or already deleted"


class DeletionState(str, enum.Enum):
    REQUESTED = "requested"
    IDENTITY_SNAPSHOTTED = "identity_snapshotted"
    TOMBSTONED = "tombstoned"
    RECEIVER_MAPPED = "receiver_mapped"
    CASCADE_PURGED = "cascade_purged"
    COMMITTED = "committed"
    FILES_PURGED = "files_purged"
    NO_OP = "no_op"
    ROLLED_BACK = "rolled_back"


_S = DeletionState

TRANSITIONS: dict[DeletionState, frozenset[DeletionState]] = {
    _S.REQUESTED: frozenset({_S.IDENTITY_SNAPSHOTTED, _S.NO_OP, _S.ROLLED_BACK}),
    _S.IDENTITY_SNAPSHOTTED: frozenset({_S.TOMBSTONED, _S.ROLLED_BACK}),
    _S.TOMBSTONED: frozenset({_S.RECEIVER_MAPPED, _S.ROLLED_BACK}),
    _S.RECEIVER_MAPPED: frozenset({_S.CASCADE_PURGED, _S.ROLLED_BACK}),
    _S.CASCADE_PURGED: frozenset({_S.COMMITTED, _S.ROLLED_BACK}),
    _S.COMMITTED: frozenset({_S.FILES_PURGED}),
    _S.FILES_PURGED: frozenset(),
    _S.NO_OP: frozenset(),
    _S.ROLLED_BACK: frozenset(),
}


class IllegalTransition(RuntimeError):
    def __init__(self, current: DeletionState, target: DeletionState) -> None:
        super().__init__(f"Illegal deletion transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


@dataclass(frozen=True)
class UserIdentity:
    id: int
    real_name: str | None
    email: str | None


@dataclass
class DeletionRun:
    """Progress of one deletion through the state table."""

    user_id: int
    initiator: DeletionInitiator
    state: DeletionState = DeletionState.REQUESTED
    history: list[DeletionState] = field(default_factory=lambda: [DeletionState.REQUESTED])
    identity: UserIdentity | None = None
    partners: list[int] = field(default_factory=list)
    media: MediaReferences = field(default_factory=MediaReferences)
    purged: dict[str, int] = field(default_factory=dict)

    def advance(self, target: DeletionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise IllegalTransition(self.state, target)
        logger.debug("Deletion of user %s: %s -> %s", self.user_id, self.state.value, target.value)
        self.state = target
        self.history.append(target)


class UserDeletionService:
    """Deletes users atomically, then cleans up their media and cache entries."""

    def __init__(
        self,
        db: AsyncSession,
        capabilities: SchemaCapabilities,
        janitor: FileJanitor,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self.db = db
        self.capabilities = capabilities
        self.janitor = janitor
        self.redis = redis

    async def delete_user(
        self,
        user_id: int,
        initiator: DeletionInitiator = DeletionInitiator.ADMIN,
    ) -> DeletionResult:
        """Delete ``user_id`` and every dependent row in one transaction.

        Deleting a user that does not exist succeeds without doing anything,
        which also makes a repeated request harmless.

        Raises:
            TransactionFailure: when any step before the commit fails. The
                tombstone, receiver mappings and purged rows are all rolled back.
        """
        run = DeletionRun(user_id=user_id, initiator=initiator)

        try:
            identity = await self._snapshot_identity(user_id)
            if identity is None:
                run.advance(DeletionState.NO_OP)
                await self.db.rollback()
                logger.info("Deletion of user %s skipped: no such user", user_id)
                return DeletionResult(success=True, message=NOT_FOUND_MESSAGE)
            run.identity = identity
            run.partners = await self._find_conversation_partners(user_id)
            run.advance(DeletionState.IDENTITY_SNAPSHOTTED)

            await self._write_tombstone(identity, initiator)
            run.advance(DeletionState.TOMBSTONED)

            await self._map_receivers(user_id, run.partners)
            run.advance(DeletionState.RECEIVER_MAPPED)

            run.media = await self._collect_media(user_id)
            run.purged = await self._purge_dependents(user_id)
            await self._release_receiver_mappings(user_id)
            await self._delete_user_row(user_id)
            run.advance(DeletionState.CASCADE_PURGED)

            await self.db.commit()
            run.advance(DeletionState.COMMITTED)
        except IllegalTransition:
            raise
        except Exception as e:
            await self.db.rollback()
            reached = run.state
            run.advance(DeletionState.ROLLED_BACK)
            logger.exception(
                "Deletion of user %s failed after %s, rolled back", user_id, reached.value
            )
            raise TransactionFailure(
                f"Failed to delete user {user_id}; no data was removed",
                user_id=user_id,
                state=reached.value,
                cause=str(e),
            ) from e

        logger.info(
            "Deleted user %s (initiator=%s): %d partner(s) mapped, %d dependent row(s) purged",
            user_id,
            initiator.value,
            len(run.partners),
            sum(run.purged.values()),
        )

        files = await self._purge_files(run)
        run.advance(DeletionState.FILES_PURGED)
        await self._invalidate_cache(user_id)

        return DeletionResult(
            success=True,
            message=DELETED_MESSAGE,
            receivers_notified=len(run.partners),
            files_deleted=files.deleted,
        )

    # --- Steps (inside the transaction) ---

    async def _snapshot_identity(self, user_id: int) -> UserIdentity | None:
        result = await self.db.execute(
            select(User.id, User.real_name, User.email)
            .where(User.id == user_id)
            .with_for_update()
        )
        row = result.one_or_none()
        if row is None:
            return None
        return UserIdentity(id=row.id, real_name=row.real_name, email=row.email)

    async def _find_conversation_partners(self, user_id: int) -> list[int]:
        if not self.capabilities.has(UserMessage.__tablename__):
            return []
        partners = union(
            select(UserMessage.receiver_id.label("partner_id")).where(
                UserMessage.sender_id == user_id
            ),
            select(UserMessage.sender_id.label("partner_id")).where(
                UserMessage.receiver_id == user_id
            ),
        )
        result = await self.db.execute(partners)
        return sorted({pid for pid in result.scalars().all() if pid is not None and pid != user_id})

    async def _write_tombstone(self, identity: UserIdentity, initiator: DeletionInitiator) -> None:
        if not self.capabilities.has(DeletedUser.__tablename__):
            logger.warning("No %s table; user %s leaves no tombstone", DeletedUser.__tablename__, identity.id)
            return
        stmt = dialect_insert(self.db, DeletedUser).values(
            deleted_user_id=identity.id,
            real_name=identity.real_name,
            email=identity.email,
            deleted_by=initiator.value,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["deleted_user_id"],
            set_={
                "real_name": stmt.excluded.real_name,
                "email": stmt.excluded.email,
                "deleted_by": stmt.excluded.deleted_by,
                "deleted_at": func.now(),
                "updated_at": func.now(),
            },
        )
        await self.db.execute(stmt)

    async def _map_receivers(self, user_id: int, partners: list[int]) -> None:
        if not partners or not self.capabilities.has(DeletedUserReceiver.__tablename__):
            return
        stmt = dialect_insert(self.db, DeletedUserReceiver).values(
            [{"deleted_user_id": user_id, "receiver_id": partner} for partner in partners]
        )
        await self.db.execute(
            stmt.on_conflict_do_nothing(index_elements=["deleted_user_id", "receiver_id"])
        )

    async def _collect_media(self, user_id: int) -> MediaReferences:
        media = MediaReferences()
        if self.capabilities.has(UserImage.__tablename__):
            result = await self.db.execute(
                select(UserImage.file_name).where(UserImage.user_id == user_id)
            )
            media.profile_images = [name for name in result.scalars().all() if name]

        if self.capabilities.has_all(
            (UserMessage.__tablename__, UserMessageAttachment.__tablename__)
        ):
            result = await self.db.execute(
                select(UserMessageAttachment.file_path, UserMessageAttachment.thumbnail_path).where(
                    UserMessageAttachment.message_id.in_(self._messages_of(user_id))
                )
            )
            for file_path, thumbnail_path in result.all():
                media.attachment_paths.extend(p for p in (file_path, thumbnail_path) if p)
        return media

    async def _purge_dependents(self, user_id: int) -> dict[str, int]:
        purged: dict[str, int] = {}

        if self.capabilities.has_all(
            (UserMessage.__tablename__, UserMessageAttachment.__tablename__)
        ):
            result = await self.db.execute(
                delete(UserMessageAttachment)
                .where(UserMessageAttachment.message_id.in_(self._messages_of(user_id)))
                .execution_options(synchronize_session=False)
            )
            purged[UserMessageAttachment.__tablename__] = result.rowcount or 0

        for table in DEPENDENT_TABLES:
            if not self.capabilities.has(table.name):
                logger.debug("Cascade purge: table %s not present", table.name)
                continue
            result = await self.db.execute(
                delete(table.model)
                .where(table.references(user_id))
                .execution_options(synchronize_session=False)
            )
            purged[table.name] = result.rowcount or 0

        return purged

    async def _release_receiver_mappings(self, user_id: int) -> None:
        """Drop mappings that point at this user as the surviving partner."""
        if not self.capabilities.has(DeletedUserReceiver.__tablename__):
            return
        await self.db.execute(
            delete(DeletedUserReceiver)
            .where(DeletedUserReceiver.receiver_id == user_id)
            .execution_options(synchronize_session=False)
        )

    async def _delete_user_row(self, user_id: int) -> None:
        await self.db.execute(
            delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
        )

    @staticmethod
    def _messages_of(user_id: int) -> Select[tuple[int]]:
        return select(UserMessage.id).where(
            or_(UserMessage.sender_id == user_id, UserMessage.receiver_id == user_id)
        )

    # --- After commit (best-effort) ---

    async def _purge_files(self, run: DeletionRun) -> PurgeSummary:
        if not run.media:
            return PurgeSummary()
        try:
            return await asyncio.to_thread(self.janitor.purge, run.media)
        except Exception:
            logger.exception("Media cleanup for deleted user %s failed", run.user_id)
            return PurgeSummary(failed=len(run.media.profile_images) + len(run.media.attachment_paths))

    async def _invalidate_cache(self, user_id: int) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.delete(USER_CACHE_KEY.format(user_id=user_id))
            async for key in self.redis.scan_iter(match=USER_LIST_CACHE_PATTERN):
                await self.redis.delete(key)
        except RedisError as e:
            logger.warning("Could not invalidate cache for deleted user %s: %s", user_id, e)
