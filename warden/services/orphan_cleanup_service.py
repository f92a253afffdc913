"""Explicit admin cleanup of rows and image files whose owner is gone."""

import asyncio
import logging

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import SchemaCapabilities
from warden.core.config import settings
from warden.core.errors import TransactionFailure
from warden.models import UserImage, UserMessage, UserMessageAttachment
from warden.schemas.integrity import OrphanCleanupSummary, OrphanTableResult
from warden.services.dependents import DEPENDENT_TABLES, get_dependent
from warden.services.file_janitor import FileJanitor

logger = logging.getLogger(__name__)


class OrphanCleanupService:
    def __init__(
        self,
        db: AsyncSession,
        capabilities: SchemaCapabilities,
        janitor: FileJanitor,
    ) -> None:
        self.db = db
        self.capabilities = capabilities
        self.janitor = janitor

    async def cleanup(self, min_file_age_seconds: float | None = None) -> OrphanCleanupSummary:
        """Delete orphaned dependent rows, then unreferenced profile images.

        Rows go in one transaction. The file sweep runs after commit against
        the ``user_images`` rows that survived.

        Raises:
            TransactionFailure: if a delete fails. No row is removed.
        """
        results: list[OrphanTableResult] = []
        warnings: list[str] = []

        try:
            for table in DEPENDENT_TABLES:
                if not self.capabilities.has(table.name):
                    warnings.append(f"Table {table.name} does not exist. Skipping.")
                    results.append(
                        OrphanTableResult(
                            table=table.name, description=table.description, skipped=True
                        )
                    )
                    continue

                if table.model is UserMessage:
                    results.append(await self._delete_orphaned_attachments())

                result = await self.db.execute(
                    delete(table.model)
                    .where(table.orphaned())
                    .execution_options(synchronize_session=False)
                )
                deleted = result.rowcount or 0
                if deleted:
                    logger.info("Deleted %d orphaned row(s) from %s", deleted, table.name)
                results.append(
                    OrphanTableResult(
                        table=table.name, description=table.description, deleted=deleted
                    )
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Orphaned record cleanup failed, rolled back")
            raise TransactionFailure("Orphaned record cleanup failed", cause=str(e)) from e

        referenced: list[str] = []
        if self.capabilities.has(UserImage.__tablename__):
            rows = await self.db.execute(
                select(UserImage.file_name).where(UserImage.file_name.is_not(None))
            )
            referenced = list(rows.scalars().all())

        grace = (
            settings.orphan_file_grace_seconds
            if min_file_age_seconds is None
            else min_file_age_seconds
        )
        files = await asyncio.to_thread(self.janitor.sweep_unreferenced, referenced, grace)

        total = sum(r.deleted for r in results)
        logger.info(
            "Orphan cleanup finished: %d row(s), %d file(s) removed",
            total,
            files.deleted,
        )
        return OrphanCleanupSummary(
            total_deleted=total, tables=results, files=files, warnings=warnings
        )

    async def _delete_orphaned_attachments(self) -> OrphanTableResult:
        """Attachments whose message is gone, or about to go with its orphaned owner."""
        name = UserMessageAttachment.__tablename__
        description = "Attachments of messages that no longer exist or belong to removed users"
        if not self.capabilities.has(name):
            return OrphanTableResult(table=name, description=description, skipped=True)

        doomed = select(UserMessage.id).where(get_dependent(UserMessage.__tablename__).orphaned())
        result = await self.db.execute(
            delete(UserMessageAttachment)
            .where(
                UserMessageAttachment.message_id.in_(doomed)
                | ~exists(
                    select(UserMessage.id).where(UserMessage.id == UserMessageAttachment.message_id)
                )
            )
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        if deleted:
            logger.info("Deleted %d orphaned row(s) from %s", deleted, name)
        return OrphanTableResult(table=name, description=description, deleted=deleted)
