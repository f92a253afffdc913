"""Delete or blacklist several users in one admin request.

Each user is processed in its own transaction; one failure never undoes the
others.
"""

import logging

from warden.core.errors import WardenError
from warden.schemas.users import BulkError, BulkOperation, BulkResponse
from warden.services.blacklist_service import BlacklistService
from warden.services.user_deletion_service import UserDeletionService

logger = logging.getLogger(__name__)


class BulkUserService:
    def __init__(self, deletion: UserDeletionService, blacklist: BlacklistService) -> None:
        self.deletion = deletion
        self.blacklist = blacklist

    async def run(
        self,
        operation: BulkOperation,
        user_ids: list[int],
        admin_id: int | None = None,
        reason: str = "",
        notes: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> BulkResponse:
        succeeded: list[int] = []
        errors: list[BulkError] = []

        for user_id in dict.fromkeys(user_ids):
            try:
                if operation is BulkOperation.DELETE:
                    await self.deletion.delete_user(user_id)
                else:
                    await self.blacklist.blacklist_user(
                        user_id,
                        admin_id,
                        reason,
                        notes,
                        ip_address=ip_address,
                        user_agent=user_agent,
                    )
            except WardenError as e:
                logger.warning("Bulk %s failed for user %s: %s", operation.value, user_id, e.message)
                errors.append(BulkError(user_id=user_id, error=e.message))
            else:
                succeeded.append(user_id)

        verb = "Deleted" if operation is BulkOperation.DELETE else "Blacklisted"
        noun = "user account(s)" if operation is BulkOperation.DELETE else "user(s)"
        if succeeded:
            message = f"{verb} {len(succeeded)} {noun}."
            if errors:
                message += f" {len(errors)} failed."
        else:
            message = f"Failed to {operation.value} users: " + ", ".join(e.error for e in errors)

        logger.info(
            "Bulk %s: %d succeeded, %d failed", operation.value, len(succeeded), len(errors)
        )
        return BulkResponse(
            success=bool(succeeded),
            message=message,
            affected_count=len(succeeded),
            succeeded=succeeded,
            errors=errors,
        )
