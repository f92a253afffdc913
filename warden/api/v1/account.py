"""Self-service account endpoints for authenticated platform users."""

from fastapi import APIRouter, Request

from warden.core.auth import get_subject_id
from warden.core.deps import Capabilities, CurrentUser, DBSession, Janitor, Redis
from warden.core.rate_limit import DESTRUCTIVE_ACTION_LIMIT, limiter
from warden.schemas.users import DeletionInitiator, DeletionResult
from warden.services.user_deletion_service import UserDeletionService

router = APIRouter()


@router.delete(
    "",
    response_model=DeletionResult,
    summary="Delete my account",
    description="Permanently delete the caller's own account. The tombstone records the user as initiator.",
)
@limiter.limit(DESTRUCTIVE_ACTION_LIMIT)
async def delete_own_account(
    request: Request,  # noqa: ARG001  # required by slowapi
    user: CurrentUser,
    db: DBSession,
    capabilities: Capabilities,
    janitor: Janitor,
    redis: Redis,
) -> DeletionResult:
    user_id = get_subject_id(user)
    service = UserDeletionService(db, capabilities, janitor, redis)
    return await service.delete_user(user_id, DeletionInitiator.USER)
