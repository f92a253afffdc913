"""Admin user-lifecycle endpoints: hard delete, blacklist and bulk actions."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request, status

from warden.core.deps import AdminUser, Capabilities, DBSession, Janitor, Redis
from warden.core.rate_limit import DESTRUCTIVE_ACTION_LIMIT, get_client_ip, limiter
from warden.schemas.common import ErrorResponse
from warden.schemas.users import (
    BlacklistRequest,
    BlacklistResult,
    BulkOperation,
    BulkRequest,
    BulkResponse,
    DeletionInitiator,
    DeletionResult,
)
from warden.services.blacklist_service import BlacklistService
from warden.services.bulk_user_service import BulkUserService
from warden.services.user_deletion_service import UserDeletionService

router = APIRouter()


def _admin_id(admin: dict[str, Any]) -> int:
    """Numeric admin id from the token; blacklist entries must name their admin."""
    subject = str(admin.get("sub", ""))
    if not subject.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )
    return int(subject)


@router.delete(
    "/{user_id}",
    response_model=DeletionResult,
    summary="Permanently delete a user",
    description=(
        "Tombstone the user, keep a trace for their conversation partners, purge every "
        "dependent row in one transaction and then remove their media files."
    ),
)
@limiter.limit(DESTRUCTIVE_ACTION_LIMIT)
async def delete_user(
    request: Request,  # noqa: ARG001  # required by slowapi
    user_id: int,
    _admin: AdminUser,
    db: DBSession,
    capabilities: Capabilities,
    janitor: Janitor,
    redis: Redis,
) -> DeletionResult:
    service = UserDeletionService(db, capabilities, janitor, redis)
    return await service.delete_user(user_id, DeletionInitiator.ADMIN)


@router.post(
    "/{user_id}/blacklist",
    response_model=BlacklistResult,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Blacklist a user",
)
@limiter.limit(DESTRUCTIVE_ACTION_LIMIT)
async def blacklist_user(
    request: Request,
    user_id: int,
    data: BlacklistRequest,
    admin: AdminUser,
    db: DBSession,
) -> BlacklistResult:
    return await BlacklistService(db).blacklist_user(
        user_id,
        _admin_id(admin),
        data.reason,
        data.notes,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


@router.post(
    "/bulk",
    response_model=BulkResponse,
    summary="Delete or blacklist several users",
)
@limiter.limit(DESTRUCTIVE_ACTION_LIMIT)
async def bulk_operation(
    request: Request,
    data: BulkRequest,
    admin: AdminUser,
    db: DBSession,
    capabilities: Capabilities,
    janitor: Janitor,
    redis: Redis,
) -> BulkResponse:
    service = BulkUserService(
        UserDeletionService(db, capabilities, janitor, redis),
        BlacklistService(db),
    )
    return await service.run(
        data.operation,
        data.user_ids,
        admin_id=_admin_id(admin) if data.operation is BulkOperation.BLACKLIST else None,
        reason=data.reason,
        notes=data.notes,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
