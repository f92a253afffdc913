"""API v1 router combining all route modules."""

from fastapi import APIRouter

from warden.api.v1 import account, health, integrity, users

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Integrity scan / repair (admin only)
api_router.include_router(
    integrity.router,
    prefix="/integrity",
    tags=["integrity"],
)

# User lifecycle: delete, blacklist, bulk (admin only)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
)

# Self-service account deletion (any authenticated user)
api_router.include_router(
    account.router,
    prefix="/account",
    tags=["account"],
)
