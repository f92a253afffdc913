"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from warden.core.config import settings
from warden.core.deps import DBSession, Redis
from warden.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DBSession, redis: Redis) -> dict[str, Any]:
    """
    Health check endpoint.

    Checks database and cache connectivity and returns service status.
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "version": settings.version,
        "environment": settings.environment,
        "checks": {},
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except SQLAlchemyError as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"unhealthy: {e}"

    # The cache only backs invalidation, so an outage degrades rather than fails
    try:
        await redis.ping()
        health_status["checks"]["redis"] = "healthy"
    except (RedisError, OSError) as e:
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"
        health_status["checks"]["redis"] = f"unhealthy: {e}"

    return health_status


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """
    Liveness probe for container orchestration.

    Simple check that the service is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str]:
    """
    Readiness probe for container orchestration.

    Checks that the database answers.
    """
    await db.execute(text("SELECT 1"))

    return {"status": "ready"}
