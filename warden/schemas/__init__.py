"""Pydantic schemas for request/response validation."""

from warden.schemas.common import ErrorResponse, HealthResponse

__all__ = [
    "HealthResponse",
    "ErrorResponse",
]
