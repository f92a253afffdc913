"""Common Pydantic schemas used across the API."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str
    version: str
    environment: str
    checks: dict[str, str]


class ErrorResponse(BaseSchema):
    """Error envelope returned for every handled error."""

    success: bool = False
    error: str
    code: str | None = None
    detail: str | None = None
