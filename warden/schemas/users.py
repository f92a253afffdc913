"""User deletion and blacklist schemas."""

import enum

from pydantic import Field

from warden.schemas.common import BaseSchema


class DeletionInitiator(str, enum.Enum):
    """Who asked for the deletion; recorded on the tombstone."""

    USER = "user"
    ADMIN = "admin"


class DeletionResult(BaseSchema):
    success: bool = True
    message: str
    receivers_notified: int = 0
    files_deleted: int = 0


class BlacklistRequest(BaseSchema):
    reason: str = Field(default="", max_length=1000)
    notes: str | None = Field(default=None, max_length=5000)


class BlacklistResult(BaseSchema):
    success: bool = True
    message: str
    entry_id: int | None = None


class BulkOperation(str, enum.Enum):
    DELETE = "delete"
    BLACKLIST = "blacklist"


class BulkRequest(BaseSchema):
    user_ids: list[int] = Field(..., min_length=1, max_length=100)
    operation: BulkOperation
    reason: str = Field(default="", max_length=1000)
    notes: str | None = Field(default=None, max_length=5000)


class BulkError(BaseSchema):
    user_id: int
    error: str


class BulkResponse(BaseSchema):
    success: bool
    message: str
    affected_count: int
    succeeded: list[int]
    errors: list[BulkError]
