"""Domain errors for the integrity and user-lifecycle core.

Every error carries an HTTP status and a stable machine code. The API layer
renders them as ``{"success": false, "error": ..., "code": ...}``.

Schema drift (``TransientSchemaError``) is recovered where it happens and
never reaches a client; ``TransactionFailure`` is never recovered locally.
"""

from typing import Any


class WardenError(Exception):
    """Base exception for all Warden errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_response(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class NotFoundError(WardenError):
    """A user or record that a direct lookup needs does not exist."""

    status_code = 404
    code = "not_found"


class IntegrityConflict(WardenError):
    """The requested write collides with existing state (duplicate active blacklist)."""

    status_code = 409
    code = "conflict"


class TransientSchemaError(WardenError):
    """A table or column is absent in this deployment."""

    status_code = 503
    code = "schema_unavailable"


class TransactionFailure(WardenError):
    """A transactional pipeline failed and was rolled back; safe to retry."""

    status_code = 503
    code = "transaction_failed"


class FileSystemWarning(UserWarning):
    """A media file could not be removed. Logged only, never raised to callers."""
