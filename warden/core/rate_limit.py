"""Rate limiting for the admin endpoints using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

# Full-table scans and cascades are expensive; keep admins from hammering them
INTEGRITY_SCAN_LIMIT = "10/minute"
DESTRUCTIVE_ACTION_LIMIT = "30/minute"


def get_client_ip(request: Request) -> str:
    """Extract the real client IP behind a reverse proxy."""
    return (
        request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or request.headers.get("X-Real-IP", "")
        or (request.client.host if request.client else "127.0.0.1")
    )


limiter = Limiter(key_func=get_client_ip)
