"""JWT authentication for the admin API using the auth service's JWKS."""

import asyncio
import logging
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient, PyJWKClientError

from warden.core.config import settings

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)

# JWKS client for fetching public keys from the auth service
_jwks_client: PyJWKClient | None = None
_jwks_lock = asyncio.Lock()


def get_jwks_client() -> PyJWKClient:
    """Get or create JWKS client."""
    global _jwks_client  # noqa: PLW0603
    if _jwks_client is None:
        jwks_url = settings.auth_jwks_url or f"{settings.auth_url}/api/auth/jwks"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


async def verify_token(token: str) -> dict[str, Any]:
    """Verify a JWT against the auth service's JWKS.

    Raises:
        HTTPException: 401 if the token is invalid or expired, 503 if the
            key set cannot be fetched.
    """
    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        payload: dict[str, Any] = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth_url,
            issuer=settings.auth_url,
            options={"verify_exp": True, "verify_aud": True, "verify_iss": True},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except PyJWKClientError as e:
        # Reset cached client so next request retries fresh
        async with _jwks_lock:
            global _jwks_client  # noqa: PLW0603
            _jwks_client = None
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Authentication service unavailable: {e}",
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Return the decoded JWT payload of the caller.

    Raises:
        HTTPException: If no token provided or token is invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await verify_token(credentials.credentials)


async def require_admin(
    user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    """Gate a route to callers whose ``role`` claim is an admin role."""
    role = user.get("role")
    if role not in settings.admin_roles:
        logger.warning("Rejected non-admin caller %s (role=%s)", user.get("sub"), role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return user


def get_subject_id(user: dict[str, Any]) -> int:
    """Numeric user id carried in the token's ``sub`` claim."""
    try:
        return int(user["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token subject is not a user id",
        )


# Type aliases for dependency injection
CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
AdminUser = Annotated[dict[str, Any], Depends(require_admin)]
