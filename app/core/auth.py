"""API key authentication.

Two key sets are configured through the environment:
- ``APP_API_KEYS``: services that report attempts (``/v1/attempts``).
- ``APP_ADMIN_API_KEYS``: operators allowed to purge limiter state (``/v1/admin``).

Admin keys are also accepted on the attempts endpoints; consumer keys are
never accepted on admin endpoints.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 ,key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _key_hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def validate_api_key(provided_key: str, *, admin: bool = False) -> None:
    """Validate a key against the configured key sets.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: API key to validate.
        admin: Require an admin key instead of a consumer key.

    Raises:
        AuthenticationAppError: If the key is invalid, or authentication is
            required but no keys are configured for the requested scope.
    """
    if not settings.app.api_key_required:
        return

    admin_keys = parse_api_keys(settings.app.admin_api_keys)
    valid_keys = admin_keys if admin else parse_api_keys(settings.app.api_keys) | admin_keys
    scope = "admin" if admin else "consumer"

    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_not_configured", "scope": scope},
        )
        env_var = "APP_ADMIN_API_KEYS" if admin else "APP_API_KEYS"
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": f"Set {env_var} or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if provided_key not in valid_keys:
        logger.warning(
            "api_key_validation_failed",
            extra={
                "reason": "invalid_api_key",
                "scope": scope,
                "api_key_hash": _key_hash(provided_key),
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


def _verify(x_api_key: str | None, *, admin: bool) -> None:
    if not settings.app.api_key_required:
        return

    if not x_api_key:
        logger.warning("auth.missing_key", extra={"scope": "admin" if admin else "consumer"})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key, admin=admin)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding the attempts endpoints.

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    _verify(x_api_key, admin=False)


async def verify_admin_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding the admin endpoints.

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    _verify(x_api_key, admin=True)
