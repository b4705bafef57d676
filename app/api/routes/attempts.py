from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from app.core.auth import verify_admin_api_key, verify_api_key
from app.core.errors import RateLimitedAppError
from app.core.rate_limit import get_attempt_limiter
from app.schemas.attempts import (
    AttemptCheckResponse,
    AttemptRequest,
    AttemptStatusResponse,
    CleanupResponse,
)
from app.services.attempt_limiter import AttemptLimiter

router = APIRouter(tags=["Attempts"])
admin_router = APIRouter(tags=["Admin"], dependencies=[Depends(verify_admin_api_key)])


@router.post(
    "/attempts/check",
    response_model=AttemptCheckResponse,
    dependencies=[Depends(verify_api_key)],
    responses={429: {"description": "Too many attempts; see Retry-After."}},
)
def check_attempt(
    payload: AttemptRequest,
    limiter: AttemptLimiter = Depends(get_attempt_limiter),
) -> AttemptCheckResponse:
    """Record an attempt and decide whether the caller may proceed.

    Call this right before forwarding a login/register/password reset request
    to the identity provider.

    Raises:
        RateLimitedAppError: When the key is blocked (mapped to HTTP 429).
    """
    result = limiter.check_limit(payload.identifier, payload.action)
    if not result.allowed:
        raise RateLimitedAppError(
            code="too_many_attempts",
            message=result.message or "Too many attempts.",
            details={"retry_after": result.retry_after or 0, "action": payload.action},
        )
    return AttemptCheckResponse(allowed=True, remaining_attempts=result.remaining_attempts or 0)


@router.post(
    "/attempts/reset",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_api_key)],
)
def reset_attempts(
    payload: AttemptRequest,
    limiter: AttemptLimiter = Depends(get_attempt_limiter),
) -> Response:
    """Clear the history of a key after the action succeeded."""
    limiter.reset(payload.identifier, payload.action)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/attempts/status",
    response_model=AttemptStatusResponse,
    dependencies=[Depends(verify_api_key)],
)
def attempt_status(
    payload: AttemptRequest,
    limiter: AttemptLimiter = Depends(get_attempt_limiter),
) -> AttemptStatusResponse:
    """Advisory snapshot of a key. Does not record an attempt."""
    snapshot = limiter.get_status(payload.identifier, payload.action)
    if snapshot is None:
        return AttemptStatusResponse(tracked=False)
    return AttemptStatusResponse(
        tracked=True,
        attempts=snapshot.attempts,
        remaining=snapshot.remaining,
        blocked=snapshot.blocked,
        blocked_until=snapshot.blocked_until,
    )


@admin_router.post("/admin/attempts/cleanup", response_model=CleanupResponse)
def run_cleanup(limiter: AttemptLimiter = Depends(get_attempt_limiter)) -> CleanupResponse:
    """Evict expired entries now instead of waiting for the scheduler."""
    removed = limiter.cleanup()
    return CleanupResponse(removed=removed, entries=limiter.stats()["entries"])


@admin_router.delete("/admin/attempts", status_code=status.HTTP_204_NO_CONTENT)
def clear_attempts(limiter: AttemptLimiter = Depends(get_attempt_limiter)) -> Response:
    """Forget every tracked key."""
    limiter.clear_all()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
