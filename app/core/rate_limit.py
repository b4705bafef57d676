"""Wiring of the attempt limiter into the HTTP layer.

Routes depend on ``get_attempt_limiter`` only, so tests can override it and
the storage backend can change without touching the API.
"""

from __future__ import annotations

import logging

from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.core.config import RateLimitSettings, settings
from app.services.attempt_limiter import AttemptLimiter, RateLimitPolicy
from app.services.cleanup_scheduler import CleanupScheduler

logger = logging.getLogger(__name__)


_limiter: AttemptLimiter | None = None
_limiter_config: str | None = None


def build_attempt_limiter(rate_limit_settings: RateLimitSettings) -> AttemptLimiter:
    """Create a limiter with an in-memory store from settings.

    Raises:
        ValueError: If a configured policy is invalid.
    """
    default_policy = RateLimitPolicy(
        max_attempts=rate_limit_settings.max_attempts,
        window_seconds=rate_limit_settings.window_seconds,
        block_duration_seconds=rate_limit_settings.block_duration_seconds,
    )
    policies = {
        action: RateLimitPolicy(
            max_attempts=policy.max_attempts,
            window_seconds=policy.window_seconds,
            block_duration_seconds=policy.block_duration_seconds,
        )
        for action, policy in rate_limit_settings.action_policies.items()
    }
    return AttemptLimiter(
        store=InMemoryRateLimitStore(),
        default_policy=default_policy,
        policies=policies,
    )


def get_attempt_limiter() -> AttemptLimiter:
    """Return the process-wide limiter.

    The instance is cached in-module to preserve state across requests.
    If the rate limit configuration changes (primarily in tests), the limiter
    is rebuilt and previous state is dropped.
    """

    global _limiter, _limiter_config

    config = settings.rate_limit.model_dump_json(
        include={"max_attempts", "window_seconds", "block_duration_seconds", "action_policies"}
    )

    if _limiter is None or _limiter_config != config:
        _limiter = build_attempt_limiter(settings.rate_limit)
        _limiter_config = config
        logger.info(
            "attempt_limit.configured",
            extra={
                "max_attempts": settings.rate_limit.max_attempts,
                "window_s": settings.rate_limit.window_seconds,
                "block_s": settings.rate_limit.block_duration_seconds,
                "action_policies": sorted(settings.rate_limit.action_policies),
            },
        )

    return _limiter


def build_cleanup_scheduler(limiter: AttemptLimiter | None = None) -> CleanupScheduler:
    """Create a (not yet started) cleanup scheduler.

    Without an explicit limiter the scheduler resolves the process-wide one on
    every pass, so it keeps cleaning the live instance after a rebuild.
    """
    interval = settings.rate_limit.cleanup_interval_seconds
    if limiter is not None:
        return CleanupScheduler(limiter, interval_seconds=interval)
    return CleanupScheduler(resolve_limiter=get_attempt_limiter, interval_seconds=interval)
