"""Tests for building the limiter from settings."""

import pytest
from pydantic import ValidationError

from app.adapters.rate_limit.base import RateLimitEntry
from app.core import rate_limit
from app.core.config import RateLimitSettings, settings
from app.services.attempt_limiter import RateLimitPolicy
from app.services.cleanup_scheduler import CleanupScheduler


def test_defaults_match_login_policy() -> None:
    cfg = RateLimitSettings()

    assert cfg.max_attempts == 5
    assert cfg.window_seconds == 900
    assert cfg.block_duration_seconds == 1800
    assert cfg.cleanup_interval_seconds == 300
    assert cfg.action_policies == {}


def test_action_policies_parsed_from_json_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "RATE_LIMIT_ACTION_POLICIES",
        '{"reset-password": {"max_attempts": 3, "window_seconds": 3600, "block_duration_seconds": 3600}}',
    )

    cfg = RateLimitSettings()

    assert cfg.action_policies["reset-password"].max_attempts == 3


@pytest.mark.parametrize("field", ["max_attempts", "window_seconds", "block_duration_seconds"])
def test_rejects_non_positive_limits(field: str) -> None:
    with pytest.raises(ValidationError):
        RateLimitSettings(**{field: 0})


def test_build_attempt_limiter_applies_policies() -> None:
    cfg = RateLimitSettings(
        max_attempts=2,
        window_seconds=60,
        block_duration_seconds=120,
        action_policies={
            "payment": {"max_attempts": 10, "window_seconds": 300, "block_duration_seconds": 300}
        },
    )

    limiter = rate_limit.build_attempt_limiter(cfg)

    assert limiter.policy_for("login") == RateLimitPolicy(2, 60, 120)
    assert limiter.policy_for("payment") == RateLimitPolicy(10, 300, 300)


def test_get_attempt_limiter_is_cached() -> None:
    assert rate_limit.get_attempt_limiter() is rate_limit.get_attempt_limiter()


def test_get_attempt_limiter_rebuilds_on_config_change(monkeypatch: pytest.MonkeyPatch) -> None:
    before = rate_limit.get_attempt_limiter()

    monkeypatch.setattr(settings.rate_limit, "max_attempts", 7)
    after = rate_limit.get_attempt_limiter()

    assert after is not before
    assert after.policy_for("login").max_attempts == 7


def test_build_cleanup_scheduler_uses_configured_interval() -> None:
    scheduler = rate_limit.build_cleanup_scheduler()

    assert isinstance(scheduler, CleanupScheduler)
    assert scheduler.interval_seconds == float(settings.rate_limit.cleanup_interval_seconds)
    assert scheduler.status()["running"] is False


def test_cleanup_scheduler_follows_rebuilt_limiter(monkeypatch: pytest.MonkeyPatch) -> None:
    scheduler = rate_limit.build_cleanup_scheduler()
    before = rate_limit.get_attempt_limiter()

    monkeypatch.setattr(settings.rate_limit, "max_attempts", 9)
    after = rate_limit.get_attempt_limiter()
    after.store.set("login:old@x.com", RateLimitEntry(count=1, first_attempt=0.0))

    assert after is not before
    assert scheduler.run_once() == 1
    assert after.store.get("login:old@x.com") is None
