"""
Tests for the daily scan quota.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from wandr.features.verification.domain.errors import RateLimitExceeded
from wandr.features.verification.services.scan_rate_limiter import ScanRateLimiter

NOW = datetime(2024, 6, 1, 15, 30, tzinfo=timezone.utc)


def _limiter(used: int, tier: str = "free", tier_error: Exception | None = None, **kwargs):
    subscriptions = AsyncMock()
    if tier_error:
        subscriptions.get_tier.side_effect = tier_error
    else:
        subscriptions.get_tier.return_value = tier
    scans = AsyncMock()
    scans.count_since.return_value = used
    limiter = ScanRateLimiter(
        subscriptions=subscriptions,
        scans=scans,
        tier_limits={"free": 5, "premium": 50},
        clock=kwargs.pop("clock", lambda: NOW),
        **kwargs,
    )
    return limiter, subscriptions, scans


@pytest.mark.asyncio
async def test_free_user_under_quota_is_allowed():
    limiter, _, scans = _limiter(used=2)

    status = await limiter.check("user-123")

    assert status.allowed is True
    assert status.tier == "free"
    assert status.daily_limit == 5
    assert status.remaining == 3
    scans.count_since.assert_awaited_once_with(
        "user-123", datetime(2024, 6, 1, tzinfo=timezone.utc)
    )


@pytest.mark.asyncio
async def test_premium_user_gets_premium_quota():
    limiter, _, _ = _limiter(used=10, tier="premium")

    status = await limiter.check("user-123")

    assert status.daily_limit == 50
    assert status.remaining == 40


@pytest.mark.asyncio
async def test_quota_resets_at_next_midnight():
    limiter, _, _ = _limiter(used=0)

    status = await limiter.check("user-123")

    assert status.reset_at == datetime(2024, 6, 2, tzinfo=timezone.utc)


@pytest.mark.asyncio
@pytest.mark.parametrize("used", [5, 6, 50, 1_000])
async def test_remaining_never_goes_negative(used):
    limiter, _, _ = _limiter(used=used)

    status = await limiter.check("user-123")

    assert status.allowed is False
    assert status.remaining == 0


@pytest.mark.asyncio
async def test_tier_lookup_failure_falls_back_to_free():
    limiter, _, _ = _limiter(used=1, tier_error=RuntimeError("users table unavailable"))

    status = await limiter.check("user-123")

    assert status.tier == "free"
    assert status.daily_limit == 5


@pytest.mark.asyncio
async def test_unknown_tier_is_treated_as_free():
    limiter, _, _ = _limiter(used=1, tier="enterprise")

    status = await limiter.check("user-123")

    assert status.tier == "free"


@pytest.mark.asyncio
async def test_enforce_raises_when_quota_used_up():
    limiter, _, _ = _limiter(used=5)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await limiter.enforce("user-123")

    error = exc_info.value
    assert error.used == 5
    assert error.limit == 5
    assert error.tier == "free"
    assert error.reset_time == datetime(2024, 6, 2, tzinfo=timezone.utc)
    assert "Upgrade to Premium" in error.message
    assert "in 8 hours" in error.message


@pytest.mark.asyncio
async def test_enforce_returns_status_when_allowed():
    limiter, _, _ = _limiter(used=4)

    status = await limiter.enforce("user-123")

    assert status.remaining == 1


@pytest.mark.asyncio
async def test_premium_message_has_no_upsell():
    limiter, _, _ = _limiter(used=50, tier="premium")

    with pytest.raises(RateLimitExceeded) as exc_info:
        await limiter.enforce("user-123")

    assert "Upgrade" not in exc_info.value.message


@pytest.mark.asyncio
async def test_day_starts_at_local_midnight_in_quota_timezone():
    # 02:00 UTC on June 1st is still May 31st in New York
    new_york = ZoneInfo("America/New_York")
    instant = datetime(2024, 6, 1, 2, 0, tzinfo=timezone.utc).astimezone(new_york)
    limiter, _, scans = _limiter(
        used=0, timezone="America/New_York", clock=lambda: instant
    )

    status = await limiter.check("user-123")

    since = scans.count_since.await_args.args[1]
    assert since.date().isoformat() == "2024-05-31"
    assert since.hour == 0
    assert status.reset_at - since == timedelta(days=1)
