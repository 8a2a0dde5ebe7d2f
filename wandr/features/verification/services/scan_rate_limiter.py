"""
Scan Rate Limiter Service
Daily scan quota per subscription tier, derived by counting today's scans.

The check is a pure read. Scans are journaled later by ScanAuditLog, so two
concurrent requests from one user can both pass the check; the quota is a
soft limit, not a security boundary.
"""

import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from wandr.config import settings
from wandr.features.verification.domain.errors import RateLimitExceeded
from wandr.features.verification.domain.models import RateLimitStatus
from wandr.features.verification.repository.scan_repository import ScanRepository
from wandr.features.verification.repository.subscription_repository import (
    SubscriptionRepository,
)
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIER_LIMITS = {"free": 5, "premium": 50}


class ScanRateLimiter:
    def __init__(
        self,
        subscriptions=SubscriptionRepository,
        scans=ScanRepository,
        tier_limits: dict[str, int] | None = None,
        timezone: str = "UTC",
        clock=None,
    ):
        self.subscriptions = subscriptions
        self.scans = scans
        self.tier_limits = dict(tier_limits or DEFAULT_TIER_LIMITS)
        self.timezone = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self.timezone))

    @classmethod
    def from_settings(cls) -> "ScanRateLimiter":
        return cls(tier_limits=settings.scan_limits(), timezone=settings.SCAN_QUOTA_TIMEZONE)

    def day_window(self) -> tuple[datetime, datetime]:
        """Start of today and start of tomorrow in the quota timezone."""
        now = self._clock().astimezone(self.timezone)
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return start, start + timedelta(days=1)

    async def check(self, user_id: str) -> RateLimitStatus:
        """Current quota state. Pure query, no mutation."""
        start_of_day, reset_at = self.day_window()

        tier, used = await asyncio.gather(
            self._lookup_tier(user_id),
            self.scans.count_since(user_id, start_of_day),
        )

        limit = self.tier_limits.get(tier, self.tier_limits["free"])
        status = RateLimitStatus(tier=tier, daily_limit=limit, used_today=used, reset_at=reset_at)

        logger.debug(
            "Scan quota checked",
            user_id=user_id,
            tier=tier,
            used=used,
            limit=limit,
            remaining=status.remaining,
        )
        return status

    async def enforce(self, user_id: str) -> RateLimitStatus:
        """Like check(), but raise RateLimitExceeded when the quota is used up."""
        status = await self.check(user_id)
        if not status.allowed:
            logger.warning(
                "Scan quota exceeded",
                user_id=user_id,
                tier=status.tier,
                used=status.used_today,
                limit=status.daily_limit,
            )
            raise RateLimitExceeded(
                self.error_message(status),
                used=status.used_today,
                limit=status.daily_limit,
                tier=status.tier,
                reset_time=status.reset_at,
            )
        return status

    async def _lookup_tier(self, user_id: str) -> str:
        # Fail open on the lookup, closed on the quota
        try:
            tier = await self.subscriptions.get_tier(user_id)
        except Exception as e:
            logger.warning("Tier lookup failed, using free tier", user_id=user_id, error=str(e))
            return "free"
        return tier if tier in self.tier_limits else "free"

    def error_message(self, status: RateLimitStatus) -> str:
        hours_until_reset = (status.reset_at - self._clock()).total_seconds() / 3600

        if hours_until_reset < 1:
            time_msg = "in less than an hour"
        elif hours_until_reset < 24:
            time_msg = f"in {int(hours_until_reset)} hours"
        else:
            time_msg = "tomorrow"

        message = (
            f"You've used all {status.daily_limit} scans for today "
            f"({status.used_today}/{status.daily_limit}). Your limit will reset {time_msg}."
        )
        if status.tier == "free":
            message += " Upgrade to Premium for more daily scans."
        return message
