"""
Subscription tier lookup for scan quotas.
"""

from wandr.db.helpers import fetch_one
from wandr.features.verification.domain.models import SubscriptionTier
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SubscriptionRepository:
    @staticmethod
    async def get_tier(user_id: str) -> SubscriptionTier:
        """
        Effective tier for quota purposes.

        Premium only counts while the subscription is active; unknown users
        fall back to free.
        """
        row = await fetch_one(
            """
            SELECT subscription_tier, subscription_status
            FROM users
            WHERE id::text = %s
            """,
            (user_id,),
        )

        if not row:
            logger.warning("User not found for tier lookup, using free tier", user_id=user_id)
            return "free"

        if row.get("subscription_tier") == "premium" and row.get("subscription_status") == "active":
            return "premium"
        return "free"
