"""
Badge engine - awards city/country/continent badges from visit progress.

Progress is the share of a location's attractions the user has visited.
Tiers: bronze 25%, silver 50%, gold 75%, platinum 100%.
"""

from typing import Any

from wandr.features.verification.domain.models import Badge, BadgeAward
from wandr.features.verification.repository.badge_repository import BadgeRepository
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

TIER_THRESHOLDS = (
    ("platinum", 100.0),
    ("gold", 75.0),
    ("silver", 50.0),
    ("bronze", 25.0),
)


def tier_for_progress(progress_percent: float) -> str | None:
    for tier, threshold in TIER_THRESHOLDS:
        if progress_percent >= threshold:
            return tier
    return None


def _row_to_badge(row: dict[str, Any]) -> Badge:
    return Badge(
        id=row["id"],
        tier=row["tier"],
        location_id=row["location_id"],
        location_name=row["location_name"],
        location_type=row["location_type"],
        earned_at=row["earned_at"],
        attractions_visited=int(row.get("attractions_visited") or 0),
        total_attractions=int(row.get("total_attractions") or 0),
        progress_percent=float(row.get("progress_percent") or 0.0),
    )


class BadgeEngine:
    def __init__(self, repository=BadgeRepository):
        self.repository = repository

    async def check_and_award(self, user_id: str, city_id: str | None) -> list[BadgeAward]:
        """Evaluate every level of the visited city's hierarchy."""
        if not city_id:
            return []

        hierarchy = await self.repository.get_location_hierarchy(city_id)
        if not hierarchy:
            logger.warning("City not found for badge evaluation", city_id=city_id)
            return []

        awards = []
        for location_type in ("city", "country", "continent"):
            award = await self._check_location(
                user_id,
                hierarchy[f"{location_type}_id"],
                hierarchy[f"{location_type}_name"],
                location_type,
            )
            if award:
                awards.append(award)
        return awards

    async def _check_location(
        self, user_id: str, location_id: str, location_name: str, location_type: str
    ) -> BadgeAward | None:
        total, visited = await self.repository.get_progress(user_id, location_id, location_type)
        if total == 0:
            return None

        progress = round(visited / total * 100, 2)
        tier = tier_for_progress(progress)
        if not tier:
            return None

        badge_id = await self.repository.ensure_badge(location_id, location_type, location_name, tier)
        awarded = await self.repository.award_if_absent(user_id, badge_id, visited, total, progress)
        if awarded:
            logger.info(
                "Badge awarded",
                user_id=user_id,
                tier=tier,
                location_type=location_type,
                location_id=location_id,
            )
            return BadgeAward(badge=_row_to_badge(awarded), is_new=True)

        existing = await self.repository.get_user_badge(user_id, badge_id)
        return BadgeAward(badge=_row_to_badge(existing), is_new=False) if existing else None
