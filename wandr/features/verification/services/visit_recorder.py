"""
VisitRecorder - creates a user's visit and evaluates badges afterwards.

The visit row is written first. Badge evaluation runs only after the insert
returned, and its failures are logged and dropped so they never cost the
user their visit.
"""

from wandr.features.verification.domain.errors import AttractionNotFoundError
from wandr.features.verification.domain.models import (
    AlreadyVisited,
    BadgeAward,
    VisitOutcome,
    VisitRecorded,
)
from wandr.features.verification.repository.catalog_repository import CatalogRepository
from wandr.features.verification.repository.visit_repository import VisitRepository
from wandr.features.verification.services.badge_engine import BadgeEngine
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def auto_match_note(confidence: float) -> str:
    return f"Verified via AI vision (confidence: {round(confidence * 100)}%)"


USER_CONFIRMED_NOTE = "Verified via AI vision (user confirmed)"


class VisitRecorder:
    def __init__(
        self,
        catalog=CatalogRepository,
        visits=VisitRepository,
        badge_engine: BadgeEngine | None = None,
    ):
        self.catalog = catalog
        self.visits = visits
        self.badge_engine = badge_engine or BadgeEngine()

    async def create(
        self,
        user_id: str,
        attraction_id: str,
        is_verified: bool,
        notes: str | None = None,
        photo_url: str | None = None,
    ) -> VisitOutcome:
        """
        Record a visit.

        Returns:
            VisitRecorded on creation, AlreadyVisited if the pair already exists

        Raises:
            AttractionNotFoundError: attraction does not exist
        """
        attraction = await self.catalog.get_by_id(attraction_id, user_id)
        if attraction is None:
            logger.warning("Visit for unknown attraction", user_id=user_id, attraction_id=attraction_id)
            raise AttractionNotFoundError(attraction_id)

        visit = await self.visits.insert_if_absent(
            user_id, attraction_id, is_verified, notes=notes, photo_url=photo_url
        )
        if visit is None:
            logger.info("Attraction already visited", user_id=user_id, attraction_id=attraction_id)
            return AlreadyVisited(user_id=user_id, attraction=attraction)

        logger.info(
            "Visit recorded",
            user_id=user_id,
            attraction_id=attraction_id,
            visit_id=visit.id,
            is_verified=is_verified,
        )

        new_badges = await self._award_badges(user_id, attraction.city_id)
        return VisitRecorded(visit=visit, attraction=attraction, new_badges=new_badges)

    async def _award_badges(self, user_id: str, city_id: str | None) -> list[BadgeAward]:
        try:
            awards = await self.badge_engine.check_and_award(user_id, city_id)
        except Exception as e:
            logger.error(
                "Badge evaluation failed, visit kept",
                user_id=user_id,
                city_id=city_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []
        return [award for award in awards if award.is_new]
