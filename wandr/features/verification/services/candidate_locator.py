"""
CandidateLocator - narrows the catalog to the attractions worth showing the oracle.

    camera mode (coordinates)   -> nearby search around the user
    upload mode (no location)   -> oracle describe, keyword extraction, text search

The mode is decided once from the request. Both modes cap the candidate
count so the match prompt stays bounded.
"""

from wandr.db.helpers import DatabaseError
from wandr.features.verification.domain.errors import CatalogUnavailableError
from wandr.features.verification.domain.models import (
    CameraSearch,
    CandidateSet,
    UploadSearch,
    VerificationRequest,
)
from wandr.features.verification.repository.catalog_repository import CatalogRepository
from wandr.features.verification.services.keyword_extractor import (
    build_search_query,
    extract_keywords,
)
from wandr.features.verification.services.vision_oracle import ImageMatchOracle
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

NO_NEARBY_REASON = "No attractions found"
NO_NEARBY_MESSAGE = (
    "No attractions found within the specified area. Try expanding your search radius."
)
NO_KEYWORDS_REASON = "Could not identify location in image"
NO_KEYWORDS_MESSAGE = (
    "Could not identify a tourist attraction in this image. Please try a clearer photo."
)
NO_TEXT_MATCH_REASON = "No matching attractions found"
NO_TEXT_MATCH_MESSAGE = "No matching attractions found in our database."


class CandidateLocator:
    def __init__(
        self,
        oracle: ImageMatchOracle,
        catalog=CatalogRepository,
        max_candidates: int = 20,
        max_keywords: int = 5,
    ):
        self.oracle = oracle
        self.catalog = catalog
        self.max_candidates = max_candidates
        self.max_keywords = max_keywords

    async def locate(self, request: VerificationRequest, user_id: str | None = None) -> CandidateSet:
        """
        Find candidates for a request.

        Raises:
            CatalogUnavailableError: catalog query failed
            OracleUnavailableError: describe call failed (upload mode)
        """
        if request.has_partial_coordinates:
            logger.warning(
                "Only one coordinate supplied, using upload mode",
                user_id=user_id,
                has_latitude=request.latitude is not None,
                has_longitude=request.longitude is not None,
            )

        mode = request.search_mode
        try:
            if isinstance(mode, CameraSearch):
                candidates = await self._locate_nearby(mode, user_id)
            else:
                candidates = await self._locate_by_description(request, mode, user_id)
        except DatabaseError as e:
            logger.error(
                "Candidate search failed",
                user_id=user_id,
                mode=mode.name,
                operation=e.operation,
                error=str(e),
            )
            raise CatalogUnavailableError() from e

        logger.info(
            "Candidates located",
            user_id=user_id,
            mode=candidates.mode,
            candidate_count=len(candidates),
            keywords=candidates.keywords or None,
        )
        return candidates

    async def _locate_nearby(self, mode: CameraSearch, user_id: str | None) -> CandidateSet:
        attractions = await self.catalog.nearby_search(
            mode.latitude,
            mode.longitude,
            mode.radius_meters,
            None,
            self.max_candidates,
            user_id,
        )
        if not attractions:
            return CandidateSet(
                mode=mode.name,
                attractions=[],
                empty_reason=NO_NEARBY_REASON,
                empty_message=NO_NEARBY_MESSAGE,
            )
        return CandidateSet(mode=mode.name, attractions=attractions[: self.max_candidates])

    async def _locate_by_description(
        self, request: VerificationRequest, mode: UploadSearch, user_id: str | None
    ) -> CandidateSet:
        description = await self.oracle.describe(request.image)
        keywords = extract_keywords(description)

        logger.debug(
            "Image described",
            user_id=user_id,
            description_length=len(description),
            keyword_count=len(keywords),
        )

        if not keywords:
            return CandidateSet(
                mode=mode.name,
                attractions=[],
                empty_reason=NO_KEYWORDS_REASON,
                empty_message=NO_KEYWORDS_MESSAGE,
            )

        query = build_search_query(keywords, self.max_keywords)
        attractions = await self.catalog.text_search(query, self.max_candidates, user_id)
        if not attractions:
            return CandidateSet(
                mode=mode.name,
                attractions=[],
                empty_reason=NO_TEXT_MATCH_REASON,
                empty_message=NO_TEXT_MATCH_MESSAGE,
                keywords=keywords,
            )
        return CandidateSet(
            mode=mode.name, attractions=attractions[: self.max_candidates], keywords=keywords
        )
