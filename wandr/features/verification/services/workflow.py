"""
Verification workflow - "prove you visited this place" from a photo.

verify() runs a fixed sequence per request:

    1. validate the request
    2. check the daily scan quota (no further work when exhausted)
    3. locate candidates; an empty set is journaled and answered without the oracle
    4. ask the oracle to match the image against the candidates
    5. journal the scan
    6. decide (auto-confirm / needs confirmation / no match)
    7. record the visit when auto-confirmed

confirm_suggestion() is the follow-up to a NEEDS_CONFIRMATION answer. It
skips the quota, the oracle and the journal and goes straight to the visit.

Every verify() response reports scansRemaining as the pre-call remaining
count minus the scan this call journals.
"""

from dataclasses import replace

from wandr.config import settings
from wandr.features.verification.domain.models import (
    AlreadyVisited,
    CandidateSet,
    ConfidenceThresholds,
    ConfirmOutcome,
    DecisionOutcome,
    RateLimitStatus,
    VerificationRequest,
    VerificationResult,
    VerifyOutcome,
)
from wandr.features.verification.services.candidate_locator import CandidateLocator
from wandr.features.verification.services.match_decision import decide, thresholds_from_settings
from wandr.features.verification.services.scan_audit import ScanAuditLog
from wandr.features.verification.services.scan_rate_limiter import ScanRateLimiter
from wandr.features.verification.services.vision_oracle import ImageMatchOracle
from wandr.features.verification.services.visit_recorder import (
    USER_CONFIRMED_NOTE,
    VisitRecorder,
    auto_match_note,
)
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

NO_MATCH_MESSAGE = "No matching attraction found. Please try a different angle or clearer photo."
ALREADY_VISITED_MESSAGE = "You have already visited this attraction!"


def suggestion_message(name: str) -> str:
    return f"Is this {name}?"


def visit_message(name: str) -> str:
    return f"Visit to {name} recorded!"


def hint_message(name: str) -> str:
    return f"This might be {name}. Try a clearer photo or a different angle."


class VerificationWorkflow:
    def __init__(
        self,
        oracle: ImageMatchOracle,
        rate_limiter: ScanRateLimiter,
        locator: CandidateLocator,
        audit_log: ScanAuditLog,
        recorder: VisitRecorder,
        thresholds: ConfidenceThresholds | None = None,
        min_image_length: int = 100,
        default_radius: int = 50_000,
        min_radius: int = 1_000,
        max_radius: int = 100_000,
    ):
        self.oracle = oracle
        self.rate_limiter = rate_limiter
        self.locator = locator
        self.audit_log = audit_log
        self.recorder = recorder
        self.thresholds = thresholds or ConfidenceThresholds()
        self.min_image_length = min_image_length
        self.default_radius = default_radius
        self.min_radius = min_radius
        self.max_radius = max_radius

    @classmethod
    def from_settings(cls, oracle: ImageMatchOracle) -> "VerificationWorkflow":
        """Wire the workflow against the configured database-backed collaborators."""
        return cls(
            oracle=oracle,
            rate_limiter=ScanRateLimiter.from_settings(),
            locator=CandidateLocator(
                oracle,
                max_candidates=settings.VISION_MAX_CANDIDATES,
                max_keywords=settings.MAX_KEYWORDS_IN_QUERY,
            ),
            audit_log=ScanAuditLog(
                preview_max_chars=settings.SCAN_PREVIEW_MAX_CHARS,
                timezone=settings.SCAN_QUOTA_TIMEZONE,
            ),
            recorder=VisitRecorder(),
            thresholds=thresholds_from_settings(),
            min_image_length=settings.SCAN_MIN_IMAGE_LENGTH,
            default_radius=settings.SCAN_RADIUS_DEFAULT_METERS,
            min_radius=settings.SCAN_RADIUS_MIN_METERS,
            max_radius=settings.SCAN_RADIUS_MAX_METERS,
        )

    async def verify(
        self,
        user_id: str,
        image: str,
        latitude: float | None = None,
        longitude: float | None = None,
        radius_meters: int | None = None,
    ) -> VerifyOutcome:
        """
        Verify a visit from a photo.

        Raises:
            RequestValidationError: malformed request, nothing recorded
            RateLimitExceeded: daily quota used up, nothing recorded
            CatalogUnavailableError: candidate search failed
            OracleUnavailableError: oracle failed or timed out, no scan journaled
            AttractionNotFoundError: matched attraction vanished from the catalog
        """
        request = VerificationRequest.build(
            image,
            latitude,
            longitude,
            radius_meters,
            min_image_length=self.min_image_length,
            default_radius=self.default_radius,
            min_radius=self.min_radius,
            max_radius=self.max_radius,
        )

        quota = await self.rate_limiter.enforce(user_id)
        scans_remaining = max(0, quota.remaining - 1)

        candidates = await self.locator.locate(request, user_id)
        if not candidates:
            return await self._answer_without_candidates(
                user_id, request, candidates, scans_remaining
            )

        result = self._within_candidates(
            await self.oracle.match(request.image, candidates.candidates), candidates
        )
        await self.audit_log.record(user_id, result, request.image.data)

        decision = decide(result, self.thresholds)
        logger.info(
            "Verification decided",
            user_id=user_id,
            mode=candidates.mode,
            outcome=decision.outcome.value,
            confidence=result.confidence,
            attraction_id=result.attraction_id,
            candidate_count=len(candidates),
        )

        if decision.outcome is DecisionOutcome.AUTO_CONFIRM:
            return await self._auto_confirm(user_id, result, candidates, scans_remaining)

        if decision.outcome is DecisionOutcome.NEEDS_CONFIRMATION:
            suggestion = candidates.find(result.attraction_id)
            return VerifyOutcome(
                decision=decision.outcome,
                mode=candidates.mode,
                matched=False,
                confidence=result.confidence,
                scans_remaining=scans_remaining,
                explanation=result.explanation,
                message=suggestion_message(suggestion.name),
                requires_confirmation=True,
                suggestion=suggestion,
            )

        hint = candidates.find(result.attraction_id) if decision.show_hint else None
        return VerifyOutcome(
            decision=decision.outcome,
            mode=candidates.mode,
            matched=False,
            confidence=result.confidence,
            scans_remaining=scans_remaining,
            explanation=result.explanation,
            message=hint_message(hint.name) if hint else NO_MATCH_MESSAGE,
            hint=hint,
        )

    async def confirm_suggestion(self, user_id: str, attraction_id: str) -> ConfirmOutcome:
        """
        Record a visit the user confirmed from a suggestion.

        Raises:
            AttractionNotFoundError: attraction does not exist
        """
        outcome = await self.recorder.create(
            user_id, attraction_id, is_verified=True, notes=USER_CONFIRMED_NOTE
        )

        if isinstance(outcome, AlreadyVisited):
            return ConfirmOutcome(
                attraction=outcome.attraction,
                already_visited=True,
                message=ALREADY_VISITED_MESSAGE,
            )

        return ConfirmOutcome(
            attraction=outcome.attraction,
            visit=outcome.visit,
            message=visit_message(outcome.attraction.name),
            new_badges=outcome.new_badges,
        )

    async def get_status(self, user_id: str) -> RateLimitStatus:
        return await self.rate_limiter.check(user_id)

    @staticmethod
    def _within_candidates(result: VerificationResult, candidates: CandidateSet) -> VerificationResult:
        if result.attraction_id and candidates.find(result.attraction_id) is None:
            logger.warning(
                "Oracle matched an attraction outside the candidates",
                attraction_id=result.attraction_id,
                candidate_count=len(candidates),
            )
            return replace(result, attraction_id=None)
        return result

    async def _answer_without_candidates(
        self,
        user_id: str,
        request: VerificationRequest,
        candidates: CandidateSet,
        scans_remaining: int,
    ) -> VerifyOutcome:
        result = VerificationResult.no_match(candidates.empty_reason or "No attractions found")
        await self.audit_log.record(user_id, result, request.image.data)

        logger.info(
            "Verification ended without candidates",
            user_id=user_id,
            mode=candidates.mode,
            reason=candidates.empty_reason,
        )
        return VerifyOutcome(
            decision=DecisionOutcome.NO_CANDIDATES,
            mode=candidates.mode,
            matched=False,
            confidence=0.0,
            scans_remaining=scans_remaining,
            explanation=result.explanation,
            message=candidates.empty_message,
        )

    async def _auto_confirm(
        self,
        user_id: str,
        result: VerificationResult,
        candidates: CandidateSet,
        scans_remaining: int,
    ) -> VerifyOutcome:
        outcome = await self.recorder.create(
            user_id,
            result.attraction_id,
            is_verified=True,
            notes=auto_match_note(result.confidence),
        )

        if isinstance(outcome, AlreadyVisited):
            return VerifyOutcome(
                decision=DecisionOutcome.AUTO_CONFIRM,
                mode=candidates.mode,
                matched=True,
                confidence=result.confidence,
                scans_remaining=scans_remaining,
                explanation=result.explanation,
                message=ALREADY_VISITED_MESSAGE,
                already_visited=True,
                attraction=outcome.attraction,
            )

        return VerifyOutcome(
            decision=DecisionOutcome.AUTO_CONFIRM,
            mode=candidates.mode,
            matched=True,
            confidence=result.confidence,
            scans_remaining=scans_remaining,
            explanation=result.explanation,
            message=visit_message(outcome.attraction.name),
            attraction=outcome.attraction,
            visit=outcome.visit,
            new_badges=outcome.new_badges,
        )
