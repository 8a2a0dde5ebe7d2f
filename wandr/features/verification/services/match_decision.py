"""
Confidence-tiered decision policy for oracle judgments.

    no oracle call (no candidates)            -> NO_CANDIDATES
    not matched, or no attraction id          -> NO_MATCH
    confidence >= auto_match                  -> AUTO_CONFIRM
    suggest <= confidence < auto_match        -> NEEDS_CONFIRMATION
    confidence < suggest                      -> NO_MATCH

A NO_MATCH that still names an attraction with confidence >= hint is
flagged so the client can show a "might be ..." hint. Hints never record
a visit.
"""

from wandr.config import settings
from wandr.features.verification.domain.models import (
    ConfidenceThresholds,
    DecisionOutcome,
    MatchDecision,
    VerificationResult,
)


def thresholds_from_settings() -> ConfidenceThresholds:
    return ConfidenceThresholds(
        auto_match=settings.VISION_AUTO_MATCH_THRESHOLD,
        suggest=settings.VISION_SUGGEST_THRESHOLD,
        hint=settings.VISION_HINT_THRESHOLD,
    )


def decide(result: VerificationResult | None, thresholds: ConfidenceThresholds) -> MatchDecision:
    """Map one oracle judgment to exactly one outcome. Pure, no I/O."""
    if result is None:
        return MatchDecision(DecisionOutcome.NO_CANDIDATES, None)

    if not result.attraction_id:
        return MatchDecision(DecisionOutcome.NO_MATCH, result)

    if result.matched:
        if result.confidence >= thresholds.auto_match:
            return MatchDecision(DecisionOutcome.AUTO_CONFIRM, result)
        if result.confidence >= thresholds.suggest:
            return MatchDecision(DecisionOutcome.NEEDS_CONFIRMATION, result)

    return MatchDecision(
        DecisionOutcome.NO_MATCH,
        result,
        show_hint=thresholds.hint <= result.confidence < thresholds.suggest,
    )
