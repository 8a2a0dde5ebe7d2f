"""
Tests for the end-to-end verification workflow against in-memory collaborators.
"""

from unittest.mock import AsyncMock

import pytest

from wandr.features.verification.domain.errors import (
    AttractionNotFoundError,
    OracleTimeoutError,
    RateLimitExceeded,
    RequestValidationError,
)
from wandr.features.verification.domain.models import DecisionOutcome, VerificationResult
from wandr.features.verification.services.workflow import (
    ALREADY_VISITED_MESSAGE,
    NO_MATCH_MESSAGE,
)

EIFFEL_MATCH = VerificationResult(
    matched=True,
    confidence=0.92,
    attraction_id="eiffel-tower",
    explanation="Wrought-iron lattice tower on the Champ de Mars",
)


def _judgment(confidence: float, attraction_id: str | None = "eiffel-tower", matched: bool = True):
    return VerificationResult(
        matched=matched,
        confidence=confidence,
        attraction_id=attraction_id,
        explanation="judgment",
    )


async def _verify_at_eiffel(harness, image, radius: int = 1_000):
    return await harness.workflow.verify("user-123", image, 48.8584, 2.2945, radius)


@pytest.mark.asyncio
async def test_free_user_out_of_scans_is_rejected_before_the_oracle(make_harness, valid_image):
    harness = make_harness(match_result=EIFFEL_MATCH, prior_scans=5)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await _verify_at_eiffel(harness, valid_image)

    assert exc_info.value.limit == 5
    assert harness.oracle.match_calls == []
    assert harness.oracle.describe_calls == []
    assert harness.scans.rows == []
    assert harness.catalog.nearby_calls == []


@pytest.mark.asyncio
async def test_confident_camera_match_records_visit(make_harness, valid_image):
    harness = make_harness(match_result=EIFFEL_MATCH, prior_scans=1)

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.decision is DecisionOutcome.AUTO_CONFIRM
    assert outcome.matched is True
    assert outcome.mode == "camera"
    assert outcome.attraction.id == "eiffel-tower"
    assert outcome.visit.is_verified is True
    assert outcome.visit.notes == "Verified via AI vision (confidence: 92%)"
    assert outcome.visit_created is True
    # 4 remaining before the call, one spent by this scan
    assert outcome.scans_remaining == 3
    assert ("user-123", "eiffel-tower") in harness.visits.rows
    assert len(harness.scans.rows) == 1
    assert harness.scans.rows[0]["result"] == EIFFEL_MATCH


@pytest.mark.asyncio
async def test_medium_confidence_asks_for_confirmation(make_harness, valid_image):
    harness = make_harness(match_result=_judgment(0.7), prior_scans=1)

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.decision is DecisionOutcome.NEEDS_CONFIRMATION
    assert outcome.requires_confirmation is True
    assert outcome.matched is False
    assert outcome.suggestion.id == "eiffel-tower"
    assert outcome.message == "Is this Eiffel Tower?"
    assert outcome.visit is None
    assert harness.visits.rows == {}
    assert outcome.scans_remaining == 3


@pytest.mark.asyncio
async def test_low_confidence_is_no_match(make_harness, valid_image):
    harness = make_harness(match_result=_judgment(0.1))

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.decision is DecisionOutcome.NO_MATCH
    assert outcome.matched is False
    assert outcome.message == NO_MATCH_MESSAGE
    assert outcome.hint is None
    assert harness.visits.rows == {}


@pytest.mark.asyncio
async def test_hint_band_names_the_likely_attraction_without_a_visit(make_harness, valid_image):
    harness = make_harness(match_result=_judgment(0.45))

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.decision is DecisionOutcome.NO_MATCH
    assert outcome.hint.id == "eiffel-tower"
    assert "Eiffel Tower" in outcome.message
    assert harness.visits.rows == {}


@pytest.mark.asyncio
async def test_no_nearby_candidates_never_calls_the_oracle(make_harness, valid_image):
    harness = make_harness(match_result=EIFFEL_MATCH, nearby=[], prior_scans=2)

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert harness.oracle.match_calls == []
    assert outcome.decision is DecisionOutcome.NO_CANDIDATES
    assert outcome.matched is False
    assert outcome.message.startswith("No attractions found within the specified area")
    assert outcome.scans_remaining == 2
    # The scan is still journaled
    assert len(harness.scans.rows) == 1
    assert harness.scans.rows[0]["result"].confidence == 0.0


@pytest.mark.asyncio
async def test_upload_without_identifiable_location_never_matches(make_harness, valid_image):
    harness = make_harness(
        match_result=EIFFEL_MATCH,
        description="A red brick building with no distinguishing features",
    )

    outcome = await harness.workflow.verify("user-123", valid_image)

    assert outcome.mode == "upload"
    assert outcome.message.startswith("Could not identify a tourist attraction")
    assert len(harness.oracle.describe_calls) == 1
    assert harness.oracle.match_calls == []
    assert harness.catalog.text_calls == []


@pytest.mark.asyncio
async def test_upload_with_keywords_matches_against_text_results(make_harness, valid_image, louvre):
    harness = make_harness(
        match_result=_judgment(0.9, attraction_id="louvre"),
        description="A glass pyramid at a museum in Paris",
        text=[louvre],
    )

    outcome = await harness.workflow.verify("user-123", valid_image)

    assert outcome.mode == "upload"
    assert outcome.matched is True
    assert outcome.attraction.id == "louvre"
    _, candidates = harness.oracle.match_calls[0]
    assert [c.id for c in candidates] == ["louvre"]


@pytest.mark.asyncio
async def test_scanning_a_visited_place_again_is_already_visited(make_harness, valid_image):
    harness = make_harness(match_result=EIFFEL_MATCH)

    await _verify_at_eiffel(harness, valid_image)
    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.matched is True
    assert outcome.already_visited is True
    assert outcome.message == ALREADY_VISITED_MESSAGE
    assert outcome.visit is None
    assert len(harness.visits.rows) == 1
    assert len(harness.scans.rows) == 2


@pytest.mark.asyncio
async def test_oracle_pick_outside_candidates_is_no_match(make_harness, valid_image):
    harness = make_harness(match_result=_judgment(0.99, attraction_id="big-ben"))

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.decision is DecisionOutcome.NO_MATCH
    assert harness.visits.rows == {}
    assert harness.scans.rows[0]["result"].attraction_id is None


@pytest.mark.asyncio
async def test_oracle_timeout_is_surfaced_and_not_journaled(make_harness, valid_image):
    harness = make_harness()
    harness.oracle.match = AsyncMock(side_effect=OracleTimeoutError(45.0))

    with pytest.raises(OracleTimeoutError):
        await _verify_at_eiffel(harness, valid_image)

    assert harness.scans.rows == []


@pytest.mark.asyncio
async def test_invalid_request_has_no_side_effects(make_harness):
    harness = make_harness(match_result=EIFFEL_MATCH)

    with pytest.raises(RequestValidationError):
        await harness.workflow.verify("user-123", "too-short", 48.8584, 2.2945)

    assert harness.scans.count_calls == []
    assert harness.scans.rows == []


@pytest.mark.asyncio
async def test_scans_remaining_never_negative_on_last_scan(make_harness, valid_image):
    harness = make_harness(match_result=_judgment(0.1), prior_scans=4)

    outcome = await _verify_at_eiffel(harness, valid_image)

    assert outcome.scans_remaining == 0
    status = await harness.workflow.get_status("user-123")
    assert status.remaining == 0
    assert status.used_today == 5


@pytest.mark.asyncio
async def test_confirm_suggestion_records_user_confirmed_visit(make_harness):
    harness = make_harness()

    outcome = await harness.workflow.confirm_suggestion("user-123", "louvre")

    assert outcome.matched is True
    assert outcome.already_visited is False
    assert outcome.visit.is_verified is True
    assert outcome.visit.notes == "Verified via AI vision (user confirmed)"
    # Confirms are not scans
    assert harness.scans.rows == []
    assert harness.scans.count_calls == []
    assert harness.oracle.match_calls == []


@pytest.mark.asyncio
async def test_confirm_suggestion_for_visited_place_is_success(make_harness):
    harness = make_harness()
    await harness.workflow.confirm_suggestion("user-123", "eiffel-tower")

    outcome = await harness.workflow.confirm_suggestion("user-123", "eiffel-tower")

    assert outcome.matched is True
    assert outcome.already_visited is True
    assert outcome.message == ALREADY_VISITED_MESSAGE
    assert outcome.visit is None
    assert len(harness.visits.rows) == 1


@pytest.mark.asyncio
async def test_confirm_suggestion_for_unknown_attraction(make_harness):
    harness = make_harness()

    with pytest.raises(AttractionNotFoundError):
        await harness.workflow.confirm_suggestion("user-123", "atlantis")


@pytest.mark.asyncio
async def test_get_status_reports_quota(make_harness):
    harness = make_harness(prior_scans=3, tiers={"user-123": "premium"})

    status = await harness.workflow.get_status("user-123")

    assert status.tier == "premium"
    assert status.daily_limit == 50
    assert status.used_today == 3
    assert status.remaining == 47
