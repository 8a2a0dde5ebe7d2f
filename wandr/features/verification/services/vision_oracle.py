"""
Vision oracle - image understanding for attraction verification.

Two calls are exposed to the workflow:
    describe(image)            -> free-text description (upload mode, first pass)
    match(image, candidates)   -> one VerificationResult against a candidate list

The OpenAI implementation is constructed explicitly and injected into the
workflow; construction fails immediately when credentials are missing.
"""

import asyncio
import json
import math
import re
from collections.abc import Sequence
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from wandr.config import settings
from wandr.features.verification.domain.errors import (
    OracleBusyError,
    OracleConfigurationError,
    OracleParseError,
    OracleTimeoutError,
    OracleUnavailableError,
)
from wandr.features.verification.domain.models import (
    AttractionCandidate,
    ImagePayload,
    VerificationResult,
)
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

PARSE_FAILURE_EXPLANATION = "parse failure"
NO_CANDIDATES_EXPLANATION = "No attractions available to match against"

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"\n?```\s*$")


class ImageMatchOracle(Protocol):
    async def describe(self, image: ImagePayload) -> str: ...

    async def match(
        self, image: ImagePayload, candidates: Sequence[AttractionCandidate]
    ) -> VerificationResult: ...


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

DESCRIBE_PROMPT = """Describe this image in detail, focusing on identifying the tourist attraction:

1. Type of place (museum, landmark, monument, park, religious site, tower, bridge, etc.)
2. Architectural style or natural features
3. Any visible text, signage, or labels
4. Location hints (language on signs, architectural style suggesting region/country)
5. Distinctive features that could identify this specific place
6. Iconic shapes, silhouettes, or structural elements

SPECIAL CONDITIONS:
- If NIGHTTIME: Describe lighting patterns, illuminated features, silhouettes against the sky
- If UNUSUAL ANGLE: Describe what's visible from this perspective
- If PARTIAL VIEW: Focus on the identifiable portion visible

Keep your response under 150 words and focus on facts that would help identify the location.
Name the attraction if you recognize it.
If this doesn't appear to be a tourist attraction or notable place, say so."""

_MATCH_PROMPT_HEADER = """You are an expert at identifying tourist attractions from photographs, with extensive knowledge of landmarks, monuments, religious sites, and points of interest worldwide.

Analyze the image and decide whether it shows one of the known attractions listed below.

Use your own knowledge of what these places look like. The descriptions may be short or generic; \
a landmark you recognize by name and location should be matched even if its description is unhelpful. \
Nighttime shots, unusual angles, partial views, fog, rain and crowds are all valid photos of a place.

RESPONSE FORMAT (JSON only, no markdown code blocks):
{
  "matched": boolean,
  "attractionId": "ID from the list below, or null if no match",
  "confidence": 0.0 to 1.0,
  "explanation": "Brief explanation of your reasoning"
}

CONFIDENCE GUIDELINES:
- 0.85-1.0: Clear match, you recognize this landmark
- 0.6-0.84: Good match with a partial view, unusual angle, or poor lighting
- 0.3-0.59: Possible match, some features agree but uncertainty remains
- 0.0-0.29: No match or unrelated image

Only use an attractionId that appears in the list.

KNOWN ATTRACTIONS:
"""


def _format_candidate(candidate: AttractionCandidate) -> str:
    lines = [
        "---",
        f"ID: {candidate.id}",
        f"Name: {candidate.name}",
        f"Location: {candidate.city}, {candidate.country}",
        f"Category: {candidate.category}",
        f"Description: {candidate.short_description}",
    ]
    if candidate.famous_for:
        lines.append(f"Famous For: {candidate.famous_for}")
    if candidate.highlights:
        lines.append(f"Key Features: {', '.join(candidate.highlights)}")
    lines.append("---")
    return "\n".join(lines)


def build_match_prompt(candidates: Sequence[AttractionCandidate]) -> str:
    return _MATCH_PROMPT_HEADER + "\n" + "\n\n".join(_format_candidate(c) for c in candidates)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _CODE_FENCE_START.sub("", stripped, count=1)
        stripped = _CODE_FENCE_END.sub("", stripped, count=1)
    return stripped.strip()


def clamp_confidence(value: Any) -> float:
    """Coerce any oracle confidence into [0, 1]; unusable values become 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(confidence):
        return 0.0
    return max(0.0, min(1.0, confidence))


def _load_judgment(raw_response: str) -> dict[str, Any]:
    try:
        parsed = json.loads(strip_code_fence(raw_response))
    except (json.JSONDecodeError, TypeError) as e:
        raise OracleParseError("Oracle response is not valid JSON", raw_response) from e
    if not isinstance(parsed, dict):
        raise OracleParseError("Oracle response is not a JSON object", raw_response)
    return parsed


def parse_match_response(
    raw_response: str | None, candidate_ids: set[str] | None = None
) -> VerificationResult:
    """
    Parse the oracle's match text into a VerificationResult.

    Never raises: malformed responses degrade to a zero-confidence no-match.
    When ``candidate_ids`` is given, an attractionId outside that set is
    discarded (the judgment then cannot lead to a visit).
    """
    try:
        if raw_response is None:
            raise OracleParseError("Oracle returned no text")
        parsed = _load_judgment(raw_response)
    except OracleParseError as e:
        logger.warning(
            "Failed to parse oracle match response",
            error=e.message,
            raw_response=(raw_response or "")[:200],
        )
        return VerificationResult.no_match(PARSE_FAILURE_EXPLANATION)

    attraction_id = parsed.get("attractionId")
    if attraction_id is not None:
        attraction_id = str(attraction_id).strip() or None

    if attraction_id and candidate_ids is not None and attraction_id not in candidate_ids:
        logger.warning(
            "Oracle returned attraction outside candidate list",
            attraction_id=attraction_id,
            candidate_count=len(candidate_ids),
        )
        attraction_id = None

    matched = parsed.get("matched")
    if isinstance(matched, str):
        matched = matched.strip().lower() == "true"

    explanation = parsed.get("explanation")
    return VerificationResult(
        matched=matched is True,
        confidence=clamp_confidence(parsed.get("confidence")),
        attraction_id=attraction_id,
        explanation=str(explanation) if explanation else "No explanation provided",
    )


# ---------------------------------------------------------------------------
# OpenAI implementation
# ---------------------------------------------------------------------------


class OpenAIVisionOracle:
    """
    Image match oracle backed by an OpenAI vision-capable chat model.

    Transport failures surface as OracleUnavailableError subclasses:
    provider rate limits as OracleBusyError, timeouts as OracleTimeoutError.
    Connection drops and 5xx responses are retried with backoff.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o",
        timeout_seconds: float = 45.0,
        max_retries: int = 2,
        match_max_tokens: int = 1024,
        describe_max_tokens: int = 500,
        client: AsyncOpenAI | None = None,
    ):
        if not api_key and client is None:
            raise OracleConfigurationError("OPENAI_API_KEY not configured")

        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.match_max_tokens = match_max_tokens
        self.describe_max_tokens = describe_max_tokens
        # Retries are handled here so rate limits are never retried silently
        self.client = client or AsyncOpenAI(
            api_key=api_key, timeout=timeout_seconds, max_retries=0
        )

        logger.info("Vision oracle initialized", model=model, timeout=timeout_seconds)

    @classmethod
    def from_settings(cls) -> "OpenAIVisionOracle":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            model=settings.VISION_MODEL,
            timeout_seconds=settings.VISION_TIMEOUT_SECONDS,
            max_retries=settings.VISION_MAX_RETRIES,
            match_max_tokens=settings.VISION_MAX_TOKENS,
            describe_max_tokens=settings.VISION_DESCRIBE_MAX_TOKENS,
        )

    async def describe(self, image: ImagePayload) -> str:
        text = await self._complete(image, DESCRIBE_PROMPT, self.describe_max_tokens, "describe")
        return (text or "").strip()

    async def match(
        self, image: ImagePayload, candidates: Sequence[AttractionCandidate]
    ) -> VerificationResult:
        if not candidates:
            logger.warning("Oracle match called without candidates")
            return VerificationResult.no_match(NO_CANDIDATES_EXPLANATION)

        prompt = build_match_prompt(candidates)
        text = await self._complete(image, prompt, self.match_max_tokens, "match")
        result = parse_match_response(text, {c.id for c in candidates})

        logger.info(
            "Oracle match completed",
            matched=result.matched,
            confidence=result.confidence,
            attraction_id=result.attraction_id,
            candidate_count=len(candidates),
        )
        return result

    async def _complete(
        self, image: ImagePayload, prompt: str, max_tokens: int, operation: str
    ) -> str | None:
        """Single vision call with a hard timeout and bounded retries."""
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await asyncio.wait_for(
                    self.client.chat.completions.create(
                        model=self.model,
                        max_tokens=max_tokens,
                        messages=[
                            {
                                "role": "user",
                                "content": [
                                    {
                                        "type": "image_url",
                                        "image_url": {"url": image.data_url, "detail": "high"},
                                    },
                                    {"type": "text", "text": prompt},
                                ],
                            }
                        ],
                    ),
                    timeout=self.timeout_seconds,
                )

                if not response.choices:
                    return None
                return response.choices[0].message.content

            except (TimeoutError, openai.APITimeoutError) as e:
                logger.warning(
                    "Vision oracle timed out",
                    operation=operation,
                    timeout=self.timeout_seconds,
                )
                raise OracleTimeoutError(self.timeout_seconds, api_error=str(e)) from e

            except openai.RateLimitError as e:
                logger.warning("Vision provider rate limit hit", operation=operation, error=str(e))
                raise OracleBusyError(api_error=str(e)) from e

            except (openai.APIConnectionError, openai.InternalServerError) as e:
                last_error = e
                if attempt < self.max_retries:
                    wait_time = min(2**attempt, 8)
                    logger.warning(
                        "Vision provider error, retrying",
                        operation=operation,
                        attempt=attempt + 1,
                        wait_time=wait_time,
                        error=str(e),
                    )
                    await asyncio.sleep(wait_time)

            except openai.APIError as e:
                # Client errors (bad key, invalid image) are not worth retrying
                logger.error(
                    "Vision provider rejected request",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise OracleUnavailableError(api_error=str(e), recoverable=False) from e

        logger.error(
            "Vision provider failed after all retries",
            operation=operation,
            max_retries=self.max_retries,
            final_error=str(last_error),
        )
        raise OracleUnavailableError(api_error=str(last_error)) from last_error

    async def health_check(self) -> dict[str, Any]:
        return {
            "healthy": self.client is not None,
            "service": "vision_oracle",
            "model": self.model,
            "timeout_seconds": self.timeout_seconds,
        }
