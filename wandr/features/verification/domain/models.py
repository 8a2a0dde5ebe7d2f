"""
Domain models for the attraction verification feature.

Plain dataclasses shared by repositories, services and the API layer. The
only behaviour kept here is construction and validation of values that must
never exist in an invalid state (image payloads, search modes, thresholds).
"""

import base64
import binascii
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from .errors import RequestValidationError

SubscriptionTier = Literal["free", "premium"]
SearchModeName = Literal["camera", "upload"]

DEFAULT_AUTO_MATCH_THRESHOLD = 0.85
DEFAULT_SUGGEST_THRESHOLD = 0.60
DEFAULT_HINT_THRESHOLD = 0.30

SUPPORTED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DEFAULT_MEDIA_TYPE = "image/jpeg"

_DATA_URI_PATTERN = re.compile(r"^data:(image/[\w.+-]+);base64,")


# ---------------------------------------------------------------------------
# Catalog projections
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class AttractionCandidate:
    """Read-only projection of an attraction used to build the matching prompt."""

    id: str
    name: str
    city: str
    country: str
    category: str
    short_description: str
    famous_for: str | None = None
    highlights: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class AttractionSummary:
    """Catalog row as returned by nearby/text search and lookups."""

    id: str
    name: str
    city: str
    country: str
    category: str
    short_description: str = ""
    thumbnail_url: str | None = None
    city_id: str | None = None
    distance_meters: float | None = None
    is_favorited: bool | None = None

    def to_candidate(self) -> AttractionCandidate:
        # Catalog searches do not populate famous_for / highlights
        return AttractionCandidate(
            id=self.id,
            name=self.name,
            city=self.city,
            country=self.country,
            category=self.category,
            short_description=self.short_description,
        )


# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ImagePayload:
    """Base64 image with its media type; any data URI header already stripped."""

    media_type: str
    data: str

    @classmethod
    def parse(cls, raw: str, min_length: int = 100) -> "ImagePayload":
        """
        Parse a base64 image, optionally prefixed with ``data:image/<type>;base64,``.

        Raises:
            RequestValidationError: empty/short/undecodable data or unsupported type
        """
        if not isinstance(raw, str) or not raw.strip():
            raise RequestValidationError("Image data is required", field="image")

        raw = raw.strip()
        media_type = DEFAULT_MEDIA_TYPE
        data = raw

        if raw.startswith("data:"):
            match = _DATA_URI_PATTERN.match(raw)
            if not match:
                raise RequestValidationError("Invalid image data URI", field="image")
            media_type = match.group(1).lower()
            if media_type == "image/jpg":
                media_type = DEFAULT_MEDIA_TYPE
            data = raw[match.end():]

        # Line-wrapped base64 (MIME style) is common from mobile encoders
        data = "".join(data.split())

        if media_type not in SUPPORTED_MEDIA_TYPES:
            raise RequestValidationError(
                f"Unsupported image type: {media_type}", field="image"
            )

        if len(data) < min_length:
            raise RequestValidationError("Invalid image data", field="image")

        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise RequestValidationError("Image is not valid base64", field="image") from e

        return cls(media_type=media_type, data=data)

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"

    def preview(self, max_chars: int) -> str:
        return self.data[:max_chars]


@dataclass(slots=True, frozen=True)
class CameraSearch:
    """Coordinates present: search near the user."""

    latitude: float
    longitude: float
    radius_meters: int

    name: SearchModeName = field(default="camera", init=False)


@dataclass(slots=True, frozen=True)
class UploadSearch:
    """No usable coordinates: describe the image, then search by keywords."""

    name: SearchModeName = field(default="upload", init=False)


SearchMode = CameraSearch | UploadSearch


@dataclass(slots=True, frozen=True)
class VerificationRequest:
    image: ImagePayload
    latitude: float | None
    longitude: float | None
    radius_meters: int

    @classmethod
    def build(
        cls,
        image: str,
        latitude: float | None = None,
        longitude: float | None = None,
        radius_meters: int | None = None,
        *,
        min_image_length: int = 100,
        default_radius: int = 50_000,
        min_radius: int = 1_000,
        max_radius: int = 100_000,
    ) -> "VerificationRequest":
        """Validate raw request values. Raises RequestValidationError."""
        payload = ImagePayload.parse(image, min_length=min_image_length)

        radius = default_radius if radius_meters is None else radius_meters
        if not (min_radius <= radius <= max_radius):
            raise RequestValidationError(
                f"radiusMeters must be between {min_radius} and {max_radius}",
                field="radiusMeters",
            )

        if latitude is not None and (not math.isfinite(latitude) or not -90 <= latitude <= 90):
            raise RequestValidationError("latitude must be between -90 and 90", field="latitude")
        if longitude is not None and (
            not math.isfinite(longitude) or not -180 <= longitude <= 180
        ):
            raise RequestValidationError(
                "longitude must be between -180 and 180", field="longitude"
            )

        return cls(
            image=payload, latitude=latitude, longitude=longitude, radius_meters=int(radius)
        )

    @property
    def has_partial_coordinates(self) -> bool:
        return (self.latitude is None) != (self.longitude is None)

    @property
    def search_mode(self) -> SearchMode:
        # A lone latitude or longitude is treated as no location at all
        if self.latitude is not None and self.longitude is not None:
            return CameraSearch(self.latitude, self.longitude, self.radius_meters)
        return UploadSearch()


# ---------------------------------------------------------------------------
# Oracle judgment and decision
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class VerificationResult:
    matched: bool
    confidence: float
    attraction_id: str | None
    explanation: str

    @classmethod
    def no_match(cls, explanation: str) -> "VerificationResult":
        return cls(matched=False, confidence=0.0, attraction_id=None, explanation=explanation)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": self.matched,
            "confidence": self.confidence,
            "attractionId": self.attraction_id,
            "explanation": self.explanation,
        }


class DecisionOutcome(str, Enum):
    NO_CANDIDATES = "no_candidates"
    NO_MATCH = "no_match"
    AUTO_CONFIRM = "auto_confirm"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass(slots=True, frozen=True)
class ConfidenceThresholds:
    auto_match: float = DEFAULT_AUTO_MATCH_THRESHOLD
    suggest: float = DEFAULT_SUGGEST_THRESHOLD
    hint: float = DEFAULT_HINT_THRESHOLD

    def __post_init__(self):
        if not (0.0 <= self.hint <= self.suggest <= self.auto_match <= 1.0):
            raise ValueError(
                "Thresholds must satisfy 0 <= hint <= suggest <= auto_match <= 1, "
                f"got hint={self.hint} suggest={self.suggest} auto_match={self.auto_match}"
            )


@dataclass(slots=True, frozen=True)
class MatchDecision:
    outcome: DecisionOutcome
    result: VerificationResult | None
    show_hint: bool = False


@dataclass(slots=True)
class CandidateSet:
    """Output of candidate location: what to show the oracle and why it may be empty."""

    mode: SearchModeName
    attractions: list[AttractionSummary]
    empty_reason: str | None = None
    empty_message: str | None = None
    keywords: list[str] = field(default_factory=list)

    @property
    def candidates(self) -> list[AttractionCandidate]:
        return [attraction.to_candidate() for attraction in self.attractions]

    def find(self, attraction_id: str | None) -> AttractionSummary | None:
        if attraction_id is None:
            return None
        for attraction in self.attractions:
            if attraction.id == attraction_id:
                return attraction
        return None

    def __len__(self) -> int:
        return len(self.attractions)


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class RateLimitStatus:
    tier: SubscriptionTier
    daily_limit: int
    used_today: int
    reset_at: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.daily_limit - self.used_today)

    @property
    def allowed(self) -> bool:
        return self.used_today < self.daily_limit


# ---------------------------------------------------------------------------
# Visits and badges
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Visit:
    id: str
    user_id: str
    attraction_id: str
    visit_date: datetime
    is_verified: bool
    photo_url: str | None = None
    notes: str | None = None


@dataclass(slots=True, frozen=True)
class Badge:
    id: str
    tier: str
    location_id: str
    location_name: str
    location_type: str
    earned_at: datetime
    attractions_visited: int = 0
    total_attractions: int = 0
    progress_percent: float = 0.0


@dataclass(slots=True, frozen=True)
class BadgeAward:
    badge: Badge
    is_new: bool


@dataclass(slots=True, frozen=True)
class VisitRecorded:
    visit: Visit
    attraction: AttractionSummary
    new_badges: list[BadgeAward] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class AlreadyVisited:
    user_id: str
    attraction: AttractionSummary


VisitOutcome = VisitRecorded | AlreadyVisited


# ---------------------------------------------------------------------------
# Workflow outcomes
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class VerifyOutcome:
    """Everything the caller needs to render one verify() call."""

    decision: DecisionOutcome
    mode: SearchModeName
    matched: bool
    confidence: float
    scans_remaining: int
    explanation: str | None = None
    message: str | None = None
    requires_confirmation: bool = False
    already_visited: bool = False
    attraction: AttractionSummary | None = None
    suggestion: AttractionSummary | None = None
    hint: AttractionSummary | None = None
    visit: Visit | None = None
    new_badges: list[BadgeAward] = field(default_factory=list)

    @property
    def visit_created(self) -> bool:
        return self.visit is not None


@dataclass(slots=True, frozen=True)
class ConfirmOutcome:
    attraction: AttractionSummary
    visit: Visit | None = None
    already_visited: bool = False
    message: str | None = None
    new_badges: list[BadgeAward] = field(default_factory=list)

    # A confirmed suggestion is always a match, new or repeated
    matched: bool = field(default=True, init=False)
