"""
Verification API request and response models.
JSON is camelCase on the wire; Python attributes stay snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from wandr.features.verification.domain.models import (
    AttractionSummary,
    BadgeAward,
    ConfirmOutcome,
    RateLimitStatus,
    VerifyOutcome,
    Visit,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class VerifyRequest(CamelModel):
    """Photo to verify, with optional GPS position."""

    image: str = Field(..., description="Base64 image, optionally a data:image/<type>;base64, URI")
    latitude: float | None = Field(None, description="Latitude of the user (camera mode)")
    longitude: float | None = Field(None, description="Longitude of the user (camera mode)")
    radius_meters: int | None = Field(None, description="Search radius in meters")


class ConfirmRequest(CamelModel):
    """User accepted a suggested attraction."""

    attraction_id: str = Field(..., min_length=1, description="Suggested attraction ID")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class AttractionSummaryResponse(CamelModel):
    id: str
    name: str
    city: str
    country: str
    category: str
    thumbnail_url: str | None = None
    distance_meters: float | None = None
    is_favorited: bool | None = None

    @classmethod
    def from_domain(cls, attraction: AttractionSummary | None) -> "AttractionSummaryResponse | None":
        if attraction is None:
            return None
        return cls(
            id=attraction.id,
            name=attraction.name,
            city=attraction.city,
            country=attraction.country,
            category=attraction.category,
            thumbnail_url=attraction.thumbnail_url,
            distance_meters=attraction.distance_meters,
            is_favorited=attraction.is_favorited,
        )


class VisitResponse(CamelModel):
    id: str
    attraction_id: str
    visit_date: datetime
    is_verified: bool
    notes: str | None = None

    @classmethod
    def from_domain(cls, visit: Visit | None) -> "VisitResponse | None":
        if visit is None:
            return None
        return cls(
            id=visit.id,
            attraction_id=visit.attraction_id,
            visit_date=visit.visit_date,
            is_verified=visit.is_verified,
            notes=visit.notes,
        )


class BadgeResponse(CamelModel):
    id: str
    tier: str
    location_id: str
    location_name: str
    location_type: str
    earned_at: datetime
    is_new: bool

    @classmethod
    def from_domain(cls, award: BadgeAward) -> "BadgeResponse":
        badge = award.badge
        return cls(
            id=badge.id,
            tier=badge.tier,
            location_id=badge.location_id,
            location_name=badge.location_name,
            location_type=badge.location_type,
            earned_at=badge.earned_at,
            is_new=award.is_new,
        )


class VerifyResponse(CamelModel):
    """Result of one scan. Optional fields are omitted when empty."""

    matched: bool
    confidence: float
    explanation: str | None = None
    message: str | None = None
    requires_confirmation: bool | None = None
    already_visited: bool | None = None
    attraction: AttractionSummaryResponse | None = None
    suggestion: AttractionSummaryResponse | None = None
    hint: AttractionSummaryResponse | None = None
    visit: VisitResponse | None = None
    new_badges: list[BadgeResponse] = Field(default_factory=list)
    scans_remaining: int
    mode: str

    @classmethod
    def from_outcome(cls, outcome: VerifyOutcome) -> "VerifyResponse":
        return cls(
            matched=outcome.matched,
            confidence=outcome.confidence,
            explanation=outcome.explanation,
            message=outcome.message,
            requires_confirmation=outcome.requires_confirmation or None,
            already_visited=outcome.already_visited or None,
            attraction=AttractionSummaryResponse.from_domain(outcome.attraction),
            suggestion=AttractionSummaryResponse.from_domain(outcome.suggestion),
            hint=AttractionSummaryResponse.from_domain(outcome.hint),
            visit=VisitResponse.from_domain(outcome.visit),
            new_badges=[BadgeResponse.from_domain(award) for award in outcome.new_badges],
            scans_remaining=outcome.scans_remaining,
            mode=outcome.mode,
        )


class ConfirmResponse(CamelModel):
    matched: bool
    attraction: AttractionSummaryResponse
    visit: VisitResponse | None = None
    already_visited: bool | None = None
    message: str | None = None
    new_badges: list[BadgeResponse] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: ConfirmOutcome) -> "ConfirmResponse":
        return cls(
            matched=outcome.matched,
            attraction=AttractionSummaryResponse.from_domain(outcome.attraction),
            visit=VisitResponse.from_domain(outcome.visit),
            already_visited=outcome.already_visited or None,
            message=outcome.message,
            new_badges=[BadgeResponse.from_domain(award) for award in outcome.new_badges],
        )


class ScanStatusResponse(CamelModel):
    tier: str
    daily_limit: int
    scans_used: int
    scans_remaining: int
    resets_at: datetime

    @classmethod
    def from_status(cls, status: RateLimitStatus) -> "ScanStatusResponse":
        return cls(
            tier=status.tier,
            daily_limit=status.daily_limit,
            scans_used=status.used_today,
            scans_remaining=status.remaining,
            resets_at=status.reset_at,
        )


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody
