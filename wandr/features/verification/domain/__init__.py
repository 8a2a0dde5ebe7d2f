"""
Domain subpackage for the verification feature.
"""

from .errors import (
    AttractionNotFoundError,
    CatalogUnavailableError,
    OracleBusyError,
    OracleConfigurationError,
    OracleParseError,
    OracleTimeoutError,
    OracleUnavailableError,
    RateLimitExceeded,
    RequestValidationError,
    VerificationError,
)
from .models import (
    AlreadyVisited,
    AttractionCandidate,
    AttractionSummary,
    Badge,
    BadgeAward,
    CameraSearch,
    CandidateSet,
    ConfidenceThresholds,
    ConfirmOutcome,
    DecisionOutcome,
    ImagePayload,
    MatchDecision,
    RateLimitStatus,
    UploadSearch,
    VerificationRequest,
    VerificationResult,
    VerifyOutcome,
    Visit,
    VisitRecorded,
)

__all__ = [
    "AlreadyVisited",
    "AttractionCandidate",
    "AttractionNotFoundError",
    "AttractionSummary",
    "Badge",
    "BadgeAward",
    "CameraSearch",
    "CandidateSet",
    "CatalogUnavailableError",
    "ConfidenceThresholds",
    "ConfirmOutcome",
    "DecisionOutcome",
    "ImagePayload",
    "MatchDecision",
    "OracleBusyError",
    "OracleConfigurationError",
    "OracleParseError",
    "OracleTimeoutError",
    "OracleUnavailableError",
    "RateLimitExceeded",
    "RateLimitStatus",
    "RequestValidationError",
    "UploadSearch",
    "VerificationError",
    "VerificationRequest",
    "VerificationResult",
    "VerifyOutcome",
    "Visit",
    "VisitRecorded",
]
