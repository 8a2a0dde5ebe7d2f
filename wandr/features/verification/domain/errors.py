"""
Error taxonomy for the verification feature.

Every error carries a human-readable ``message`` suitable for direct display
plus a stable ``code`` and the HTTP status the API layer maps it to.
"""

from datetime import datetime


class VerificationError(Exception):
    """Base exception for verification workflow errors."""

    code = "verification_error"
    status_code = 500

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class RequestValidationError(VerificationError):
    """Malformed verification request (image too short, radius out of range...)."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, recoverable=False)
        self.field = field


class RateLimitExceeded(VerificationError):
    """Raised when a user has used up today's scan quota."""

    code = "rate_limit_exceeded"
    status_code = 429

    def __init__(self, message: str, used: int, limit: int, tier: str, reset_time: datetime):
        super().__init__(message)
        self.used = used
        self.limit = limit
        self.tier = tier
        self.reset_time = reset_time


class AttractionNotFoundError(VerificationError):
    """Referenced attraction does not exist in the catalog."""

    code = "not_found"
    status_code = 404

    def __init__(self, attraction_id: str):
        super().__init__("Attraction not found", recoverable=False)
        self.attraction_id = attraction_id


class CatalogUnavailableError(VerificationError):
    """Candidate lookup failed for a transient reason."""

    code = "catalog_unavailable"
    status_code = 503

    def __init__(self, message: str = "Attraction search is temporarily unavailable. Please try again."):
        super().__init__(message)


class OracleUnavailableError(VerificationError):
    """The image-understanding provider could not produce an answer."""

    code = "ai_service_unavailable"
    status_code = 502

    def __init__(
        self,
        message: str = "AI service is unavailable. Please try again later.",
        api_error: str | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message, recoverable=recoverable)
        self.api_error = api_error


class OracleBusyError(OracleUnavailableError):
    """The provider rejected the call with its own rate limit."""

    code = "ai_service_busy"
    status_code = 503

    def __init__(self, api_error: str | None = None):
        super().__init__("AI service is busy. Please try again in a moment.", api_error=api_error)


class OracleTimeoutError(OracleUnavailableError):
    """The provider did not answer within the configured timeout."""

    code = "ai_service_timeout"
    status_code = 504

    def __init__(self, timeout_seconds: float, api_error: str | None = None):
        super().__init__(
            "AI service took too long to respond. Please try again.", api_error=api_error
        )
        self.timeout_seconds = timeout_seconds


class OracleConfigurationError(VerificationError):
    """Oracle client cannot be constructed (missing credentials)."""

    code = "ai_service_misconfigured"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class OracleParseError(VerificationError):
    """Oracle returned text that is not a usable JSON judgment. Never leaves the oracle module."""

    code = "ai_response_unparseable"

    def __init__(self, message: str, raw_response: str | None = None):
        super().__init__(message, recoverable=False)
        self.raw_response = raw_response
