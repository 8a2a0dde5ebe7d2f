"""
ScanAuditLog - journal of completed verification scans.

Each row in daily_scans is both the audit record of one scan and the unit
the daily quota counts. Writes are attempted before the response is sent
but never fail the request.

Usage:
    await scan_audit_log.record(
        user_id=user_id,
        result=result,
        image_preview=request.image.data,
    )
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from wandr.features.verification.domain.models import VerificationResult
from wandr.features.verification.repository.scan_repository import ScanRepository
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PREVIEW_MAX_CHARS = 500


class ScanAuditLog:
    def __init__(
        self,
        repository=ScanRepository,
        preview_max_chars: int = DEFAULT_PREVIEW_MAX_CHARS,
        timezone: str = "UTC",
        clock=None,
    ):
        self.repository = repository
        self.preview_max_chars = preview_max_chars
        self.timezone = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self.timezone))

    def scan_date(self) -> date:
        """Quota day the scan belongs to, in the same timezone the limiter counts in."""
        return self._clock().astimezone(self.timezone).date()

    async def record(
        self,
        user_id: str,
        result: VerificationResult,
        image_preview: str | None = None,
    ) -> bool:
        """
        Journal one scan.

        Returns:
            True if stored, False if the write failed (never raises)
        """
        preview = image_preview[: self.preview_max_chars] if image_preview else None

        logger.info(
            "Scan recorded",
            user_id=user_id,
            matched=result.matched,
            confidence=result.confidence,
            attraction_id=result.attraction_id,
        )

        try:
            await self.repository.insert_scan(user_id, self.scan_date(), result, preview)
            return True
        except Exception as e:
            # Audit completeness is best effort; the user still gets their result
            logger.error(
                "Failed to write scan record",
                error=str(e),
                error_type=type(e).__name__,
                user_id=user_id,
                fallback_data={
                    "user_id": user_id,
                    "result": result.to_dict(),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
            return False
