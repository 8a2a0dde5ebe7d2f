"""
Tests for the scan journal.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from wandr.db.helpers import DatabaseError
from wandr.features.verification.domain.models import VerificationResult
from wandr.features.verification.services.scan_audit import ScanAuditLog
from wandr.features.verification.services.scan_rate_limiter import ScanRateLimiter

RESULT = VerificationResult(
    matched=True, confidence=0.9, attraction_id="louvre", explanation="Glass pyramid"
)

NOW = datetime(2024, 6, 1, 15, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_record_truncates_preview():
    repository = AsyncMock()
    audit_log = ScanAuditLog(repository, preview_max_chars=500, clock=lambda: NOW)

    stored = await audit_log.record("user-123", RESULT, "x" * 5_000)

    assert stored is True
    repository.insert_scan.assert_awaited_once_with(
        "user-123", date(2024, 6, 1), RESULT, "x" * 500
    )


@pytest.mark.asyncio
async def test_record_without_preview():
    repository = AsyncMock()
    audit_log = ScanAuditLog(repository, clock=lambda: NOW)

    await audit_log.record("user-123", RESULT)

    assert repository.insert_scan.await_args.args[3] is None


@pytest.mark.asyncio
async def test_write_failure_never_raises():
    repository = AsyncMock()
    repository.insert_scan.side_effect = DatabaseError("disk full", operation="fetch_one")
    audit_log = ScanAuditLog(repository)

    stored = await audit_log.record("user-123", RESULT, "preview")

    assert stored is False


@pytest.mark.asyncio
async def test_scan_date_follows_quota_timezone():
    """A scan just before UTC midnight is already tomorrow in Tokyo."""
    late_utc = datetime(2024, 6, 1, 23, 30, tzinfo=timezone.utc)
    repository = AsyncMock()
    audit_log = ScanAuditLog(repository, timezone="Asia/Tokyo", clock=lambda: late_utc)
    limiter = ScanRateLimiter(
        subscriptions=AsyncMock(), scans=AsyncMock(), timezone="Asia/Tokyo", clock=lambda: late_utc
    )

    await audit_log.record("user-123", RESULT)

    start_of_day, _ = limiter.day_window()
    scan_date = repository.insert_scan.await_args.args[1]
    assert scan_date == date(2024, 6, 2)
    assert scan_date == start_of_day.date()


def test_scan_date_defaults_to_utc():
    late_utc = datetime(2024, 6, 1, 23, 30, tzinfo=timezone.utc)
    audit_log = ScanAuditLog(AsyncMock(), clock=lambda: late_utc)

    assert audit_log.scan_date() == date(2024, 6, 1)
