"""
Daily scan journal. Rows are append-only; quota is derived by counting them.
"""

import json
from datetime import date, datetime

from wandr.db.helpers import fetch_val
from wandr.features.verification.domain.models import VerificationResult


class ScanRepository:
    @staticmethod
    async def insert_scan(
        user_id: str,
        scan_date: date,
        result: VerificationResult,
        image_preview: str | None = None,
    ) -> str | None:
        return await fetch_val(
            """
            INSERT INTO daily_scans (user_id, scan_date, photo_preview, result, created_at)
            VALUES (%s, %s, %s, %s, NOW())
            RETURNING id::text
            """,
            (user_id, scan_date, image_preview, json.dumps(result.to_dict())),
        )

    @staticmethod
    async def count_since(user_id: str, since: datetime) -> int:
        count = await fetch_val(
            """
            SELECT COUNT(*)
            FROM daily_scans
            WHERE user_id::text = %s
              AND created_at >= %s
            """,
            (user_id, since),
        )
        return int(count or 0)
