"""
Visit persistence. Uniqueness of (user_id, attraction_id) is enforced by the
database; a losing concurrent insert simply returns no row.
"""

from wandr.db.helpers import fetch_one
from wandr.features.verification.domain.models import Visit


def _row_to_visit(row: dict) -> Visit:
    return Visit(
        id=row["id"],
        user_id=row["user_id"],
        attraction_id=row["attraction_id"],
        visit_date=row["visit_date"],
        is_verified=bool(row["is_verified"]),
        photo_url=row.get("photo_url"),
        notes=row.get("notes"),
    )


class VisitRepository:
    @staticmethod
    async def insert_if_absent(
        user_id: str,
        attraction_id: str,
        is_verified: bool,
        notes: str | None = None,
        photo_url: str | None = None,
    ) -> Visit | None:
        """Create the visit, or return None when the pair already exists."""
        row = await fetch_one(
            """
            INSERT INTO visits (user_id, attraction_id, visit_date, photo_url, notes, is_verified)
            VALUES (%s, %s, NOW(), %s, %s, %s)
            ON CONFLICT (user_id, attraction_id) DO NOTHING
            RETURNING id::text, user_id::text, attraction_id::text,
                      visit_date, photo_url, notes, is_verified
            """,
            (user_id, attraction_id, photo_url, notes, is_verified),
        )
        return _row_to_visit(row) if row else None
