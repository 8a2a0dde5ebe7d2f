"""
Badge persistence: location progress counts, badge catalog, user awards.
"""

from typing import Any

from wandr.db.helpers import fetch_one

# location_type -> column on the joined attraction/city/country rows
_LOCATION_COLUMNS = {
    "city": "c.id",
    "country": "co.id",
    "continent": "co.continent_id",
}

_USER_BADGE_COLUMNS = """
    ub.id::text AS id,
    b.tier,
    b.location_id::text AS location_id,
    b.location_name,
    b.location_type,
    ub.earned_at,
    ub.attractions_visited,
    ub.total_attractions,
    ub.progress_percent
"""


class BadgeRepository:
    @staticmethod
    async def get_location_hierarchy(city_id: str) -> dict[str, Any] | None:
        return await fetch_one(
            """
            SELECT c.id::text AS city_id, c.name AS city_name,
                   co.id::text AS country_id, co.name AS country_name,
                   ct.id::text AS continent_id, ct.name AS continent_name
            FROM cities c
            JOIN countries co ON co.id = c.country_id
            JOIN continents ct ON ct.id = co.continent_id
            WHERE c.id::text = %s
            """,
            (city_id,),
        )

    @staticmethod
    async def get_progress(user_id: str, location_id: str, location_type: str) -> tuple[int, int]:
        """Return (total_attractions, visited_attractions) for a location."""
        column = _LOCATION_COLUMNS[location_type]
        row = await fetch_one(
            f"""
            SELECT COUNT(*) AS total,
                   COUNT(v.id) AS visited
            FROM attractions a
            JOIN cities c ON c.id = a.city_id
            JOIN countries co ON co.id = c.country_id
            LEFT JOIN visits v ON v.attraction_id = a.id AND v.user_id::text = %s
            WHERE {column}::text = %s
            """,
            (user_id, location_id),
        )
        if not row:
            return 0, 0
        return int(row["total"] or 0), int(row["visited"] or 0)

    @staticmethod
    async def ensure_badge(
        location_id: str, location_type: str, location_name: str, tier: str
    ) -> str:
        row = await fetch_one(
            """
            INSERT INTO badges (location_id, location_type, location_name, tier)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (location_id, tier)
            DO UPDATE SET location_name = EXCLUDED.location_name
            RETURNING id::text AS id
            """,
            (location_id, location_type, location_name, tier),
        )
        return row["id"]

    @staticmethod
    async def award_if_absent(
        user_id: str,
        badge_id: str,
        attractions_visited: int,
        total_attractions: int,
        progress_percent: float,
    ) -> dict[str, Any] | None:
        """Insert the user badge; None when the user already holds it."""
        return await fetch_one(
            f"""
            WITH inserted AS (
                INSERT INTO user_badges (
                    user_id, badge_id, attractions_visited, total_attractions,
                    progress_percent, earned_at
                )
                VALUES (%s, %s, %s, %s, %s, NOW())
                ON CONFLICT (user_id, badge_id) DO NOTHING
                RETURNING *
            )
            SELECT {_USER_BADGE_COLUMNS}
            FROM inserted ub
            JOIN badges b ON b.id = ub.badge_id
            """,
            (user_id, badge_id, attractions_visited, total_attractions, progress_percent),
        )

    @staticmethod
    async def get_user_badge(user_id: str, badge_id: str) -> dict[str, Any] | None:
        return await fetch_one(
            f"""
            SELECT {_USER_BADGE_COLUMNS}
            FROM user_badges ub
            JOIN badges b ON b.id = ub.badge_id
            WHERE ub.user_id::text = %s AND ub.badge_id::text = %s
            """,
            (user_id, badge_id),
        )
