"""
Read-only catalog access for candidate search and attraction lookups.

Rows are mapped to AttractionSummary in exactly one place (_row_to_summary).
"""

import math
from typing import Any

from wandr.db.helpers import fetch_all, fetch_one, with_db_retry
from wandr.features.verification.domain.models import AttractionSummary
from wandr.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0

_SUMMARY_COLUMNS = """
    a.id::text AS id,
    a.name,
    a.short_description,
    a.category,
    a.thumbnail_url,
    a.latitude,
    a.longitude,
    c.id::text AS city_id,
    c.name AS city_name,
    co.name AS country_name,
    EXISTS (
        SELECT 1 FROM favorites f
        WHERE f.attraction_id = a.id AND f.user_id::text = %s
    ) AS is_favorited
"""

_SUMMARY_JOINS = """
    FROM attractions a
    JOIN cities c ON c.id = a.city_id
    JOIN countries co ON co.id = c.country_id
"""


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS84 points in meters."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(latitude: float, longitude: float, radius_meters: float) -> tuple[float, float, float, float]:
    """
    Lat/lng box enclosing the search circle, as (min_lat, max_lat, min_lng, max_lng).

    Used as a cheap SQL prefilter; exact distance is checked afterwards.
    Near the poles the longitude span covers the whole globe.
    """
    lat_delta = math.degrees(radius_meters / EARTH_RADIUS_METERS)
    min_lat = max(-90.0, latitude - lat_delta)
    max_lat = min(90.0, latitude + lat_delta)

    cos_lat = math.cos(math.radians(latitude))
    if cos_lat < 1e-6 or min_lat <= -90.0 or max_lat >= 90.0:
        return min_lat, max_lat, -180.0, 180.0

    lng_delta = math.degrees(radius_meters / (EARTH_RADIUS_METERS * cos_lat))
    if lng_delta >= 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, longitude - lng_delta, longitude + lng_delta


def _row_to_summary(
    row: dict[str, Any], user_id: str | None, distance: float | None = None
) -> AttractionSummary:
    return AttractionSummary(
        id=row["id"],
        name=row["name"],
        city=row.get("city_name") or "",
        country=row.get("country_name") or "",
        category=row.get("category") or "other",
        short_description=row.get("short_description") or "",
        thumbnail_url=row.get("thumbnail_url"),
        city_id=row.get("city_id"),
        distance_meters=round(distance, 1) if distance is not None else None,
        is_favorited=bool(row.get("is_favorited")) if user_id else None,
    )


class CatalogRepository:
    """Attraction catalog queries used by the verification workflow."""

    @staticmethod
    @with_db_retry()
    async def nearby_search(
        latitude: float,
        longitude: float,
        radius_meters: float,
        category: str | None = None,
        max_results: int = 20,
        user_id: str | None = None,
    ) -> list[AttractionSummary]:
        """Attractions within radius, nearest first."""
        min_lat, max_lat, min_lng, max_lng = bounding_box(latitude, longitude, radius_meters)

        # Boxes crossing the antimeridian wrap around
        if min_lng < -180.0 or max_lng > 180.0:
            lng_clause = "(a.longitude >= %s OR a.longitude <= %s)"
            lng_params = (
                min_lng + 360.0 if min_lng < -180.0 else min_lng,
                max_lng - 360.0 if max_lng > 180.0 else max_lng,
            )
        else:
            lng_clause = "a.longitude BETWEEN %s AND %s"
            lng_params = (min_lng, max_lng)

        query = f"""
            SELECT {_SUMMARY_COLUMNS}
            {_SUMMARY_JOINS}
            WHERE a.latitude BETWEEN %s AND %s
              AND {lng_clause}
              AND (%s::text IS NULL OR a.category = %s)
        """
        params = (user_id or "", min_lat, max_lat, *lng_params, category, category)
        rows = await fetch_all(query, params)

        within = []
        for row in rows:
            distance = haversine_meters(latitude, longitude, row["latitude"], row["longitude"])
            if distance <= radius_meters:
                within.append((distance, row))
        within.sort(key=lambda item: item[0])

        logger.debug(
            "Nearby attraction search",
            prefiltered=len(rows),
            within_radius=len(within),
            radius_meters=radius_meters,
        )
        return [_row_to_summary(row, user_id, distance) for distance, row in within[:max_results]]

    @staticmethod
    @with_db_retry()
    async def text_search(
        query: str, max_results: int = 20, user_id: str | None = None
    ) -> list[AttractionSummary]:
        """
        Attractions whose name, description, city or country contains any
        search term, best rated first.
        """
        terms = [term for term in query.split() if term]
        if not terms:
            return []
        patterns = [f"%{term}%" for term in terms]

        sql = f"""
            SELECT {_SUMMARY_COLUMNS}
            {_SUMMARY_JOINS}
            WHERE a.name ILIKE ANY(%s)
               OR a.description ILIKE ANY(%s)
               OR c.name ILIKE ANY(%s)
               OR co.name ILIKE ANY(%s)
            ORDER BY a.average_rating DESC NULLS LAST, a.name
            LIMIT %s
        """
        rows = await fetch_all(sql, (user_id or "", patterns, patterns, patterns, patterns, max_results))
        return [_row_to_summary(row, user_id) for row in rows]

    @staticmethod
    @with_db_retry()
    async def get_by_id(attraction_id: str, user_id: str | None = None) -> AttractionSummary | None:
        row = await fetch_one(
            f"""
            SELECT {_SUMMARY_COLUMNS}
            {_SUMMARY_JOINS}
            WHERE a.id::text = %s
            """,
            (user_id or "", attraction_id),
        )
        return _row_to_summary(row, user_id) if row else None
