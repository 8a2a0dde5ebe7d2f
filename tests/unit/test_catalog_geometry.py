"""
Tests for the distance helpers behind nearby search.
"""

import pytest

from wandr.features.verification.repository.catalog_repository import (
    bounding_box,
    haversine_meters,
)

EIFFEL = (48.8584, 2.2945)
LOUVRE = (48.8606, 2.3376)


def test_haversine_between_paris_landmarks():
    distance = haversine_meters(*EIFFEL, *LOUVRE)

    assert 3_100 < distance < 3_300


def test_haversine_same_point_is_zero():
    assert haversine_meters(*EIFFEL, *EIFFEL) == pytest.approx(0.0)


def test_bounding_box_contains_the_search_circle():
    min_lat, max_lat, min_lng, max_lng = bounding_box(*EIFFEL, 5_000)

    assert min_lat < EIFFEL[0] < max_lat
    assert min_lng < EIFFEL[1] < max_lng
    # Corners of the box are at least radius away along each axis
    assert haversine_meters(EIFFEL[0], EIFFEL[1], max_lat, EIFFEL[1]) == pytest.approx(5_000, rel=1e-3)
    assert haversine_meters(EIFFEL[0], EIFFEL[1], EIFFEL[0], max_lng) >= 4_990


def test_bounding_box_near_pole_spans_all_longitudes():
    _, max_lat, min_lng, max_lng = bounding_box(89.99, 10.0, 50_000)

    assert max_lat == 90.0
    assert (min_lng, max_lng) == (-180.0, 180.0)


def test_bounding_box_may_cross_antimeridian():
    _, _, min_lng, max_lng = bounding_box(-17.7, 179.9, 50_000)

    assert max_lng > 180.0
    assert min_lng < 179.9
