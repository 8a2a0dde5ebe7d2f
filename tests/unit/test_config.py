"""
Tests for settings validation.
"""

import pytest
from pydantic import ValidationError

from wandr.config import Settings


def test_defaults_match_verification_policy():
    config = Settings(_env_file=None)

    assert config.scan_limits() == {"free": 5, "premium": 50}
    assert config.VISION_MAX_CANDIDATES == 20
    assert config.MAX_KEYWORDS_IN_QUERY == 5


def test_suggest_above_auto_match_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, VISION_SUGGEST_THRESHOLD=0.9, VISION_AUTO_MATCH_THRESHOLD=0.8)


def test_inverted_radius_bounds_are_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, SCAN_RADIUS_MIN_METERS=5_000, SCAN_RADIUS_MAX_METERS=1_000)


def test_development_pool_is_smaller():
    config = Settings(_env_file=None, environment="development")

    assert config.get_db_pool_config()["max_size"] == 6
    assert Settings(_env_file=None, environment="production").get_db_pool_config()["max_size"] == 12
