import base64
from datetime import datetime, timezone

import pytest

from wandr.auth.verify import auth_dependency
from wandr.features.verification.domain.models import (
    AttractionSummary,
    BadgeAward,
    VerificationResult,
    Visit,
)
from wandr.features.verification.services.candidate_locator import CandidateLocator
from wandr.features.verification.services.scan_audit import ScanAuditLog
from wandr.features.verification.services.scan_rate_limiter import ScanRateLimiter
from wandr.features.verification.services.visit_recorder import VisitRecorder
from wandr.features.verification.services.workflow import VerificationWorkflow

FIXED_NOW = datetime(2024, 6, 1, 15, 30, tzinfo=timezone.utc)

# 200 base64 characters, long enough to pass image validation
VALID_IMAGE = base64.b64encode(b"\xff\xd8\xff\xe0" * 37 + b"\xff\xd9").decode()


def make_attraction(attraction_id: str, name: str, **overrides) -> AttractionSummary:
    values = {
        "id": attraction_id,
        "name": name,
        "city": "Paris",
        "country": "France",
        "category": "landmark",
        "short_description": f"{name} description",
        "thumbnail_url": f"https://img.example.com/{attraction_id}.jpg",
        "city_id": "city-paris",
    }
    values.update(overrides)
    return AttractionSummary(**values)


EIFFEL_TOWER = make_attraction("eiffel-tower", "Eiffel Tower")
LOUVRE = make_attraction("louvre", "Louvre Museum", category="museum")


class FakeCatalog:
    def __init__(self, attractions=(), nearby=None, text=None):
        self.attractions = {a.id: a for a in attractions}
        self.nearby = list(self.attractions.values()) if nearby is None else nearby
        self.text = list(self.attractions.values()) if text is None else text
        self.nearby_calls: list[tuple] = []
        self.text_calls: list[tuple] = []

    async def nearby_search(self, latitude, longitude, radius_meters, category=None, max_results=20, user_id=None):
        self.nearby_calls.append((latitude, longitude, radius_meters, category, max_results, user_id))
        return self.nearby[:max_results]

    async def text_search(self, query, max_results=20, user_id=None):
        self.text_calls.append((query, max_results, user_id))
        return self.text[:max_results]

    async def get_by_id(self, attraction_id, user_id=None):
        return self.attractions.get(attraction_id)


class FakeVisits:
    def __init__(self):
        self.rows: dict[tuple[str, str], Visit] = {}

    async def insert_if_absent(self, user_id, attraction_id, is_verified, notes=None, photo_url=None):
        key = (user_id, attraction_id)
        if key in self.rows:
            return None
        visit = Visit(
            id=f"visit-{len(self.rows) + 1}",
            user_id=user_id,
            attraction_id=attraction_id,
            visit_date=FIXED_NOW,
            is_verified=is_verified,
            photo_url=photo_url,
            notes=notes,
        )
        self.rows[key] = visit
        return visit


class FakeScans:
    def __init__(self, prior_today: int = 0):
        self.prior_today = prior_today
        self.rows: list[dict] = []
        self.count_calls: list[tuple] = []

    async def count_since(self, user_id, since):
        self.count_calls.append((user_id, since))
        return self.prior_today + sum(1 for row in self.rows if row["user_id"] == user_id)

    async def insert_scan(self, user_id, scan_date, result, image_preview=None):
        self.rows.append(
            {
                "user_id": user_id,
                "scan_date": scan_date,
                "result": result,
                "image_preview": image_preview,
            }
        )
        return f"scan-{len(self.rows)}"


class FakeSubscriptions:
    def __init__(self, tiers: dict[str, str] | None = None):
        self.tiers = tiers or {}

    async def get_tier(self, user_id):
        return self.tiers.get(user_id, "free")


class FakeBadgeEngine:
    def __init__(self, awards: list[BadgeAward] | None = None, error: Exception | None = None):
        self.awards = awards or []
        self.error = error
        self.calls: list[tuple] = []

    async def check_and_award(self, user_id, city_id):
        self.calls.append((user_id, city_id))
        if self.error:
            raise self.error
        return self.awards


class SpyOracle:
    """Oracle double that records every call."""

    def __init__(self, match_result: VerificationResult | None = None, description: str = ""):
        self.match_result = match_result or VerificationResult.no_match("nothing")
        self.description = description
        self.match_calls: list[tuple] = []
        self.describe_calls: list = []

    async def describe(self, image):
        self.describe_calls.append(image)
        return self.description

    async def match(self, image, candidates):
        self.match_calls.append((image, list(candidates)))
        return self.match_result


class WorkflowHarness:
    """A VerificationWorkflow wired to in-memory collaborators."""

    def __init__(
        self,
        attractions=(EIFFEL_TOWER, LOUVRE),
        match_result: VerificationResult | None = None,
        description: str = "",
        prior_scans: int = 0,
        tiers: dict[str, str] | None = None,
        nearby=None,
        text=None,
        badge_engine: FakeBadgeEngine | None = None,
    ):
        self.catalog = FakeCatalog(attractions, nearby=nearby, text=text)
        self.visits = FakeVisits()
        self.scans = FakeScans(prior_scans)
        self.subscriptions = FakeSubscriptions(tiers)
        self.badges = badge_engine or FakeBadgeEngine()
        self.oracle = SpyOracle(match_result, description)

        self.rate_limiter = ScanRateLimiter(
            subscriptions=self.subscriptions,
            scans=self.scans,
            tier_limits={"free": 5, "premium": 50},
            clock=lambda: FIXED_NOW,
        )
        self.workflow = VerificationWorkflow(
            oracle=self.oracle,
            rate_limiter=self.rate_limiter,
            locator=CandidateLocator(self.oracle, catalog=self.catalog, max_candidates=20),
            audit_log=ScanAuditLog(self.scans, clock=lambda: FIXED_NOW),
            recorder=VisitRecorder(self.catalog, self.visits, self.badges),
        )


@pytest.fixture
def valid_image() -> str:
    return VALID_IMAGE


@pytest.fixture
def make_harness():
    return WorkflowHarness


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def eiffel_tower() -> AttractionSummary:
    return EIFFEL_TOWER


@pytest.fixture
def louvre() -> AttractionSummary:
    return LOUVRE


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
