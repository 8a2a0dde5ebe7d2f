"""
Repository layer for the verification feature.
"""

from .badge_repository import BadgeRepository
from .catalog_repository import CatalogRepository
from .scan_repository import ScanRepository
from .subscription_repository import SubscriptionRepository
from .visit_repository import VisitRepository

__all__ = [
    "BadgeRepository",
    "CatalogRepository",
    "ScanRepository",
    "SubscriptionRepository",
    "VisitRepository",
]
