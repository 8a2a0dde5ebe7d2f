"""
Service layer for the verification feature.
"""

from .badge_engine import BadgeEngine
from .candidate_locator import CandidateLocator
from .scan_audit import ScanAuditLog
from .scan_rate_limiter import ScanRateLimiter
from .vision_oracle import ImageMatchOracle, OpenAIVisionOracle
from .visit_recorder import VisitRecorder
from .workflow import VerificationWorkflow

__all__ = [
    "BadgeEngine",
    "CandidateLocator",
    "ImageMatchOracle",
    "OpenAIVisionOracle",
    "ScanAuditLog",
    "ScanRateLimiter",
    "VerificationWorkflow",
    "VisitRecorder",
]
