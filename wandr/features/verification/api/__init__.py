"""
HTTP layer for the verification feature.
"""

from .router import get_verification_workflow, router

__all__ = ["router", "get_verification_workflow"]
