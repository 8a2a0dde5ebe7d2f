"""
Attraction verification feature package.

Everything behind "prove you visited this place" lives in this slice:
domain models and errors, catalog/scan/visit/badge repositories, the
oracle client, the workflow services and the HTTP router.
"""

from .api.router import router as verification_router  # noqa: F401
from .services.vision_oracle import OpenAIVisionOracle  # noqa: F401
from .services.workflow import VerificationWorkflow  # noqa: F401
