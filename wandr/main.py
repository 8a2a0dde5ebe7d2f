"""
Wandr verification service - application entry point.
"""

import math
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from wandr.config import settings
from wandr.db.pool import db_pool
from wandr.features.verification.api.router import router as verification_router
from wandr.features.verification.api.schemas import ErrorBody, ErrorResponse
from wandr.features.verification.domain.errors import RateLimitExceeded, VerificationError
from wandr.features.verification.services.vision_oracle import OpenAIVisionOracle
from wandr.features.verification.services.workflow import VerificationWorkflow
from wandr.infrastructure.observability.logging import get_logger, setup_logging
from wandr.middleware import RequestContextMiddleware
from wandr.routes import health

# Setup logging before creating the app
setup_logging(log_level="DEBUG" if settings.debug else "INFO")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool and wire the verification workflow."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    logger.info("Initializing database pool")
    await db_pool.initialize()

    try:
        # Missing credentials stop startup here instead of failing the first scan
        oracle = OpenAIVisionOracle.from_settings()
        app.state.vision_oracle = oracle
        app.state.verification_workflow = VerificationWorkflow.from_settings(oracle)
        logger.info("Verification workflow ready", model=oracle.model)
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        try:
            await db_pool.close()
        except Exception as cleanup_error:
            logger.error("Error cleaning up database pool", error=str(cleanup_error))
        raise

    yield

    logger.info("Application shutting down")
    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))


app = FastAPI(
    title="Wandr Verification",
    description="Photo-based attraction visit verification",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(verification_router)


def retry_after_seconds(reset_time: datetime) -> int:
    remaining = (reset_time - datetime.now(timezone.utc)).total_seconds()
    return max(1, math.ceil(remaining))


@app.exception_handler(VerificationError)
async def verification_error_handler(request: Request, exc: VerificationError):
    """Map domain errors to {"error": {"code", "message"}} with their HTTP status."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Verification request failed",
        path=request.url.path,
        error_code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
    )

    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(retry_after_seconds(exc.reset_time))}

    body = ErrorResponse(error=ErrorBody(code=exc.code, message=exc.message))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
