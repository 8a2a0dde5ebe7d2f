# wandr/routes/health.py
"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from wandr.config import settings
from wandr.db.pool import db_health_check
from wandr.infrastructure.observability.logging import log_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "wandr-verification"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check: database pool and vision oracle.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)
        latency_ms = round((time.time() - t0) * 1000, 1)

        checks["database"] = {"ok": is_healthy, "latency_ms": latency_ms}

        if "pool_stats" in db_health:
            pool_stats = db_health["pool_stats"]
            checks["database"].update(
                {
                    "pool_size": pool_stats.get("pool_size", 0),
                    "pool_available": pool_stats.get("pool_available", 0),
                    "pool_utilization_percent": pool_stats.get("pool_utilization_percent", 0),
                }
            )
        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        log_health_check("database", is_healthy, latency_ms, db_health.get("error"))
        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 2) Vision oracle - configured at startup, no network call here
    oracle = getattr(request.app.state, "vision_oracle", None)
    if oracle is not None:
        oracle_health = await oracle.health_check()
        checks["vision_oracle"] = {"ok": oracle_health["healthy"], "model": oracle_health["model"]}
    else:
        checks["vision_oracle"] = {"ok": False, "error": "Vision oracle not configured"}
    overall_ok = overall_ok and checks["vision_oracle"]["ok"]

    checks["configuration"] = {"ok": True, "environment": settings.environment}

    body = {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
    return JSONResponse(status_code=200 if overall_ok else 503, content=body)
