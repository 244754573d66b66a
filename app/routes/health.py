# app/routes/health.py
"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "attention-feed"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check covering the database pool and the feed cache.

    Redis is reported but does not fail readiness; without it every read
    runs the live pipeline.
    """
    checks = {}

    t0 = time.time()
    redis_ok = await fast_redis.ping()
    checks["redis"] = {
        "ok": redis_ok,
        "latency_ms": round((time.time() - t0) * 1000, 1),
        "required": False,
    }

    t0 = time.time()
    db_health = await db_health_check()
    db_ok = bool(db_health.get("healthy", False))
    checks["database"] = {
        "ok": db_ok,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if "pool_stats" in db_health:
        checks["database"].update(db_health["pool_stats"])
    if not db_ok:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")

    config_issues = []
    if not settings.SUPABASE_DB_URL:
        config_issues.append("SUPABASE_DB_URL not set")
    if not settings.UPSTASH_REDIS_REST_URL:
        config_issues.append("UPSTASH_REDIS_REST_URL not set")
    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }

    overall_ok = db_ok and not config_issues
    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    """Detailed database pool health information."""
    return await db_health_check()
