# app/main.py
"""
FastAPI application: attention feed and dashboard API with pooled
database and Redis lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.features.attention.api.router import router as attention_router
from app.features.dashboard.api.router import router as dashboard_router
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.routes import health
from app.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool and the cache client; close them in reverse order."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize database pool", error=str(e))
        raise

    # The feed cache is optional; reads fall back to a live run without it
    try:
        logger.info("Initializing Redis connection")
        await fast_redis.initialize()
    except Exception as e:
        logger.warning("Redis unavailable, feed cache disabled", error=str(e))

    logger.info("All services initialized", redis=fast_redis.available)

    yield

    logger.info("Application shutting down")
    shutdown_errors = []

    try:
        await fast_redis.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))
        shutdown_errors.append(f"Redis: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Attention Feed",
    description="Aggregated, scored and deduplicated attention feed with a banded dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(attention_router)
app.include_router(dashboard_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
