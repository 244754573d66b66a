"""
Async PostgreSQL pool for the attention service.

Every collector in a feed run borrows its own connection, so one run can
hold up to seven connections at once; size the pool for concurrent runs
times seven within the Supabase connection limit.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_S = 30.0
STATEMENT_TIMEOUT = "30s"
SATURATION_PERCENT = 90


class DatabasePoolManager:
    """Opens, lends and closes the process-wide connection pool."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def ready(self) -> bool:
        return self._initialized and not self._closed and self.pool is not None

    async def initialize(self) -> None:
        """Open the pool and prove it with one round trip."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        options = settings.get_db_pool_config()
        self.pool = AsyncConnectionPool(
            conninfo=settings.SUPABASE_DB_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **options,
        )

        try:
            await self.pool.open(wait=True)
            # connection() refuses to lend until this is set
            self._initialized = True
            await self._probe()
        except Exception as e:
            logger.error("Failed to initialize database pool", error=str(e))
            self._initialized = False
            await self._discard_pool()
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info(
            "Database pool ready",
            min_size=options["min_size"],
            max_size=options["max_size"],
            timeout=options["timeout"],
        )

    async def _discard_pool(self) -> None:
        if self.pool is None:
            return
        try:
            await self.pool.close()
        except Exception as e:
            logger.warning("Error closing half-open pool", error=str(e))
        self.pool = None

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Session defaults for every new pooled connection."""
        conn.row_factory = dict_row
        await conn.set_autocommit(True)
        app_name = f"attention-feed-{settings.environment}"
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(sql.Literal(STATEMENT_TIMEOUT))
        )

    async def _probe(self) -> None:
        async with self.connection() as conn:
            cur = await conn.execute("SELECT 1 AS ok")
            row = await cur.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Database probe returned an unexpected result")

    async def close(self) -> None:
        """Close the pool, giving in-flight queries a bounded grace period."""
        if not self._initialized or self._closed:
            return
        try:
            if self.pool:
                await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_S)
            logger.info("Database pool closed")
        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection for the duration of the block.

        The connection is returned on exit, including when the borrowing
        task is cancelled mid-query.
        """
        if not self.ready:
            raise RuntimeError("Database pool not available")
        async with self.pool.connection() as conn:
            yield conn

    def _utilization(self) -> dict[str, Any]:
        stats = self.pool.get_stats()
        size = stats.get("pool_size", 0)
        available = stats.get("pool_available", 0)
        percent = (size - available) / size * 100 if size else 0
        return {
            "pool_size": size,
            "pool_available": available,
            "pool_utilization_percent": round(percent, 2),
            "requests_waiting": stats.get("requests_waiting", 0),
        }

    async def health_check(self) -> dict[str, Any]:
        """Round-trip latency plus utilisation; saturated pools report unhealthy."""
        report: dict[str, Any] = {"service": "database_pool"}
        if not self.ready:
            return {**report, "healthy": False, "error": "Pool not available"}

        started = time.perf_counter()
        try:
            await self._probe()
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {**report, "healthy": False, "error": str(e), "error_type": type(e).__name__}

        utilization = self._utilization()
        return {
            **report,
            "healthy": utilization["pool_utilization_percent"] < SATURATION_PERCENT,
            "connection_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "pool_stats": utilization,
        }


# Global pool instance
db_pool = DatabasePoolManager()


async def get_db_connection():
    """Borrow a pooled connection; use as ``async with await get_db_connection()``."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
