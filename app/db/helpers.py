"""
Query helpers shared by the repositories.

Repositories pass SQL and parameters; these helpers borrow a pooled
connection (or use the one supplied), run the statement and translate
driver errors into DatabaseError.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import psycopg
from psycopg import sql

from app.db.pool import get_db_connection
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Query = str | sql.Composable


class DatabaseError(Exception):
    """A query failed; ``recoverable`` is False once retrying cannot help."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


def _preview(query: Query) -> str:
    text = query if isinstance(query, str) else repr(query)
    return " ".join(text.split())[:100]


async def _run(
    operation: str,
    query: Query,
    params: tuple,
    connection: psycopg.AsyncConnection | None,
    consume: Callable[[psycopg.AsyncCursor], Awaitable[T]],
) -> T:
    try:
        if connection is not None:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                return await consume(cur)

        async with await get_db_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await consume(cur)

    except psycopg.Error as e:
        logger.error("Database query failed", operation=operation, query=_preview(query), error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation=operation) from e


async def _rowcount(cur: psycopg.AsyncCursor) -> int:
    return cur.rowcount


async def fetch_all(
    query: Query, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """Run a query and return every row as a dict."""
    return await _run("fetch_all", query, params, connection, lambda cur: cur.fetchall())


async def execute_query(
    query: Query, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a write and return the number of affected rows."""
    return await _run("execute", query, params, connection, _rowcount)


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, psycopg.OperationalError) or isinstance(
        error.__cause__, psycopg.OperationalError
    )


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a coroutine on transient connection failures.

    Only ``psycopg.OperationalError`` (raised directly or as the cause of a
    DatabaseError) is retried, backing off exponentially. Any other error is
    raised on the first attempt.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, doubled each time
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except (psycopg.OperationalError, DatabaseError) as e:
                    if not _is_transient(e):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        if isinstance(e, DatabaseError):
                            e.recoverable = False
                            raise
                        raise DatabaseError(
                            f"Operation failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e

                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
