"""
Resolution actions that close the loop on an attention item directly from
the feed: finishing a deliverable or deciding a trade.
"""

from datetime import UTC, datetime, timedelta

from app.db.helpers import DatabaseError, execute_query
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ResolutionError(DatabaseError):
    """Raised when a resolution write fails."""


class ResolutionTargetNotFoundError(ResolutionError):
    """The deliverable or trade the action targets does not exist."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message, operation=operation, recoverable=False)


class ResolutionRepository:
    """Raw SQL updates backing the resolution endpoints."""

    @classmethod
    async def _update_one(cls, operation: str, query: str, params: tuple, target_id: str) -> None:
        try:
            affected = await execute_query(query, params)
        except DatabaseError as e:
            logger.error("Resolution action failed", operation=operation, target_id=target_id, error=str(e))
            raise ResolutionError(f"{operation} failed: {e}", operation=operation) from e

        if affected == 0:
            raise ResolutionTargetNotFoundError(f"{target_id} not found", operation=operation)

        logger.info("Resolution action applied", operation=operation, target_id=target_id)

    @classmethod
    async def mark_deliverable_done(cls, deliverable_id: str, user_id: str) -> None:
        query = """
            UPDATE project_deliverables
            SET completed = true,
                completed_at = NOW(),
                completed_by = %s,
                updated_at = NOW()
            WHERE id = %s
        """
        await cls._update_one("mark_deliverable_done", query, (user_id, deliverable_id), deliverable_id)

    @classmethod
    async def approve_trade(cls, trade_id: str, user_id: str) -> None:
        query = """
            UPDATE trade_queue_items
            SET status = 'approved',
                approved_by = %s,
                approved_at = NOW(),
                updated_at = NOW()
            WHERE id = %s
        """
        await cls._update_one("approve_trade", query, (user_id, trade_id), trade_id)

    @classmethod
    async def reject_trade(cls, trade_id: str, user_id: str) -> None:
        query = """
            UPDATE trade_queue_items
            SET status = 'rejected',
                updated_at = NOW()
            WHERE id = %s
        """
        await cls._update_one("reject_trade", query, (trade_id,), trade_id)
        logger.debug("Trade rejected", trade_id=trade_id, user_id=user_id)

    @classmethod
    async def defer_trade(
        cls, trade_id: str, hours: float, now: datetime | None = None
    ) -> datetime:
        """Push the trade's revisit date out by ``hours`` and return it."""
        if hours <= 0:
            raise ValueError("hours must be positive")

        revisit_at = (now or datetime.now(UTC)) + timedelta(hours=hours)
        query = """
            UPDATE trade_queue_items
            SET revisit_at = %s,
                updated_at = NOW()
            WHERE id = %s
        """
        await cls._update_one("defer_trade", query, (revisit_at, trade_id), trade_id)
        return revisit_at
