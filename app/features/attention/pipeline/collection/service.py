"""
Collector fan-out for one attention run.

All registered collectors run concurrently. A collector that fails or
exceeds its timeout is logged and contributes nothing; the run carries on
with the rest. Cancelling the run cancels every collector task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from app.config import settings
from app.features.attention.domain import AttentionItem
from app.infrastructure.observability.logging import get_logger

from .collectors import (
    collect_alignment,
    collect_deliverables,
    collect_notifications,
    collect_projects,
    collect_quick_thoughts,
    collect_suggestions,
    collect_trade_decisions,
)

logger = get_logger(__name__)

Collector = Callable[[str, datetime, datetime], Awaitable[list[AttentionItem]]]

# Registry order is the concatenation order of the results.
COLLECTOR_REGISTRY: dict[str, Collector] = {
    "deliverables": collect_deliverables,
    "projects": collect_projects,
    "trade_decisions": collect_trade_decisions,
    "suggestions": collect_suggestions,
    "notifications": collect_notifications,
    "alignment": collect_alignment,
    "quick_thoughts": collect_quick_thoughts,
}


@dataclass(slots=True)
class CollectionResult:
    items: list[AttentionItem] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class CollectorRunner:
    """Runs a fixed, ordered set of collectors for one user."""

    def __init__(
        self,
        collectors: dict[str, Collector] | None = None,
        timeout_s: float | None = None,
    ):
        self.collectors = dict(COLLECTOR_REGISTRY if collectors is None else collectors)
        self.timeout_s = (
            settings.ATTENTION_COLLECTOR_TIMEOUT_S if timeout_s is None else timeout_s
        )

    async def collect(
        self, user_id: str, window_start: datetime, now: datetime
    ) -> CollectionResult:
        names = list(self.collectors)
        outcomes = await asyncio.gather(
            *(self._run_one(name, user_id, window_start, now) for name in names)
        )

        result = CollectionResult()
        for name, items in zip(names, outcomes):
            if items is None:
                result.failed.append(name)
                continue
            result.items.extend(items)

        logger.debug(
            "Attention collectors finished",
            user_id=user_id,
            candidates=len(result.items),
            failed_collectors=result.failed,
        )
        return result

    async def _run_one(
        self, name: str, user_id: str, window_start: datetime, now: datetime
    ) -> list[AttentionItem] | None:
        """Return the collector's items, or None when it failed or timed out."""
        collector = self.collectors[name]
        try:
            return await asyncio.wait_for(
                collector(user_id, window_start, now), timeout=self.timeout_s
            )
        except TimeoutError:
            logger.warning(
                "Attention collector timed out",
                collector=name,
                user_id=user_id,
                timeout_s=self.timeout_s,
            )
        except Exception as e:
            logger.warning(
                "Attention collector failed",
                collector=name,
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
        return None
