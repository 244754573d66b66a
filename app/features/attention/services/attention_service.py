"""
Attention service - orchestrates one aggregation run for a user.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.features.attention.domain import AttentionFeed
from app.features.attention.pipeline.collection import CollectorRunner
from app.features.attention.pipeline.ranking import apply_user_state, build_sections, deduplicate
from app.features.attention.pipeline.scoring import AttentionScorer, attention_scorer
from app.features.attention.repository.state_repository import (
    AttentionStateError,
    AttentionStateRepository,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AttentionUserMissingError(ValueError):
    """A run was requested without a user identity."""


class AttentionStateUnavailableError(RuntimeError):
    """The state overlay could not be read, so dismissed items cannot be hidden."""


class AttentionService:
    """
    Runs the attention pipeline:

    read state overlay -> fan out collectors -> state filter -> score ->
    deduplicate -> section.

    Stateless between runs; for a fixed ``now`` and fixed source data the
    output is identical.
    """

    def __init__(
        self,
        runner: CollectorRunner | None = None,
        scorer: AttentionScorer | None = None,
        state_repository: type[AttentionStateRepository] = AttentionStateRepository,
    ):
        self._runner = runner
        self._scorer = scorer or attention_scorer
        self._state_repository = state_repository

    @property
    def runner(self) -> CollectorRunner:
        if self._runner is None:
            self._runner = CollectorRunner()
        return self._runner

    async def run(
        self,
        user_id: str | None,
        window_hours: int | None = None,
        now: datetime | None = None,
    ) -> AttentionFeed:
        """
        Build the sectioned attention feed for a user.

        Args:
            user_id: Requesting user; required
            window_hours: Trailing window for time-bounded sources
            now: Reference time (defaults to current UTC time)

        Raises:
            AttentionUserMissingError: No user id given
            AttentionStateUnavailableError: State overlay could not be read
        """
        if not user_id:
            raise AttentionUserMissingError("cannot run without a user")

        window_hours = window_hours or settings.ATTENTION_DEFAULT_WINDOW_HOURS
        if window_hours < 1:
            raise ValueError("window_hours must be positive")

        now = now or datetime.now(UTC)
        window_start = now - timedelta(hours=window_hours)

        try:
            states = await self._state_repository.fetch_states(user_id)
        except AttentionStateError as e:
            logger.error("Attention state overlay unavailable", user_id=user_id, error=str(e))
            raise AttentionStateUnavailableError(str(e)) from e

        collected = await self.runner.collect(user_id, window_start, now)

        visible = apply_user_state(collected.items, states, now)
        scored = self._scorer.apply(visible, user_id, now)
        unique = deduplicate(scored)
        sections, counts = build_sections(unique)

        logger.info(
            "Attention feed computed",
            user_id=user_id,
            window_hours=window_hours,
            candidates=len(collected.items),
            hidden=len(collected.items) - len(visible),
            counts=counts,
            failed_collectors=collected.failed,
        )

        return AttentionFeed(
            generated_at=now,
            window_start=window_start,
            window_hours=window_hours,
            sections=sections,
            counts=counts,
            failed_collectors=collected.failed,
        )


attention_service = AttentionService()
