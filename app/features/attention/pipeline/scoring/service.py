"""
Attention scoring - weighted, explainable priority for each candidate.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from app.features.attention.domain import (
    AttentionItem,
    AttentionType,
    ItemStatus,
    ScoreEntry,
    Severity,
)

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600


def _default_severity_multipliers() -> dict[Severity, float]:
    return {
        Severity.LOW: 1.0,
        Severity.MEDIUM: 1.25,
        Severity.HIGH: 1.5,
        Severity.CRITICAL: 2.0,
    }


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    severity_base: float = 10.0
    severity_multipliers: dict[Severity, float] = field(
        default_factory=_default_severity_multipliers
    )
    overdue_per_day: float = 10.0
    due_soon_days: float = 3.0
    due_soon: float = 20.0
    owner: float = 15.0
    assigned: float = 10.0
    decision_type: float = 30.0
    action_type: float = 20.0
    blocking: float = 25.0
    recent_activity_hours: float = 24.0
    recent_activity: float = 10.0
    stale_hours: float = 72.0
    stale: float = -5.0


DEFAULT_WEIGHTS = ScoringWeights()


class AttentionScorer:
    """
    Scores candidates for a single user.

    The breakdown lists every non-zero contribution in computation order.
    When the raw total is negative, a ``floor`` entry brings it back to zero
    so the breakdown always sums to the score.
    """

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def score_item(
        self, item: AttentionItem, user_id: str, now: datetime
    ) -> tuple[float, list[ScoreEntry]]:
        w = self.weights
        breakdown: list[ScoreEntry] = []

        def add(key: str, value: float) -> None:
            if value:
                breakdown.append(ScoreEntry(key=key, value=value))

        add("severity", w.severity_base * w.severity_multipliers.get(item.severity, 1.0))

        if item.due_at is not None:
            days_until_due = (item.due_at - now).total_seconds() / SECONDS_PER_DAY
            if item.due_at < now:
                overdue_days = abs(math.floor(days_until_due))
                add("overdue", overdue_days * w.overdue_per_day)
            elif days_until_due <= w.due_soon_days:
                add("due_soon", w.due_soon)

        if item.primary_owner_user_id == user_id:
            add("owner", w.owner)
        elif user_id in item.participant_user_ids:
            add("assigned", w.assigned)

        if item.attention_type == AttentionType.DECISION_REQUIRED:
            add("decision_type", w.decision_type)
        elif item.attention_type == AttentionType.ACTION_REQUIRED:
            add("action_type", w.action_type)

        if item.status == ItemStatus.BLOCKED or item.blocker_reason:
            add("blocking", w.blocking)

        hours_since_activity = (now - item.last_activity_at).total_seconds() / SECONDS_PER_HOUR
        if hours_since_activity <= w.recent_activity_hours:
            add("recent_activity", w.recent_activity)
        elif hours_since_activity > w.stale_hours:
            add("stale", w.stale)

        raw_total = sum(entry.value for entry in breakdown)
        if raw_total < 0:
            breakdown.append(ScoreEntry(key="floor", value=-raw_total))
            return 0.0, breakdown
        return raw_total, breakdown

    def apply(
        self, items: Iterable[AttentionItem], user_id: str, now: datetime
    ) -> list[AttentionItem]:
        """Score every item in place and return them in input order."""
        scored: list[AttentionItem] = []
        for item in items:
            item.score, item.score_breakdown = self.score_item(item, user_id, now)
            scored.append(item)
        return scored


attention_scorer = AttentionScorer()


def score_item(
    item: AttentionItem, user_id: str, now: datetime
) -> tuple[float, list[ScoreEntry]]:
    return attention_scorer.score_item(item, user_id, now)
