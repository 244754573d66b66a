"""
Band classifier for the dashboard.

Merges the attention feed with the decision-engine stream into three bands:
NOW (needs a decision or is blocking), SOON (work to schedule) and AWARE
(context only). Everything here is pure; ``now`` is passed in so the same
inputs always produce the same dashboard.
"""

import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import assert_never

from app.features.attention.domain import (
    AttentionItem,
    AttentionType,
    ItemStatus,
    Severity,
    SourceType,
)
from app.features.dashboard.domain import (
    SEVERITY_RANK,
    ActionKind,
    Band,
    BandSummary,
    BreakdownChip,
    ClassifiedDashboard,
    DashboardAction,
    DashboardGroup,
    DashboardItem,
    DashboardItemType,
    DashboardSeverity,
    DashboardSummaries,
    DecisionItem,
    DecisionKind,
    DecisionSeverity,
    DecisionSurface,
    GroupBy,
    ItemOrigin,
    TodaySummary,
)

# Age thresholds in days: (HIGH at or above, MED at or above)
PROPOSAL_AGE_THRESHOLDS = (7, 3)
EXECUTION_AGE_THRESHOLDS = (5, 2)
THESIS_AGE_THRESHOLDS = (180, 90)
RATING_FRESH_DAYS = 7
SIMULATION_MED_DAYS = 5

DEFER_HOURS = 24
ATTENTION_ID_PREFIX = "attn-"

TYPE_LABELS: dict[DashboardItemType, str] = {
    DashboardItemType.DECISION: "decisions",
    DashboardItemType.SIMULATION: "simulations",
    DashboardItemType.PROJECT: "projects",
    DashboardItemType.THESIS: "thesis",
    DashboardItemType.RATING: "ratings",
    DashboardItemType.SIGNAL: "signals",
    DashboardItemType.OTHER: "other",
}

RISK_SIGNAL_TYPES = frozenset({DashboardItemType.SIGNAL, DashboardItemType.RATING})

ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Type inference
# ---------------------------------------------------------------------------


def infer_decision_type(item: DecisionItem) -> DashboardItemType:
    match item.kind:
        case DecisionKind.PROPOSAL | DecisionKind.EXECUTION:
            return DashboardItemType.DECISION
        case DecisionKind.UNSIMULATED_IDEA:
            return DashboardItemType.SIMULATION
        case DecisionKind.DELIVERABLE | DecisionKind.PROJECT:
            return DashboardItemType.PROJECT
        case DecisionKind.RATING_CHANGE:
            return DashboardItemType.RATING
        case DecisionKind.EV_SIGNAL | DecisionKind.CATALYST:
            return DashboardItemType.SIGNAL
        case DecisionKind.THESIS_STALE:
            return DashboardItemType.THESIS
        case DecisionKind.OTHER:
            return DashboardItemType.OTHER
        case _:
            assert_never(item.kind)


def infer_attention_type(item: AttentionItem) -> DashboardItemType:
    match item.source_type:
        case SourceType.TRADE_QUEUE_ITEM:
            return DashboardItemType.DECISION
        case SourceType.PROJECT_DELIVERABLE | SourceType.PROJECT:
            return DashboardItemType.PROJECT
        case SourceType.LIST_SUGGESTION | SourceType.NOTIFICATION | SourceType.QUICK_THOUGHT:
            if item.attention_type == AttentionType.DECISION_REQUIRED:
                return DashboardItemType.DECISION
            return DashboardItemType.OTHER
        case _:
            assert_never(item.source_type)


# ---------------------------------------------------------------------------
# Band and severity
# ---------------------------------------------------------------------------


def _is_overdue(item: AttentionItem, now: datetime) -> bool:
    return item.due_at is not None and item.due_at < now


def attention_band(item: AttentionItem, now: datetime) -> Band:
    if item.attention_type == AttentionType.DECISION_REQUIRED:
        return Band.NOW
    if item.status == ItemStatus.BLOCKED:
        return Band.NOW
    if item.severity in (Severity.HIGH, Severity.CRITICAL) and _is_overdue(item, now):
        return Band.NOW
    if item.attention_type == AttentionType.ACTION_REQUIRED:
        return Band.SOON
    return Band.AWARE


def decision_band(item: DecisionItem) -> Band:
    red = item.severity == DecisionSeverity.RED
    orange = item.severity == DecisionSeverity.ORANGE
    on_action = item.surface == DecisionSurface.ACTION

    if item.kind in (DecisionKind.PROPOSAL, DecisionKind.EXECUTION):
        return Band.NOW
    if item.kind == DecisionKind.DELIVERABLE and red:
        return Band.NOW
    if on_action and red:
        return Band.NOW
    # Needs simulation or an update before it can be acted on
    if item.kind in (
        DecisionKind.UNSIMULATED_IDEA,
        DecisionKind.THESIS_STALE,
        DecisionKind.RATING_CHANGE,
    ):
        return Band.SOON
    if item.kind == DecisionKind.DELIVERABLE and orange:
        return Band.SOON
    if on_action and orange:
        return Band.SOON
    if item.surface == DecisionSurface.INTEL:
        return Band.AWARE
    return Band.SOON


def _by_age(age_days: int, thresholds: tuple[int, int]) -> DashboardSeverity:
    high, med = thresholds
    if age_days >= high:
        return DashboardSeverity.HIGH
    if age_days >= med:
        return DashboardSeverity.MED
    return DashboardSeverity.LOW


def _from_colour(colour: DecisionSeverity) -> DashboardSeverity:
    if colour == DecisionSeverity.RED:
        return DashboardSeverity.HIGH
    if colour == DecisionSeverity.ORANGE:
        return DashboardSeverity.MED
    return DashboardSeverity.LOW


def decision_severity(
    item: DecisionItem, item_type: DashboardItemType, age_days: int
) -> DashboardSeverity:
    if item.kind == DecisionKind.PROPOSAL:
        return _by_age(age_days, PROPOSAL_AGE_THRESHOLDS)
    if item.kind == DecisionKind.EXECUTION:
        return _by_age(age_days, EXECUTION_AGE_THRESHOLDS)

    if item_type == DashboardItemType.PROJECT:
        # Overdue deliverables arrive red
        if item.severity == DecisionSeverity.RED:
            return DashboardSeverity.HIGH
        if item.severity == DecisionSeverity.ORANGE:
            return DashboardSeverity.MED
    elif item_type == DashboardItemType.THESIS:
        return _by_age(age_days, THESIS_AGE_THRESHOLDS)
    elif item_type == DashboardItemType.RATING:
        return DashboardSeverity.MED if age_days <= RATING_FRESH_DAYS else DashboardSeverity.LOW
    elif item_type == DashboardItemType.SIMULATION:
        return DashboardSeverity.MED if age_days >= SIMULATION_MED_DAYS else DashboardSeverity.LOW

    return _from_colour(item.severity)


def attention_severity(item: AttentionItem) -> DashboardSeverity:
    if item.severity in (Severity.CRITICAL, Severity.HIGH):
        return DashboardSeverity.HIGH
    if item.severity == Severity.MEDIUM:
        return DashboardSeverity.MED
    return DashboardSeverity.LOW


# ---------------------------------------------------------------------------
# Age and chips
# ---------------------------------------------------------------------------


def compute_age(reference: datetime | None, now: datetime) -> int:
    """Whole days since ``reference``, never negative; 0 without a reference."""
    if reference is None:
        return 0
    return max(0, math.floor((now - reference) / ONE_DAY))


def _decision_chips(item: DecisionItem, age_days: int) -> list[str]:
    chips = []
    if item.context.portfolio_name:
        chips.append(item.context.portfolio_name)
    if item.context.asset_ticker:
        chips.append(item.context.asset_ticker)
    if age_days > 0:
        chips.append(f"{age_days}d")
    return chips


def _attention_chips(item: AttentionItem, age_days: int, now: datetime) -> list[str]:
    chips = []
    if item.subtitle:
        chips.append(item.subtitle)
    if item.due_at is not None:
        if item.due_at < now:
            chips.append(f"{compute_age(item.due_at, now)}d overdue")
        else:
            chips.append(f"due {math.ceil((item.due_at - now) / ONE_DAY)}d")
    if age_days > 0:
        chips.append(f"{age_days}d")
    return chips


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _navigate(label: str, **target) -> DashboardAction:
    return DashboardAction(label=label, kind=ActionKind.NAVIGATE, target=target)


def _defer_action(item_id: str) -> DashboardAction:
    return DashboardAction(
        label="Defer 1d",
        kind=ActionKind.SNOOZE,
        target={"item_id": item_id, "hours": DEFER_HOURS},
    )


def decision_primary_action(item: DecisionItem, item_type: DashboardItemType) -> DashboardAction:
    ctx = item.context
    match item_type:
        case DashboardItemType.DECISION:
            if item.kind == DecisionKind.PROPOSAL:
                label = "Review"
            elif item.kind == DecisionKind.EXECUTION:
                label = "Confirm"
            else:
                label = "Open"
            return _navigate(label, view="trade-queue", trade_id=ctx.trade_idea_id)
        case DashboardItemType.SIMULATION:
            return _navigate("Simulate", view="trade-lab", asset_id=ctx.asset_id)
        case DashboardItemType.THESIS:
            return _navigate(
                "Update", view="asset", asset_id=ctx.asset_id, ticker=ctx.asset_ticker, intent="thesis"
            )
        case DashboardItemType.PROJECT:
            return _navigate("Open", view="project", project_id=ctx.project_id)
        case DashboardItemType.RATING:
            return DashboardAction(
                label="Create Idea",
                kind=ActionKind.CAPTURE,
                target={
                    "capture_type": "trade_idea",
                    "context_type": "asset",
                    "context_id": ctx.asset_id,
                    "context_title": ctx.asset_ticker,
                },
            )
        case DashboardItemType.SIGNAL:
            return _navigate("View", view="asset", asset_id=ctx.asset_id, ticker=ctx.asset_ticker)
        case DashboardItemType.OTHER:
            cta = item.ctas[0] if item.ctas else None
            return DashboardAction(
                label=cta.label if cta else "Open",
                kind=ActionKind.DISPATCH,
                target={
                    "action_key": cta.action_key if cta else None,
                    "payload": dict(cta.payload) if cta else {},
                },
            )
        case _:
            assert_never(item_type)


def attention_primary_action(item: AttentionItem, item_type: DashboardItemType) -> DashboardAction:
    ctx = item.context
    if item_type == DashboardItemType.DECISION:
        return _navigate("Review", view="trade-queue", trade_id=item.source_id)
    if item_type == DashboardItemType.PROJECT:
        return _navigate("Open", view="project", project_id=ctx.project_id or item.source_id)
    if ctx.asset_id:
        return _navigate("Open", view="asset", asset_id=ctx.asset_id)
    if ctx.project_id:
        return _navigate("Open", view="project", project_id=ctx.project_id)
    return _navigate("Open", view="link", url=item.source_url)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def _decision_meta(item: DecisionItem) -> dict:
    ctx = item.context
    fields = {
        "action": ctx.action,
        "urgency": ctx.urgency,
        "rationale": ctx.rationale,
        "project_name": ctx.project_name,
        "overdue_days": ctx.overdue_days,
        "rating_from": ctx.rating_from,
        "rating_to": ctx.rating_to,
    }
    return {key: value for key, value in fields.items() if value is not None}


def map_decision_item(item: DecisionItem, now: datetime) -> DashboardItem:
    item_type = infer_decision_type(item)
    age_days = compute_age(item.created_at, now)
    return DashboardItem(
        id=item.id,
        band=decision_band(item),
        severity=decision_severity(item, item_type, age_days),
        type=item_type,
        title=item.title,
        reason=item.description,
        age_days=age_days,
        source=ItemOrigin.DECISION_ENGINE,
        primary_action=decision_primary_action(item, item_type),
        secondary_actions=[_defer_action(item.id)],
        context_chips=_decision_chips(item, age_days),
        created_at=item.created_at,
        portfolio_id=item.context.portfolio_id,
        portfolio_name=item.context.portfolio_name,
        asset_id=item.context.asset_id,
        meta=_decision_meta(item),
    )


def map_attention_item(item: AttentionItem, now: datetime) -> DashboardItem:
    item_type = infer_attention_type(item)
    age_days = compute_age(item.created_at, now)
    item_id = f"{ATTENTION_ID_PREFIX}{item.attention_id}"
    return DashboardItem(
        id=item_id,
        band=attention_band(item, now),
        severity=attention_severity(item),
        type=item_type,
        title=item.title,
        reason=item.reason_text,
        age_days=age_days,
        source=ItemOrigin.ATTENTION,
        primary_action=attention_primary_action(item, item_type),
        secondary_actions=[_defer_action(item_id)],
        context_chips=_attention_chips(item, age_days, now),
        created_at=item.created_at,
        portfolio_id=item.context.portfolio_id,
        asset_id=item.context.asset_id,
        meta={"attention_id": item.attention_id, "score": item.score},
    )


def flatten_decisions(items: Iterable[DecisionItem]) -> list[DecisionItem]:
    """Replace rollup parents with their children."""
    flat: list[DecisionItem] = []
    for item in items:
        if item.children:
            flat.extend(flatten_decisions(item.children))
        else:
            flat.append(item)
    return flat


def _in_portfolio(portfolio_id: str | None, portfolio_filter: str | None) -> bool:
    return portfolio_filter is None or portfolio_id is None or portfolio_id == portfolio_filter


def merge_streams(
    attention_items: Iterable[AttentionItem],
    decision_items: Iterable[DecisionItem],
    now: datetime,
    portfolio_filter: str | None = None,
) -> list[DashboardItem]:
    """
    Map both streams into dashboard items.

    The decision stream owns trade decisions and deliverables: attention
    trade-queue items are dropped, and attention deliverables are dropped
    when the decision stream already carries a deliverable for the same
    project.
    """
    decisions = flatten_decisions(decision_items)
    engine_deliverable_projects = {
        d.context.project_id
        for d in decisions
        if d.kind == DecisionKind.DELIVERABLE and d.context.project_id
    }

    merged = [
        map_decision_item(d, now)
        for d in decisions
        if _in_portfolio(d.context.portfolio_id, portfolio_filter)
    ]

    for item in attention_items:
        if item.source_type == SourceType.TRADE_QUEUE_ITEM:
            continue
        if (
            item.source_type == SourceType.PROJECT_DELIVERABLE
            and item.context.project_id in engine_deliverable_projects
        ):
            continue
        if not _in_portfolio(item.context.portfolio_id, portfolio_filter):
            continue
        merged.append(map_attention_item(item, now))

    return merged


# ---------------------------------------------------------------------------
# Banding, summaries, grouping
# ---------------------------------------------------------------------------


def _urgency_order(items: list[DashboardItem]) -> list[DashboardItem]:
    return sorted(items, key=lambda i: (-SEVERITY_RANK[i.severity], -i.age_days))


def _newest_first(items: list[DashboardItem]) -> list[DashboardItem]:
    stamped = [i for i in items if i.created_at is not None]
    unstamped = [i for i in items if i.created_at is None]
    return sorted(stamped, key=lambda i: i.created_at, reverse=True) + unstamped


def split_by_band(
    items: Iterable[DashboardItem],
) -> tuple[list[DashboardItem], list[DashboardItem], list[DashboardItem]]:
    now_band: list[DashboardItem] = []
    soon_band: list[DashboardItem] = []
    aware_band: list[DashboardItem] = []
    for item in items:
        if item.band == Band.NOW:
            now_band.append(item)
        elif item.band == Band.SOON:
            soon_band.append(item)
        else:
            aware_band.append(item)
    return _urgency_order(now_band), _urgency_order(soon_band), _newest_first(aware_band)


def compute_today_summary(items: Iterable[DashboardItem]) -> TodaySummary:
    summary = TodaySummary()
    for item in items:
        if item.type == DashboardItemType.DECISION:
            summary.decisions += 1
        elif item.type in RISK_SIGNAL_TYPES:
            summary.risk_signals += 1
        else:
            summary.work_items += 1
    return summary


def compute_band_summary(band: Band, items: list[DashboardItem]) -> BandSummary:
    counts = Counter(item.type for item in items)
    # Counter.most_common keeps first-seen order for equal counts
    chips = [
        BreakdownChip(label=TYPE_LABELS[item_type], count=count)
        for item_type, count in counts.most_common()
    ]
    return BandSummary(
        band=band,
        count=len(items),
        oldest_age_days=max((item.age_days for item in items), default=0),
        breakdown_chips=chips,
    )


def classify(
    attention_items: Iterable[AttentionItem],
    decision_items: Iterable[DecisionItem],
    portfolio_filter: str | None = None,
    now: datetime | None = None,
) -> ClassifiedDashboard:
    """Merge, band, sort and summarise both streams."""
    now = now or datetime.now(UTC)
    merged = merge_streams(attention_items, decision_items, now, portfolio_filter)
    now_band, soon_band, aware_band = split_by_band(merged)
    return ClassifiedDashboard(
        now=now_band,
        soon=soon_band,
        aware=aware_band,
        summaries=summarize(now_band, soon_band, aware_band),
    )


def summarize(
    now_band: list[DashboardItem], soon_band: list[DashboardItem], aware_band: list[DashboardItem]
) -> DashboardSummaries:
    return DashboardSummaries(
        today=compute_today_summary(now_band + soon_band + aware_band),
        bands={
            Band.NOW: compute_band_summary(Band.NOW, now_band),
            Band.SOON: compute_band_summary(Band.SOON, soon_band),
            Band.AWARE: compute_band_summary(Band.AWARE, aware_band),
        },
    )


def filter_urgent(items: Iterable[DashboardItem]) -> list[DashboardItem]:
    return [
        item
        for item in items
        if item.band == Band.NOW
        or (item.band == Band.SOON and item.severity == DashboardSeverity.HIGH)
    ]


def restrict_to_urgent(dashboard: ClassifiedDashboard) -> ClassifiedDashboard:
    """Keep only urgent items and recount the summaries over what is left."""
    now_band = filter_urgent(dashboard.now)
    soon_band = filter_urgent(dashboard.soon)
    return ClassifiedDashboard(
        now=now_band,
        soon=soon_band,
        aware=[],
        summaries=summarize(now_band, soon_band, []),
    )


def group_items(items: Iterable[DashboardItem], group_by: GroupBy) -> list[DashboardGroup]:
    items = list(items)
    if group_by == GroupBy.NONE:
        return [DashboardGroup(key="all", label="", items=items)]

    groups: dict[str, DashboardGroup] = {}
    for item in items:
        if group_by == GroupBy.PORTFOLIO:
            key = item.portfolio_id or "none"
            label = item.portfolio_name or "No Portfolio"
        else:
            key = item.type.value
            label = key.capitalize()
        group = groups.setdefault(key, DashboardGroup(key=key, label=label))
        group.items.append(item)
    return list(groups.values())
