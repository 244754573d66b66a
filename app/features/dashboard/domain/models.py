"""
Domain models for the banded dashboard.

DecisionItem describes the external decision-engine stream as this service
receives it. DashboardItem is the display-ready output of the classifier;
its actions are plain descriptors the client interprets.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Band(str, Enum):
    NOW = "NOW"
    SOON = "SOON"
    AWARE = "AWARE"


class DashboardSeverity(str, Enum):
    HIGH = "HIGH"
    MED = "MED"
    LOW = "LOW"


SEVERITY_RANK: dict[DashboardSeverity, int] = {
    DashboardSeverity.HIGH: 3,
    DashboardSeverity.MED: 2,
    DashboardSeverity.LOW: 1,
}


class DashboardItemType(str, Enum):
    DECISION = "DECISION"
    SIMULATION = "SIMULATION"
    PROJECT = "PROJECT"
    THESIS = "THESIS"
    RATING = "RATING"
    SIGNAL = "SIGNAL"
    OTHER = "OTHER"


class ActionKind(str, Enum):
    NAVIGATE = "navigate"
    SNOOZE = "snooze"
    CAPTURE = "capture"
    DISPATCH = "dispatch"


class ItemOrigin(str, Enum):
    ATTENTION = "attention"
    DECISION_ENGINE = "decision_engine"


class GroupBy(str, Enum):
    NONE = "none"
    PORTFOLIO = "portfolio"
    TYPE = "type"


class DecisionKind(str, Enum):
    """What the decision engine flagged."""

    PROPOSAL = "proposal"
    EXECUTION = "execution"
    UNSIMULATED_IDEA = "unsimulated_idea"
    DELIVERABLE = "deliverable"
    RATING_CHANGE = "rating_change"
    EV_SIGNAL = "ev_signal"
    THESIS_STALE = "thesis_stale"
    CATALYST = "catalyst"
    PROJECT = "project"
    OTHER = "other"


class DecisionSurface(str, Enum):
    ACTION = "action"
    INTEL = "intel"


class DecisionSeverity(str, Enum):
    RED = "red"
    ORANGE = "orange"
    BLUE = "blue"
    GRAY = "gray"


@dataclass(slots=True)
class DecisionContext:
    portfolio_id: str | None = None
    portfolio_name: str | None = None
    asset_id: str | None = None
    asset_ticker: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    trade_idea_id: str | None = None
    action: str | None = None
    urgency: str | None = None
    rationale: str | None = None
    overdue_days: int | None = None
    rating_from: str | None = None
    rating_to: str | None = None


@dataclass(slots=True)
class DecisionCta:
    label: str
    action_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class DecisionItem:
    """One item from the decision engine; rollups carry their members in ``children``."""

    id: str
    kind: DecisionKind
    surface: DecisionSurface
    severity: DecisionSeverity
    title: str
    description: str = ""
    created_at: datetime | None = None
    context: DecisionContext = field(default_factory=DecisionContext)
    ctas: list[DecisionCta] = field(default_factory=list)
    children: list["DecisionItem"] = field(default_factory=list)


@dataclass(slots=True)
class DashboardAction:
    label: str
    kind: ActionKind
    target: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class DashboardItem:
    id: str
    band: Band
    severity: DashboardSeverity
    type: DashboardItemType
    title: str
    reason: str
    age_days: int
    source: ItemOrigin
    primary_action: DashboardAction
    secondary_actions: list[DashboardAction] = field(default_factory=list)
    context_chips: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    portfolio_id: str | None = None
    portfolio_name: str | None = None
    asset_id: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class BreakdownChip:
    label: str
    count: int


@dataclass(slots=True)
class BandSummary:
    band: Band
    count: int
    oldest_age_days: int
    breakdown_chips: list[BreakdownChip] = field(default_factory=list)


@dataclass(slots=True)
class TodaySummary:
    decisions: int = 0
    work_items: int = 0
    risk_signals: int = 0


@dataclass(slots=True)
class DashboardSummaries:
    today: TodaySummary
    bands: dict[Band, BandSummary]


@dataclass(slots=True)
class ClassifiedDashboard:
    now: list[DashboardItem]
    soon: list[DashboardItem]
    aware: list[DashboardItem]
    summaries: DashboardSummaries


@dataclass(slots=True)
class DashboardGroup:
    key: str
    label: str
    items: list[DashboardItem] = field(default_factory=list)
