"""
Domain subpackage for the dashboard feature.
"""

from .models import (
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
    DecisionContext,
    DecisionCta,
    DecisionItem,
    DecisionKind,
    DecisionSeverity,
    DecisionSurface,
    GroupBy,
    ItemOrigin,
    TodaySummary,
)

__all__ = [
    "SEVERITY_RANK",
    "ActionKind",
    "Band",
    "BandSummary",
    "BreakdownChip",
    "ClassifiedDashboard",
    "DashboardAction",
    "DashboardGroup",
    "DashboardItem",
    "DashboardItemType",
    "DashboardSeverity",
    "DashboardSummaries",
    "DecisionContext",
    "DecisionCta",
    "DecisionItem",
    "DecisionKind",
    "DecisionSeverity",
    "DecisionSurface",
    "GroupBy",
    "ItemOrigin",
    "TodaySummary",
]
