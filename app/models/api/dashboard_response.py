# app/models/api/dashboard_response.py
"""
Dashboard API response models.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.features.dashboard.domain import (
    ActionKind,
    Band,
    BandSummary,
    DashboardAction,
    DashboardGroup,
    DashboardItem,
    DashboardItemType,
    DashboardSeverity,
    ItemOrigin,
    TodaySummary,
)


class DashboardActionResponse(BaseModel):
    label: str
    kind: ActionKind
    target: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, action: DashboardAction) -> "DashboardActionResponse":
        return cls(label=action.label, kind=action.kind, target=dict(action.target))


class DashboardItemResponse(BaseModel):
    """Response model for a single dashboard row."""

    id: str
    band: Band
    severity: DashboardSeverity
    type: DashboardItemType
    title: str
    reason: str
    age_days: int = Field(..., ge=0)
    source: ItemOrigin
    primary_action: DashboardActionResponse
    secondary_actions: list[DashboardActionResponse] = Field(default_factory=list)
    context_chips: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    portfolio_id: str | None = None
    asset_id: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, item: DashboardItem) -> "DashboardItemResponse":
        return cls(
            id=item.id,
            band=item.band,
            severity=item.severity,
            type=item.type,
            title=item.title,
            reason=item.reason,
            age_days=item.age_days,
            source=item.source,
            primary_action=DashboardActionResponse.from_domain(item.primary_action),
            secondary_actions=[
                DashboardActionResponse.from_domain(a) for a in item.secondary_actions
            ],
            context_chips=list(item.context_chips),
            created_at=item.created_at,
            portfolio_id=item.portfolio_id,
            asset_id=item.asset_id,
            meta=dict(item.meta),
        )


class BreakdownChipResponse(BaseModel):
    label: str
    count: int


class BandSummaryResponse(BaseModel):
    band: Band
    count: int
    oldest_age_days: int
    breakdown_chips: list[BreakdownChipResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, summary: BandSummary) -> "BandSummaryResponse":
        return cls(
            band=summary.band,
            count=summary.count,
            oldest_age_days=summary.oldest_age_days,
            breakdown_chips=[
                BreakdownChipResponse(label=c.label, count=c.count)
                for c in summary.breakdown_chips
            ],
        )


class TodaySummaryResponse(BaseModel):
    decisions: int = 0
    work_items: int = 0
    risk_signals: int = 0

    @classmethod
    def from_domain(cls, summary: TodaySummary) -> "TodaySummaryResponse":
        return cls(
            decisions=summary.decisions,
            work_items=summary.work_items,
            risk_signals=summary.risk_signals,
        )


class DashboardGroupResponse(BaseModel):
    key: str
    label: str
    item_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, group: DashboardGroup) -> "DashboardGroupResponse":
        return cls(key=group.key, label=group.label, item_ids=[i.id for i in group.items])


class DashboardResponse(BaseModel):
    """Banded dashboard with per-band summaries."""

    generated_at: datetime = Field(..., description="Classification time")
    now: list[DashboardItemResponse] = Field(default_factory=list)
    soon: list[DashboardItemResponse] = Field(default_factory=list)
    aware: list[DashboardItemResponse] = Field(default_factory=list)
    today: TodaySummaryResponse
    band_summaries: list[BandSummaryResponse] = Field(default_factory=list)
    groups: list[DashboardGroupResponse] = Field(default_factory=list)
    failed_collectors: list[str] = Field(default_factory=list)
