# app/models/api/dashboard_request.py
"""
Dashboard API request models.
The decision-engine stream arrives in the request body and is converted to
domain objects before classification.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.config import settings
from app.features.dashboard.domain import (
    DecisionContext,
    DecisionCta,
    DecisionItem,
    DecisionKind,
    DecisionSeverity,
    DecisionSurface,
    GroupBy,
)


class DecisionContextPayload(BaseModel):
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


class DecisionCtaPayload(BaseModel):
    label: str
    action_key: str
    payload: dict[str, Any] = Field(default_factory=dict)


class DecisionItemPayload(BaseModel):
    """One decision-engine item; rollups carry ``children``."""

    id: str = Field(..., min_length=1)
    kind: DecisionKind
    surface: DecisionSurface
    severity: DecisionSeverity
    title: str
    description: str = ""
    created_at: datetime | None = None
    context: DecisionContextPayload = Field(default_factory=DecisionContextPayload)
    ctas: list[DecisionCtaPayload] = Field(default_factory=list)
    children: list["DecisionItemPayload"] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def to_domain(self) -> DecisionItem:
        return DecisionItem(
            id=self.id,
            kind=self.kind,
            surface=self.surface,
            severity=self.severity,
            title=self.title,
            description=self.description,
            created_at=self.created_at,
            context=DecisionContext(**self.context.model_dump()),
            ctas=[DecisionCta(**cta.model_dump()) for cta in self.ctas],
            children=[child.to_domain() for child in self.children],
        )


class DashboardRequest(BaseModel):
    """Build the banded dashboard from the decision stream and the attention feed."""

    decision_items: list[DecisionItemPayload] = Field(
        default_factory=list, description="Decision-engine items"
    )
    portfolio_id: str | None = Field(default=None, description="Only show this portfolio")
    window_hours: int = Field(
        default=settings.ATTENTION_DEFAULT_WINDOW_HOURS,
        ge=1,
        le=settings.ATTENTION_MAX_WINDOW_HOURS,
        description="Attention feed window in hours",
    )
    group_by: GroupBy = Field(default=GroupBy.NONE, description="Grouping for the groups list")
    urgent_only: bool = Field(default=False, description="Keep NOW and high-severity SOON only")
