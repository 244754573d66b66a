# app/models/api/attention_request.py
"""
Attention API request models.
Used by routes for input validation.
"""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field, model_validator

from app.features.attention.domain import DismissReason


class AttentionTargetRequest(BaseModel):
    """Request naming a single attention item."""

    attention_id: str = Field(..., min_length=1, max_length=64, description="Attention item ID")


class SnoozeRequest(AttentionTargetRequest):
    """Snooze an item until a timestamp or for a number of hours."""

    snoozed_until: datetime | None = Field(default=None, description="Snooze until (UTC)")
    hours: float | None = Field(default=None, gt=0, le=24 * 90, description="Snooze duration")

    @model_validator(mode="after")
    def _check_target(self):
        if self.snoozed_until is None and self.hours is None:
            raise ValueError("either snoozed_until or hours is required")
        if self.snoozed_until is not None:
            if self.snoozed_until.tzinfo is None:
                self.snoozed_until = self.snoozed_until.replace(tzinfo=UTC)
            if self.snoozed_until <= datetime.now(UTC):
                raise ValueError("snoozed_until must be in the future")
        return self

    def resolve_until(self, now: datetime) -> datetime:
        if self.snoozed_until is not None:
            return self.snoozed_until
        return now + timedelta(hours=self.hours)


class DismissWithReasonRequest(AttentionTargetRequest):
    """Dismiss an item and record why."""

    reason: DismissReason = Field(..., description="Why the item is not relevant")
    note: str | None = Field(default=None, max_length=500, description="Optional free-text note")


class DeferTradeRequest(BaseModel):
    """Defer a trade decision."""

    hours: float = Field(default=24, gt=0, le=24 * 30, description="Hours until revisit")
