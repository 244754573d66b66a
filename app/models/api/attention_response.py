# app/models/api/attention_response.py
"""
Attention API response models.
Used by routes for output formatting and by the feed cache for
serialization.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.features.attention.domain import (
    SECTION_ORDER,
    AttentionFeed,
    AttentionItem,
    AttentionType,
    Audience,
    ItemStatus,
    ReadState,
    Severity,
    SourceType,
)


class ScoreEntryResponse(BaseModel):
    key: str
    value: float


class AttentionContextResponse(BaseModel):
    asset_id: str | None = None
    portfolio_id: str | None = None
    project_id: str | None = None
    list_id: str | None = None


class AttentionItemResponse(BaseModel):
    """Response model for a single attention item."""

    attention_id: str = Field(..., description="Stable item ID")
    source_type: SourceType = Field(..., description="Originating domain")
    source_id: str = Field(..., description="ID of the originating record")
    source_url: str = Field(..., description="Relative in-app link")
    attention_type: AttentionType
    reason_code: str
    reason_text: str
    title: str
    subtitle: str | None = None
    preview: str | None = None
    tags: list[str] = Field(default_factory=list)
    next_action: str | None = None
    icon_key: str | None = None
    audience: Audience = Audience.PERSONAL
    severity: Severity
    status: ItemStatus
    primary_owner_user_id: str | None = None
    participant_user_ids: list[str] = Field(default_factory=list)
    created_by_user_id: str | None = None
    last_actor_user_id: str | None = None
    created_at: datetime
    updated_at: datetime
    last_activity_at: datetime
    due_at: datetime | None = None
    blocker_reason: str | None = None
    score: float = Field(..., ge=0, description="Priority score")
    score_breakdown: list[ScoreEntryResponse] = Field(default_factory=list)
    read_state: ReadState | None = None
    last_viewed_at: datetime | None = None
    snoozed_until: datetime | None = None
    context: AttentionContextResponse = Field(default_factory=AttentionContextResponse)

    @classmethod
    def from_domain(cls, item: AttentionItem) -> "AttentionItemResponse":
        return cls(
            attention_id=item.attention_id,
            source_type=item.source_type,
            source_id=item.source_id,
            source_url=item.source_url,
            attention_type=item.attention_type,
            reason_code=item.reason_code,
            reason_text=item.reason_text,
            title=item.title,
            subtitle=item.subtitle,
            preview=item.preview,
            tags=list(item.tags),
            next_action=item.next_action,
            icon_key=item.icon_key,
            audience=item.audience,
            severity=item.severity,
            status=item.status,
            primary_owner_user_id=item.primary_owner_user_id,
            participant_user_ids=list(item.participant_user_ids),
            created_by_user_id=item.created_by_user_id,
            last_actor_user_id=item.last_actor_user_id,
            created_at=item.created_at,
            updated_at=item.updated_at,
            last_activity_at=item.last_activity_at,
            due_at=item.due_at,
            blocker_reason=item.blocker_reason,
            score=item.score,
            score_breakdown=[
                ScoreEntryResponse(key=entry.key, value=entry.value)
                for entry in item.score_breakdown
            ],
            read_state=item.read_state,
            last_viewed_at=item.last_viewed_at,
            snoozed_until=item.snoozed_until,
            context=AttentionContextResponse(
                asset_id=item.context.asset_id,
                portfolio_id=item.context.portfolio_id,
                project_id=item.context.project_id,
                list_id=item.context.list_id,
            ),
        )


class AttentionSectionsResponse(BaseModel):
    informational: list[AttentionItemResponse] = Field(default_factory=list)
    action_required: list[AttentionItemResponse] = Field(default_factory=list)
    decision_required: list[AttentionItemResponse] = Field(default_factory=list)
    alignment: list[AttentionItemResponse] = Field(default_factory=list)


class AttentionCountsResponse(BaseModel):
    informational: int = 0
    action_required: int = 0
    decision_required: int = 0
    alignment: int = 0
    total: int = 0


class AttentionFeedResponse(BaseModel):
    """Response model for the sectioned attention feed."""

    generated_at: datetime = Field(..., description="When the feed was computed")
    window_start: datetime = Field(..., description="Start of the trailing window")
    window_hours: int = Field(..., description="Window length in hours")
    sections: AttentionSectionsResponse
    counts: AttentionCountsResponse
    failed_collectors: list[str] = Field(
        default_factory=list, description="Collectors that failed or timed out"
    )

    @classmethod
    def from_domain(cls, feed: AttentionFeed) -> "AttentionFeedResponse":
        sections = {
            section.value: [
                AttentionItemResponse.from_domain(item) for item in feed.sections.get(section, [])
            ]
            for section in SECTION_ORDER
        }
        return cls(
            generated_at=feed.generated_at,
            window_start=feed.window_start,
            window_hours=feed.window_hours,
            sections=AttentionSectionsResponse(**sections),
            counts=AttentionCountsResponse(**feed.counts),
            failed_collectors=list(feed.failed_collectors),
        )


class AttentionCountsOnlyResponse(BaseModel):
    """Counts for the badge, without item payloads."""

    window_hours: int
    counts: AttentionCountsResponse


class ActionResponse(BaseModel):
    success: bool = True


class DeferTradeResponse(ActionResponse):
    revisit_at: datetime
