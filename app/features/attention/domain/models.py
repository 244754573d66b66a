"""
Domain models for the attention feed.

Items are rebuilt from the source tables on every run; only the per-user
state overlay (read/snooze/dismiss) is persisted between runs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SourceType(str, Enum):
    """Domain table an attention item was derived from."""

    PROJECT_DELIVERABLE = "project_deliverable"
    PROJECT = "project"
    TRADE_QUEUE_ITEM = "trade_queue_item"
    LIST_SUGGESTION = "list_suggestion"
    NOTIFICATION = "notification"
    QUICK_THOUGHT = "quick_thought"


class AttentionType(str, Enum):
    INFORMATIONAL = "informational"
    ACTION_REQUIRED = "action_required"
    DECISION_REQUIRED = "decision_required"
    ALIGNMENT = "alignment"


# Deduplication precedence, higher wins
ATTENTION_TYPE_PRIORITY: dict[AttentionType, int] = {
    AttentionType.DECISION_REQUIRED: 4,
    AttentionType.ACTION_REQUIRED: 3,
    AttentionType.INFORMATIONAL: 2,
    AttentionType.ALIGNMENT: 1,
}

# Section order of the rendered feed
SECTION_ORDER: tuple[AttentionType, ...] = (
    AttentionType.INFORMATIONAL,
    AttentionType.ACTION_REQUIRED,
    AttentionType.DECISION_REQUIRED,
    AttentionType.ALIGNMENT,
)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ItemStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    WAITING = "waiting"
    RESOLVED = "resolved"


class ReadState(str, Enum):
    UNREAD = "unread"
    READ = "read"
    ACKNOWLEDGED = "acknowledged"


class Audience(str, Enum):
    PERSONAL = "personal"
    SHARED = "shared"
    TEAM = "team"


class DismissReason(str, Enum):
    DUPLICATE = "duplicate"
    INCORRECT_SIGNAL = "incorrect_signal"
    NOT_MY_RESPONSIBILITY = "not_my_responsibility"
    NO_LONGER_RELEVANT = "no_longer_relevant"


@dataclass(slots=True)
class ScoreEntry:
    """One named contribution to an item's score."""

    key: str
    value: float


@dataclass(slots=True)
class AttentionContext:
    asset_id: str | None = None
    portfolio_id: str | None = None
    project_id: str | None = None
    list_id: str | None = None


@dataclass(slots=True)
class AttentionItem:
    """A single candidate surfaced to the user."""

    attention_id: str
    source_type: SourceType
    source_id: str
    attention_type: AttentionType
    reason_code: str
    reason_text: str
    title: str
    severity: Severity
    status: ItemStatus
    created_at: datetime
    updated_at: datetime
    last_activity_at: datetime
    source_url: str = "/"
    subtitle: str | None = None
    preview: str | None = None
    tags: list[str] = field(default_factory=list)
    next_action: str | None = None
    icon_key: str | None = None
    audience: Audience = Audience.PERSONAL
    primary_owner_user_id: str | None = None
    participant_user_ids: list[str] = field(default_factory=list)
    created_by_user_id: str | None = None
    last_actor_user_id: str | None = None
    due_at: datetime | None = None
    blocker_reason: str | None = None
    score: float = 0.0
    score_breakdown: list[ScoreEntry] = field(default_factory=list)
    read_state: ReadState | None = None
    last_viewed_at: datetime | None = None
    snoozed_until: datetime | None = None
    context: AttentionContext = field(default_factory=AttentionContext)

    @property
    def source_key(self) -> str:
        return f"{self.source_type.value}:{self.source_id}"


@dataclass(slots=True)
class AttentionUserState:
    """Represents an attention_user_state row."""

    attention_id: str
    read_state: ReadState | None = None
    last_viewed_at: datetime | None = None
    snoozed_until: datetime | None = None
    dismissed_at: datetime | None = None
    dismiss_reason: DismissReason | None = None
    dismiss_note: str | None = None


@dataclass(slots=True)
class AttentionFeed:
    """Sectioned output of one aggregation run."""

    generated_at: datetime
    window_start: datetime
    window_hours: int
    sections: dict[AttentionType, list[AttentionItem]]
    counts: dict[str, int]
    failed_collectors: list[str] = field(default_factory=list)

    def items(self) -> list[AttentionItem]:
        """Flatten the sections in display order."""
        return [item for section in SECTION_ORDER for item in self.sections.get(section, [])]
