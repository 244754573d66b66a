"""
Attention collectors.

Each collector reads one domain source through AttentionSourceRepository
and turns the rows into AttentionItem candidates with a pure ``build_*``
function. The builders own the relevance and severity rules.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from app.config import settings
from app.features.attention.domain import (
    AttentionContext,
    AttentionItem,
    AttentionType,
    Audience,
    ItemStatus,
    Severity,
    SourceType,
)
from app.features.attention.identity import derive_attention_id
from app.infrastructure.observability.logging import get_logger

from .repository import (
    ACTIVE_PROJECT_STATUSES,
    ALIGNMENT_PROJECT_STATUSES,
    AttentionSourceRepository,
    DeliverableRow,
    NotificationRow,
    ProjectRow,
    SuggestionRow,
    ThoughtRow,
    TradeRow,
    UserRelationships,
)

logger = get_logger(__name__)

PREVIEW_LENGTH = 150
THOUGHT_TITLE_LENGTH = 80
PROJECT_DUE_SOON_DAYS = 7
THOUGHT_EXPIRY_WINDOW = timedelta(hours=24)

TRADE_URGENCY_SEVERITY = {
    "urgent": Severity.CRITICAL,
    "high": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "low": Severity.LOW,
}

NOTIFICATION_URL_PREFIXES = {
    "asset": "/asset/",
    "project": "/project/",
    "note": "/note/",
}


def as_utc(value: datetime | date | None) -> datetime | None:
    """Normalise DB timestamps: dates become UTC midnight, naive values are UTC."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _preview(text: str | None) -> str | None:
    return text[:PREVIEW_LENGTH] if text else None


def _thought_title(content: str) -> str:
    if len(content) > THOUGHT_TITLE_LENGTH:
        return content[:THOUGHT_TITLE_LENGTH] + "..."
    return content


def _tags(*values: str | None, extra: Iterable[str] = ()) -> list[str]:
    return [value for value in (*values, *extra) if value]


def _priority_severity(priority: str | None) -> Severity:
    if priority == "urgent":
        return Severity.HIGH
    if priority == "high":
        return Severity.MEDIUM
    return Severity.LOW


def _is_overdue(due_at: datetime | None, now: datetime) -> bool:
    return due_at is not None and due_at < now


# ---------------------------------------------------------------------------
# Deliverables
# ---------------------------------------------------------------------------


def _deliverable_is_relevant(
    row: DeliverableRow, user_id: str, assigned_project_ids: set[str]
) -> bool:
    if row.assigned_to == user_id:
        return True
    if row.assigned_to is None and row.project_id in assigned_project_ids:
        return True
    return row.project_created_by == user_id


def build_deliverable_items(
    rows: Iterable[DeliverableRow],
    user_id: str,
    assigned_project_ids: set[str],
    now: datetime,
) -> list[AttentionItem]:
    items: list[AttentionItem] = []
    for row in rows:
        if not _deliverable_is_relevant(row, user_id, assigned_project_ids):
            continue

        due_at = as_utc(row.due_date)
        overdue = _is_overdue(due_at, now)
        severity = Severity.HIGH if overdue else _priority_severity(row.project_priority)

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.PROJECT_DELIVERABLE,
                    row.id,
                    AttentionType.ACTION_REQUIRED,
                    "deliverable_pending",
                ),
                source_type=SourceType.PROJECT_DELIVERABLE,
                source_id=row.id,
                source_url=f"/project/{row.project_id}",
                attention_type=AttentionType.ACTION_REQUIRED,
                reason_code="deliverable_pending",
                reason_text=(
                    "This deliverable is overdue and needs completion"
                    if overdue
                    else "You have a pending deliverable to complete"
                ),
                title=row.title,
                subtitle=row.project_title,
                preview=_preview(row.description),
                tags=_tags(row.project_status, row.project_priority),
                next_action="Complete this deliverable",
                icon_key="ListTodo",
                audience=Audience.PERSONAL,
                severity=severity,
                status=ItemStatus.OPEN,
                primary_owner_user_id=row.assigned_to or user_id,
                participant_user_ids=_tags(row.assigned_to),
                created_at=as_utc(row.created_at),
                updated_at=as_utc(row.updated_at),
                last_activity_at=as_utc(row.updated_at),
                due_at=due_at,
                context=AttentionContext(project_id=row.project_id),
            )
        )
    return items


async def collect_deliverables(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    assigned_project_ids = await AttentionSourceRepository.fetch_assigned_project_ids(user_id)
    rows = await AttentionSourceRepository.fetch_open_deliverables(
        user_id, settings.ATTENTION_COLLECTOR_ROW_LIMIT
    )
    return build_deliverable_items(rows, user_id, assigned_project_ids, now)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def _project_reason(row: ProjectRow, due_at: datetime | None, now: datetime) -> str | None:
    if row.status == "blocked":
        return "project_blocked"
    if _is_overdue(due_at, now):
        return "project_overdue"
    if due_at is not None and (due_at - now) <= timedelta(days=PROJECT_DUE_SOON_DAYS):
        return "project_due_soon"
    return None


def _project_is_relevant(row: ProjectRow, user_id: str) -> bool:
    return row.created_by == user_id or user_id in row.assignee_ids


def build_project_items(
    rows: Iterable[ProjectRow], user_id: str, now: datetime
) -> list[AttentionItem]:
    items: list[AttentionItem] = []
    for row in rows:
        if row.status not in ACTIVE_PROJECT_STATUSES or not _project_is_relevant(row, user_id):
            continue

        due_at = as_utc(row.due_date)
        reason_code = _project_reason(row, due_at, now)
        if reason_code is None:
            continue

        blocked = reason_code == "project_blocked"
        if blocked or reason_code == "project_overdue":
            severity = Severity.HIGH
        else:
            severity = _priority_severity(row.priority)

        if blocked:
            reason_text = f"Project is blocked: {row.blocked_reason or 'needs attention'}"
        elif reason_code == "project_overdue":
            reason_text = "Project is overdue"
        else:
            reason_text = "Project is due soon"

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.PROJECT, row.id, AttentionType.ACTION_REQUIRED, reason_code
                ),
                source_type=SourceType.PROJECT,
                source_id=row.id,
                source_url=f"/project/{row.id}",
                attention_type=AttentionType.ACTION_REQUIRED,
                reason_code=reason_code,
                reason_text=reason_text,
                title=row.title,
                subtitle=f"{row.context_type} project" if row.context_type else None,
                preview=_preview(row.description),
                tags=_tags(row.status, row.priority),
                next_action="Resolve blocker" if blocked else "Review project progress",
                icon_key="FolderKanban",
                audience=Audience.PERSONAL,
                severity=severity,
                status=ItemStatus.BLOCKED if row.status == "blocked" else ItemStatus.IN_PROGRESS,
                blocker_reason=row.blocked_reason if row.status == "blocked" else None,
                primary_owner_user_id=row.created_by,
                participant_user_ids=list(row.assignee_ids),
                created_by_user_id=row.created_by,
                created_at=as_utc(row.created_at),
                updated_at=as_utc(row.updated_at),
                last_activity_at=as_utc(row.updated_at),
                due_at=due_at,
                context=AttentionContext(project_id=row.id),
            )
        )
    return items


async def collect_projects(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    rows = await AttentionSourceRepository.fetch_projects(
        user_id, ACTIVE_PROJECT_STATUSES, settings.ATTENTION_COLLECTOR_ROW_LIMIT
    )
    return build_project_items(rows, user_id, now)


# ---------------------------------------------------------------------------
# Trade decisions
# ---------------------------------------------------------------------------


def build_trade_items(rows: Iterable[TradeRow], user_id: str) -> list[AttentionItem]:
    """Trades in the deciding stage the user has not voted on yet."""
    items: list[AttentionItem] = []
    for row in rows:
        if user_id in row.voter_ids:
            continue

        action = (row.action or "trade").upper()
        symbol = row.asset_symbol or ""

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.TRADE_QUEUE_ITEM,
                    row.id,
                    AttentionType.DECISION_REQUIRED,
                    "trade_decision_needed",
                ),
                source_type=SourceType.TRADE_QUEUE_ITEM,
                source_id=row.id,
                source_url="/trade-queue",
                attention_type=AttentionType.DECISION_REQUIRED,
                reason_code="trade_decision_needed",
                reason_text=f"Trade idea for {row.asset_symbol or 'asset'} is ready for decision",
                title=f"{action} {symbol}".strip(),
                subtitle=row.portfolio_name,
                preview=_preview(row.rationale),
                tags=_tags(row.action, row.urgency, "deciding"),
                next_action="Make a decision: Execute, Reject, or Continue Simulating",
                icon_key="Scale",
                audience=Audience.SHARED,
                severity=TRADE_URGENCY_SEVERITY.get(row.urgency or "", Severity.MEDIUM),
                status=ItemStatus.WAITING,
                primary_owner_user_id=row.created_by,
                participant_user_ids=list(row.voter_ids),
                created_by_user_id=row.created_by,
                last_actor_user_id=row.created_by,
                created_at=as_utc(row.created_at),
                updated_at=as_utc(row.updated_at),
                last_activity_at=as_utc(row.updated_at),
                due_at=as_utc(row.expires_at),
                context=AttentionContext(asset_id=row.asset_id, portfolio_id=row.portfolio_id),
            )
        )
    return items


async def collect_trade_decisions(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    rows = await AttentionSourceRepository.fetch_deciding_trades(settings.ATTENTION_SMALL_ROW_LIMIT)
    return build_trade_items(rows, user_id)


# ---------------------------------------------------------------------------
# List suggestions
# ---------------------------------------------------------------------------


def build_suggestion_items(rows: Iterable[SuggestionRow], user_id: str) -> list[AttentionItem]:
    items: list[AttentionItem] = []
    for row in rows:
        adding = row.suggestion_type == "add"
        created_at = as_utc(row.created_at)

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.LIST_SUGGESTION,
                    row.id,
                    AttentionType.DECISION_REQUIRED,
                    "suggestion_pending",
                ),
                source_type=SourceType.LIST_SUGGESTION,
                source_id=row.id,
                source_url=f"/list/{row.list_id}",
                attention_type=AttentionType.DECISION_REQUIRED,
                reason_code="suggestion_pending",
                reason_text=(
                    f"Someone suggested {'adding' if adding else 'removing'} "
                    f"{row.asset_symbol or 'an asset'}"
                ),
                title=f"{'Add' if adding else 'Remove'} {row.asset_symbol or ''}".strip(),
                subtitle=row.list_name,
                preview=_preview(row.notes),
                tags=_tags(row.suggestion_type),
                next_action="Accept or reject suggestion",
                icon_key="ListPlus",
                audience=Audience.PERSONAL,
                severity=Severity.LOW,
                status=ItemStatus.WAITING,
                primary_owner_user_id=user_id,
                participant_user_ids=_tags(row.suggested_by),
                created_by_user_id=row.suggested_by,
                last_actor_user_id=row.suggested_by,
                created_at=created_at,
                updated_at=created_at,
                last_activity_at=created_at,
                context=AttentionContext(asset_id=row.asset_id, list_id=row.list_id),
            )
        )
    return items


async def collect_suggestions(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    rows = await AttentionSourceRepository.fetch_pending_suggestions(
        user_id, settings.ATTENTION_SMALL_ROW_LIMIT
    )
    return build_suggestion_items(rows, user_id)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


def _notification_url(row: NotificationRow) -> str:
    if row.context_type == "workflow":
        return "/workflows"
    prefix = NOTIFICATION_URL_PREFIXES.get(row.context_type or "")
    if prefix and row.context_id:
        return f"{prefix}{row.context_id}"
    return "/"


def build_notification_items(
    rows: Iterable[NotificationRow], user_id: str
) -> list[AttentionItem]:
    """Unread notifications; deliberately not bounded by the time window."""
    items: list[AttentionItem] = []
    for row in rows:
        created_at = as_utc(row.created_at)

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.NOTIFICATION, row.id, AttentionType.INFORMATIONAL, row.type
                ),
                source_type=SourceType.NOTIFICATION,
                source_id=row.id,
                source_url=_notification_url(row),
                attention_type=AttentionType.INFORMATIONAL,
                reason_code=row.type,
                reason_text=row.message or row.title,
                title=row.title,
                preview=_preview(row.message),
                tags=_tags(row.type),
                icon_key="Bell",
                audience=Audience.PERSONAL,
                severity=Severity.LOW,
                status=ItemStatus.OPEN,
                primary_owner_user_id=user_id,
                created_by_user_id=row.changed_by,
                last_actor_user_id=row.changed_by,
                created_at=created_at,
                updated_at=created_at,
                last_activity_at=created_at,
                context=AttentionContext(
                    asset_id=row.context_id if row.context_type == "asset" else None,
                    project_id=row.context_id if row.context_type == "project" else None,
                ),
            )
        )
    return items


async def collect_notifications(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    rows = await AttentionSourceRepository.fetch_unread_notifications(
        user_id, settings.ATTENTION_SMALL_ROW_LIMIT
    )
    return build_notification_items(rows, user_id)


# ---------------------------------------------------------------------------
# Quick thoughts
# ---------------------------------------------------------------------------


def own_thought_trigger(row: ThoughtRow, now: datetime) -> tuple[str, Severity] | None:
    """
    Return (reason_code, severity) when one of the user's own thoughts needs
    attention, or None when nothing has fired yet.

    Thesis ideas always surface. Revisit and alert hooks fire once their date
    is reached; expirations fire inside the last 24 hours.
    """
    if row.is_archived:
        return None
    if row.idea_type == "thesis":
        return "thesis_needs_development", Severity.MEDIUM

    if row.date_type in ("revisit", "alert"):
        revisit_at = as_utc(row.revisit_date)
        if revisit_at is None or revisit_at > now:
            return None
        if row.date_type == "revisit":
            return "thought_revisit_due", Severity.LOW
        return "thought_alert_triggered", Severity.MEDIUM

    if row.date_type == "expiration":
        expires_at = as_utc(row.expires_at)
        if expires_at is None or expires_at - now > THOUGHT_EXPIRY_WINDOW:
            return None
        return "thought_expiring", Severity.HIGH

    return None


_OWN_THOUGHT_REASON_TEXT = {
    "thesis_needs_development": "Thesis needs development or follow-up",
    "thought_revisit_due": "Time to revisit this thought",
    "thought_alert_triggered": "Alert triggered for this thought",
    "thought_expiring": "This thought is expiring soon",
}


def _thought_context_label(row: ThoughtRow) -> str | None:
    return row.asset_symbol or row.project_title or row.portfolio_name


def _thought_context(row: ThoughtRow) -> AttentionContext:
    return AttentionContext(
        asset_id=row.asset_id, project_id=row.project_id, portfolio_id=row.portfolio_id
    )


def build_own_thought_items(
    rows: Iterable[ThoughtRow], user_id: str, now: datetime
) -> list[AttentionItem]:
    items: list[AttentionItem] = []
    for row in rows:
        if row.created_by != user_id:
            continue
        trigger = own_thought_trigger(row, now)
        if trigger is None:
            continue

        reason_code, severity = trigger
        is_thesis = row.idea_type == "thesis"

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.QUICK_THOUGHT, row.id, AttentionType.ACTION_REQUIRED, reason_code
                ),
                source_type=SourceType.QUICK_THOUGHT,
                source_id=row.id,
                source_url="/ideas",
                attention_type=AttentionType.ACTION_REQUIRED,
                reason_code=reason_code,
                reason_text=_OWN_THOUGHT_REASON_TEXT[reason_code],
                title=_thought_title(row.content),
                subtitle=_thought_context_label(row),
                preview=_preview(row.content),
                tags=_tags(row.idea_type, row.sentiment, extra=row.tags),
                next_action=(
                    "Review and develop this thesis" if is_thesis else "Review this thought"
                ),
                icon_key="FileText" if is_thesis else "Lightbulb",
                audience=Audience.PERSONAL,
                severity=severity,
                status=ItemStatus.OPEN,
                primary_owner_user_id=user_id,
                created_by_user_id=user_id,
                last_actor_user_id=user_id,
                created_at=as_utc(row.created_at),
                updated_at=as_utc(row.updated_at),
                last_activity_at=as_utc(row.updated_at),
                due_at=as_utc(row.revisit_date) or as_utc(row.expires_at),
                context=_thought_context(row),
            )
        )
    return items


def _teammate_thought_is_relevant(row: ThoughtRow, relationships: UserRelationships) -> bool:
    return (
        (row.asset_id is not None and row.asset_id in relationships.asset_ids)
        or (row.project_id is not None and row.project_id in relationships.project_ids)
        or (row.portfolio_id is not None and row.portfolio_id in relationships.portfolio_ids)
    )


def build_teammate_thought_items(
    rows: Iterable[ThoughtRow],
    user_id: str,
    relationships: UserRelationships,
    window_start: datetime,
) -> list[AttentionItem]:
    items: list[AttentionItem] = []
    for row in rows:
        if row.created_by == user_id or row.is_archived:
            continue
        if row.visibility == "private":
            continue
        created_at = as_utc(row.created_at)
        if created_at < window_start:
            continue
        if not _teammate_thought_is_relevant(row, relationships):
            continue

        label = _thought_context_label(row)
        kind = "thesis" if row.idea_type == "thesis" else "thought"

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.QUICK_THOUGHT,
                    row.id,
                    AttentionType.INFORMATIONAL,
                    "teammate_shared_thought",
                ),
                source_type=SourceType.QUICK_THOUGHT,
                source_id=row.id,
                source_url="/ideas",
                attention_type=AttentionType.INFORMATIONAL,
                reason_code="teammate_shared_thought",
                reason_text=f"New {kind} shared" + (f" on {label}" if label else ""),
                title=_thought_title(row.content),
                subtitle=label,
                preview=_preview(row.content),
                tags=_tags(row.idea_type, row.sentiment, extra=row.tags),
                icon_key="FileText" if kind == "thesis" else "Lightbulb",
                audience=Audience.SHARED,
                severity=Severity.LOW,
                status=ItemStatus.OPEN,
                primary_owner_user_id=row.created_by,
                created_by_user_id=row.created_by,
                last_actor_user_id=row.created_by,
                created_at=created_at,
                updated_at=as_utc(row.updated_at),
                last_activity_at=created_at,
                context=_thought_context(row),
            )
        )
    return items


async def collect_quick_thoughts(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    limit = settings.ATTENTION_SMALL_ROW_LIMIT
    own_rows = await AttentionSourceRepository.fetch_own_thoughts(user_id, window_start, limit)
    items = build_own_thought_items(own_rows, user_id, now)

    relationships = await AttentionSourceRepository.fetch_user_relationships(user_id)
    if relationships.is_empty():
        return items

    teammate_rows = await AttentionSourceRepository.fetch_teammate_thoughts(
        user_id, window_start, relationships, limit
    )
    items.extend(build_teammate_thought_items(teammate_rows, user_id, relationships, window_start))
    return items


# ---------------------------------------------------------------------------
# Team alignment
# ---------------------------------------------------------------------------


def _contributors(row: ProjectRow) -> list[str]:
    # creator first, then assignees in query order
    return list(dict.fromkeys(uid for uid in (row.created_by, *row.assignee_ids) if uid))


def build_alignment_items(
    rows: Iterable[ProjectRow], user_id: str, window_start: datetime
) -> list[AttentionItem]:
    items: list[AttentionItem] = []
    for row in rows:
        if row.status not in ALIGNMENT_PROJECT_STATUSES:
            continue
        updated_at = as_utc(row.updated_at)
        if updated_at < window_start:
            continue

        contributors = _contributors(row)
        if len(contributors) < 2 or user_id not in contributors:
            continue

        items.append(
            AttentionItem(
                attention_id=derive_attention_id(
                    SourceType.PROJECT, row.id, AttentionType.ALIGNMENT, "high_activity"
                ),
                source_type=SourceType.PROJECT,
                source_id=row.id,
                source_url=f"/project/{row.id}",
                attention_type=AttentionType.ALIGNMENT,
                reason_code="high_activity",
                reason_text=f"Recent activity from {len(contributors)} team members",
                title=row.title,
                subtitle=f"{len(contributors)} contributors",
                preview=_preview(row.description),
                tags=_tags(row.status, row.priority),
                icon_key="Users",
                audience=Audience.TEAM,
                severity=_priority_severity(row.priority),
                status=ItemStatus.IN_PROGRESS,
                primary_owner_user_id=row.created_by,
                participant_user_ids=contributors,
                created_by_user_id=row.created_by,
                created_at=as_utc(row.created_at),
                updated_at=updated_at,
                last_activity_at=updated_at,
                due_at=as_utc(row.due_date),
                context=AttentionContext(project_id=row.id),
            )
        )
    return items


async def collect_alignment(
    user_id: str, window_start: datetime, now: datetime
) -> list[AttentionItem]:
    rows = await AttentionSourceRepository.fetch_projects(
        user_id,
        ALIGNMENT_PROJECT_STATUSES,
        settings.ATTENTION_COLLECTOR_ROW_LIMIT,
        updated_since=window_start,
    )
    return build_alignment_items(rows, user_id, window_start)
