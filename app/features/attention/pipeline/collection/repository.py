"""
Repository helpers for attention collection.

Read-only SQL against the domain tables the feed aggregates. Each method
returns plain row dataclasses; relevance and severity rules live in the
collectors so they can be tested without a database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from app.db.helpers import fetch_all, with_db_retry
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ACTIVE_PROJECT_STATUSES = ["planning", "in_progress", "blocked"]
ALIGNMENT_PROJECT_STATUSES = ["planning", "in_progress"]


@dataclass(slots=True)
class DeliverableRow:
    id: str
    project_id: str
    title: str
    description: str | None
    assigned_to: str | None
    due_date: datetime | date | None
    created_at: datetime
    updated_at: datetime
    project_title: str | None
    project_status: str | None
    project_priority: str | None
    project_created_by: str | None


@dataclass(slots=True)
class ProjectRow:
    id: str
    title: str
    description: str | None
    status: str
    priority: str | None
    context_type: str | None
    created_by: str | None
    due_date: datetime | date | None
    blocked_reason: str | None
    created_at: datetime
    updated_at: datetime
    assignee_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TradeRow:
    id: str
    action: str | None
    urgency: str | None
    rationale: str | None
    asset_id: str | None
    asset_symbol: str | None
    portfolio_id: str | None
    portfolio_name: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime | None
    voter_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SuggestionRow:
    id: str
    list_id: str | None
    list_name: str | None
    asset_id: str | None
    asset_symbol: str | None
    suggestion_type: str
    notes: str | None
    suggested_by: str | None
    created_at: datetime


@dataclass(slots=True)
class NotificationRow:
    id: str
    type: str
    title: str
    message: str | None
    context_type: str | None
    context_id: str | None
    changed_by: str | None
    created_at: datetime


@dataclass(slots=True)
class ThoughtRow:
    id: str
    content: str
    idea_type: str | None
    date_type: str | None
    sentiment: str | None
    visibility: str | None
    is_archived: bool
    created_by: str
    revisit_date: datetime | date | None
    expires_at: datetime | None
    asset_id: str | None
    asset_symbol: str | None
    project_id: str | None
    project_title: str | None
    portfolio_id: str | None
    portfolio_name: str | None
    created_at: datetime
    updated_at: datetime
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class UserRelationships:
    """Assets, projects and portfolios the user works with."""

    asset_ids: set[str] = field(default_factory=set)
    project_ids: set[str] = field(default_factory=set)
    portfolio_ids: set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.asset_ids or self.project_ids or self.portfolio_ids)


def _str_list(values) -> list[str]:
    return [str(v) for v in (values or []) if v is not None]


class AttentionSourceRepository:
    """Raw SQL helpers backing the attention collectors."""

    @staticmethod
    async def _assigned_project_ids(user_id: str) -> set[str]:
        query = """
            SELECT project_id::text AS project_id
            FROM project_assignments
            WHERE assigned_to = %s
        """
        rows = await fetch_all(query, (user_id,))
        return {row["project_id"] for row in rows if row.get("project_id")}

    @classmethod
    @with_db_retry()
    async def fetch_assigned_project_ids(cls, user_id: str) -> set[str]:
        return await cls._assigned_project_ids(user_id)

    @classmethod
    @with_db_retry()
    async def fetch_open_deliverables(cls, user_id: str, limit: int) -> list[DeliverableRow]:
        """Incomplete deliverables the user is assigned to or whose project they touch."""

        query = """
            SELECT
                d.id::text AS id,
                d.project_id::text AS project_id,
                d.title,
                d.description,
                d.assigned_to::text AS assigned_to,
                d.due_date,
                d.created_at,
                d.updated_at,
                p.title AS project_title,
                p.status AS project_status,
                p.priority AS project_priority,
                p.created_by::text AS project_created_by
            FROM project_deliverables d
            JOIN projects p ON p.id = d.project_id
            WHERE d.completed = false
              AND (
                    d.assigned_to = %s
                 OR (d.assigned_to IS NULL AND EXISTS (
                        SELECT 1 FROM project_assignments pa
                        WHERE pa.project_id = d.project_id AND pa.assigned_to = %s
                    ))
                 OR p.created_by = %s
              )
            ORDER BY d.due_date ASC NULLS LAST, d.id
            LIMIT %s
        """

        rows = await fetch_all(query, (user_id, user_id, user_id, limit))
        return [
            DeliverableRow(
                id=row["id"],
                project_id=row["project_id"],
                title=row["title"] or "",
                description=row.get("description"),
                assigned_to=row.get("assigned_to"),
                due_date=row.get("due_date"),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                project_title=row.get("project_title"),
                project_status=row.get("project_status"),
                project_priority=row.get("project_priority"),
                project_created_by=row.get("project_created_by"),
            )
            for row in rows
        ]

    @classmethod
    @with_db_retry()
    async def fetch_projects(
        cls,
        user_id: str,
        statuses: list[str],
        limit: int,
        updated_since: datetime | None = None,
    ) -> list[ProjectRow]:
        """Projects the user created or is assigned to, with their assignee ids."""

        query = """
            SELECT
                p.id::text AS id,
                p.title,
                p.description,
                p.status,
                p.priority,
                p.context_type,
                p.created_by::text AS created_by,
                p.due_date,
                p.blocked_reason,
                p.created_at,
                p.updated_at,
                COALESCE(
                    array_agg(pa.assigned_to::text ORDER BY pa.assigned_to)
                        FILTER (WHERE pa.assigned_to IS NOT NULL),
                    '{}'::text[]
                ) AS assignee_ids
            FROM projects p
            LEFT JOIN project_assignments pa ON pa.project_id = p.id
            WHERE p.status = ANY(%s)
              AND (%s::timestamptz IS NULL OR p.updated_at >= %s::timestamptz)
              AND (
                    p.created_by = %s
                 OR EXISTS (
                        SELECT 1 FROM project_assignments mine
                        WHERE mine.project_id = p.id AND mine.assigned_to = %s
                    )
              )
            GROUP BY p.id
            ORDER BY p.updated_at DESC
            LIMIT %s
        """

        rows = await fetch_all(
            query, (statuses, updated_since, updated_since, user_id, user_id, limit)
        )
        return [
            ProjectRow(
                id=row["id"],
                title=row["title"] or "",
                description=row.get("description"),
                status=row["status"],
                priority=row.get("priority"),
                context_type=row.get("context_type"),
                created_by=row.get("created_by"),
                due_date=row.get("due_date"),
                blocked_reason=row.get("blocked_reason"),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                assignee_ids=_str_list(row.get("assignee_ids")),
            )
            for row in rows
        ]

    @classmethod
    @with_db_retry()
    async def fetch_deciding_trades(cls, limit: int) -> list[TradeRow]:
        """Trade queue items waiting on a decision, with the ids of users who voted."""

        query = """
            SELECT
                t.id::text AS id,
                t.action,
                t.urgency,
                t.rationale,
                t.asset_id::text AS asset_id,
                a.symbol AS asset_symbol,
                t.portfolio_id::text AS portfolio_id,
                pf.name AS portfolio_name,
                t.created_by::text AS created_by,
                t.created_at,
                t.updated_at,
                t.expires_at,
                COALESCE(
                    (SELECT array_agg(v.user_id::text ORDER BY v.created_at)
                     FROM trade_queue_votes v
                     WHERE v.trade_queue_item_id = t.id),
                    '{}'::text[]
                ) AS voter_ids
            FROM trade_queue_items t
            LEFT JOIN assets a ON a.id = t.asset_id
            LEFT JOIN portfolios pf ON pf.id = t.portfolio_id
            WHERE t.status = 'deciding'
            ORDER BY t.created_at DESC
            LIMIT %s
        """

        rows = await fetch_all(query, (limit,))
        return [
            TradeRow(
                id=row["id"],
                action=row.get("action"),
                urgency=row.get("urgency"),
                rationale=row.get("rationale"),
                asset_id=row.get("asset_id"),
                asset_symbol=row.get("asset_symbol"),
                portfolio_id=row.get("portfolio_id"),
                portfolio_name=row.get("portfolio_name"),
                created_by=row.get("created_by"),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                expires_at=row.get("expires_at"),
                voter_ids=_str_list(row.get("voter_ids")),
            )
            for row in rows
        ]

    @classmethod
    @with_db_retry()
    async def fetch_pending_suggestions(cls, user_id: str, limit: int) -> list[SuggestionRow]:
        query = """
            SELECT
                s.id::text AS id,
                s.list_id::text AS list_id,
                l.name AS list_name,
                s.asset_id::text AS asset_id,
                a.symbol AS asset_symbol,
                s.suggestion_type,
                s.notes,
                s.suggested_by::text AS suggested_by,
                s.created_at
            FROM asset_list_suggestions s
            LEFT JOIN asset_lists l ON l.id = s.list_id
            LEFT JOIN assets a ON a.id = s.asset_id
            WHERE s.target_user_id = %s
              AND s.status = 'pending'
            ORDER BY s.created_at DESC
            LIMIT %s
        """

        rows = await fetch_all(query, (user_id, limit))
        return [
            SuggestionRow(
                id=row["id"],
                list_id=row.get("list_id"),
                list_name=row.get("list_name"),
                asset_id=row.get("asset_id"),
                asset_symbol=row.get("asset_symbol"),
                suggestion_type=row.get("suggestion_type") or "add",
                notes=row.get("notes"),
                suggested_by=row.get("suggested_by"),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    @classmethod
    @with_db_retry()
    async def fetch_unread_notifications(cls, user_id: str, limit: int) -> list[NotificationRow]:
        query = """
            SELECT
                id::text AS id,
                type,
                title,
                message,
                context_type,
                context_id::text AS context_id,
                context_data ->> 'changed_by' AS changed_by,
                created_at
            FROM notifications
            WHERE user_id = %s
              AND is_read = false
            ORDER BY created_at DESC
            LIMIT %s
        """

        rows = await fetch_all(query, (user_id, limit))
        return [
            NotificationRow(
                id=row["id"],
                type=row.get("type") or "notification",
                title=row.get("title") or "",
                message=row.get("message"),
                context_type=row.get("context_type"),
                context_id=row.get("context_id"),
                changed_by=row.get("changed_by"),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    THOUGHT_SELECT = """
        SELECT
            q.id::text AS id,
            q.content,
            q.idea_type,
            q.date_type,
            q.sentiment,
            q.visibility,
            q.is_archived,
            q.created_by::text AS created_by,
            q.revisit_date,
            q.expires_at,
            q.asset_id::text AS asset_id,
            a.symbol AS asset_symbol,
            q.project_id::text AS project_id,
            p.title AS project_title,
            q.portfolio_id::text AS portfolio_id,
            pf.name AS portfolio_name,
            COALESCE(q.tags, '{}'::text[]) AS tags,
            q.created_at,
            q.updated_at
        FROM quick_thoughts q
        LEFT JOIN assets a ON a.id = q.asset_id
        LEFT JOIN projects p ON p.id = q.project_id
        LEFT JOIN portfolios pf ON pf.id = q.portfolio_id
    """

    @classmethod
    def _row_to_thought(cls, row: dict) -> ThoughtRow:
        return ThoughtRow(
            id=row["id"],
            content=row.get("content") or "",
            idea_type=row.get("idea_type"),
            date_type=row.get("date_type"),
            sentiment=row.get("sentiment"),
            visibility=row.get("visibility"),
            is_archived=bool(row.get("is_archived")),
            created_by=row["created_by"],
            revisit_date=row.get("revisit_date"),
            expires_at=row.get("expires_at"),
            asset_id=row.get("asset_id"),
            asset_symbol=row.get("asset_symbol"),
            project_id=row.get("project_id"),
            project_title=row.get("project_title"),
            portfolio_id=row.get("portfolio_id"),
            portfolio_name=row.get("portfolio_name"),
            tags=_str_list(row.get("tags")),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    @with_db_retry()
    async def fetch_own_thoughts(
        cls, user_id: str, window_start: datetime, limit: int
    ) -> list[ThoughtRow]:
        """The user's thesis or time-hooked thoughts created inside the window."""

        query = f"""
            {cls.THOUGHT_SELECT}
            WHERE q.created_by = %s
              AND q.is_archived = false
              AND (q.idea_type = 'thesis' OR q.date_type IS NOT NULL)
              AND q.created_at >= %s
            ORDER BY q.created_at DESC
            LIMIT %s
        """

        rows = await fetch_all(query, (user_id, window_start, limit))
        return [cls._row_to_thought(row) for row in rows]

    @classmethod
    @with_db_retry()
    async def fetch_teammate_thoughts(
        cls,
        user_id: str,
        window_start: datetime,
        relationships: UserRelationships,
        limit: int,
    ) -> list[ThoughtRow]:
        """Shared thoughts from other users touching the user's assets/projects/portfolios."""

        if relationships.is_empty():
            return []

        query = f"""
            {cls.THOUGHT_SELECT}
            WHERE q.created_by <> %s
              AND q.is_archived = false
              AND q.visibility <> 'private'
              AND q.created_at >= %s
              AND (
                    q.asset_id::text = ANY(%s)
                 OR q.project_id::text = ANY(%s)
                 OR q.portfolio_id::text = ANY(%s)
              )
            ORDER BY q.created_at DESC
            LIMIT %s
        """

        params = (
            user_id,
            window_start,
            sorted(relationships.asset_ids),
            sorted(relationships.project_ids),
            sorted(relationships.portfolio_ids),
            limit,
        )
        rows = await fetch_all(query, params)
        return [cls._row_to_thought(row) for row in rows]

    @classmethod
    @with_db_retry()
    async def fetch_user_relationships(cls, user_id: str) -> UserRelationships:
        held_assets_query = """
            SELECT DISTINCT h.asset_id::text AS asset_id
            FROM portfolio_holdings h
            JOIN portfolios pf ON pf.id = h.portfolio_id
            WHERE pf.created_by = %s
              AND h.asset_id IS NOT NULL
        """
        owned_portfolios_query = """
            SELECT id::text AS id FROM portfolios WHERE created_by = %s
        """

        asset_rows = await fetch_all(held_assets_query, (user_id,))
        portfolio_rows = await fetch_all(owned_portfolios_query, (user_id,))
        # already inside this method's retry
        project_ids = await cls._assigned_project_ids(user_id)

        relationships = UserRelationships(
            asset_ids={row["asset_id"] for row in asset_rows},
            project_ids=project_ids,
            portfolio_ids={row["id"] for row in portfolio_rows},
        )
        logger.debug(
            "User relationships loaded",
            user_id=user_id,
            assets=len(relationships.asset_ids),
            projects=len(relationships.project_ids),
            portfolios=len(relationships.portfolio_ids),
        )
        return relationships
