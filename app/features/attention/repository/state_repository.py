"""
Persistence for the per-user attention state overlay.

One row per (user_id, attention_id) in attention_user_state. Every write is
an upsert, so repeating a decision leaves the row in the same state.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from psycopg import sql

from app.db.helpers import DatabaseError, execute_query, fetch_all, with_db_retry
from app.features.attention.domain import AttentionUserState, DismissReason, ReadState
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AttentionStateError(DatabaseError):
    """Raised when the state overlay cannot be read or written."""


class StateDecisionKind(str, Enum):
    ACKNOWLEDGE = "acknowledge"
    SNOOZE = "snooze"
    DISMISS = "dismiss"
    DISMISS_WITH_REASON = "dismiss_with_reason"
    MARK_READ = "mark_read"


@dataclass(frozen=True, slots=True)
class StateDecision:
    """A user decision about one attention item."""

    kind: StateDecisionKind
    snoozed_until: datetime | None = None
    reason: DismissReason | None = None
    note: str | None = None

    @classmethod
    def acknowledge(cls) -> "StateDecision":
        return cls(kind=StateDecisionKind.ACKNOWLEDGE)

    @classmethod
    def snooze(cls, until: datetime) -> "StateDecision":
        return cls(kind=StateDecisionKind.SNOOZE, snoozed_until=until)

    @classmethod
    def dismiss(cls) -> "StateDecision":
        return cls(kind=StateDecisionKind.DISMISS)

    @classmethod
    def dismiss_with_reason(cls, reason: DismissReason, note: str | None = None) -> "StateDecision":
        return cls(kind=StateDecisionKind.DISMISS_WITH_REASON, reason=reason, note=note)

    @classmethod
    def mark_read(cls) -> "StateDecision":
        return cls(kind=StateDecisionKind.MARK_READ)


def decision_columns(decision: StateDecision, now: datetime) -> dict[str, Any]:
    """Columns a decision sets on the state row."""
    match decision.kind:
        case StateDecisionKind.ACKNOWLEDGE:
            return {"read_state": ReadState.ACKNOWLEDGED.value, "last_viewed_at": now}
        case StateDecisionKind.MARK_READ:
            return {"read_state": ReadState.READ.value, "last_viewed_at": now}
        case StateDecisionKind.SNOOZE:
            if decision.snoozed_until is None:
                raise ValueError("snooze decision requires snoozed_until")
            return {"snoozed_until": decision.snoozed_until}
        case StateDecisionKind.DISMISS:
            return {"dismissed_at": now}
        case StateDecisionKind.DISMISS_WITH_REASON:
            if decision.reason is None:
                raise ValueError("dismiss_with_reason decision requires a reason")
            return {
                "dismissed_at": now,
                "dismiss_reason": DismissReason(decision.reason).value,
                "dismiss_note": decision.note,
            }


class AttentionStateRepository:
    """Reads and writes attention_user_state rows."""

    @classmethod
    def _row_to_state(cls, row: dict) -> AttentionUserState:
        read_state = row.get("read_state")
        dismiss_reason = row.get("dismiss_reason")
        return AttentionUserState(
            attention_id=row["attention_id"],
            read_state=ReadState(read_state) if read_state else None,
            last_viewed_at=row.get("last_viewed_at"),
            snoozed_until=row.get("snoozed_until"),
            dismissed_at=row.get("dismissed_at"),
            dismiss_reason=DismissReason(dismiss_reason) if dismiss_reason else None,
            dismiss_note=row.get("dismiss_note"),
        )

    @classmethod
    @with_db_retry()
    async def _fetch_state_rows(cls, user_id: str) -> list[dict]:
        query = """
            SELECT
                attention_id,
                read_state,
                last_viewed_at,
                snoozed_until,
                dismissed_at,
                dismiss_reason,
                dismiss_note
            FROM attention_user_state
            WHERE user_id = %s
        """
        return await fetch_all(query, (user_id,))

    @classmethod
    async def fetch_states(cls, user_id: str) -> dict[str, AttentionUserState]:
        """Return the user's state overlay keyed by attention_id."""
        try:
            rows = await cls._fetch_state_rows(user_id)
        except DatabaseError as e:
            raise AttentionStateError(
                f"Failed to load attention state: {e}", operation="fetch_states"
            ) from e

        return {row["attention_id"]: cls._row_to_state(row) for row in rows}

    @classmethod
    async def write_decision(
        cls,
        user_id: str,
        attention_id: str,
        decision: StateDecision,
        now: datetime | None = None,
    ) -> None:
        """Upsert the columns the decision touches, leaving the rest of the row alone."""
        columns = decision_columns(decision, now or datetime.now(UTC))
        names = ["user_id", "attention_id", *columns]

        query = sql.SQL(
            """
            INSERT INTO attention_user_state ({fields}, updated_at)
            VALUES ({values}, NOW())
            ON CONFLICT (user_id, attention_id) DO UPDATE
            SET {updates}, updated_at = NOW()
            """
        ).format(
            fields=sql.SQL(", ").join(sql.Identifier(name) for name in names),
            values=sql.SQL(", ").join(sql.Placeholder() for _ in names),
            updates=sql.SQL(", ").join(
                sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(name))
                for name in columns
            ),
        )
        params = (user_id, attention_id, *columns.values())

        try:
            await execute_query(query, params)
        except DatabaseError as e:
            logger.error(
                "Attention state write failed",
                user_id=user_id,
                attention_id=attention_id,
                decision=decision.kind.value,
                error=str(e),
            )
            raise AttentionStateError(
                f"Failed to record {decision.kind.value}: {e}", operation="write_decision"
            ) from e

        logger.info(
            "Attention state updated",
            user_id=user_id,
            attention_id=attention_id,
            decision=decision.kind.value,
        )
