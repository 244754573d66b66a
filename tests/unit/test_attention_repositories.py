from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import psycopg
import pytest

from app.db.helpers import DatabaseError
from app.features.attention.domain import DismissReason, ReadState
from app.features.attention.pipeline.collection.repository import AttentionSourceRepository
from app.features.attention.repository.resolution_repository import (
    ResolutionError,
    ResolutionRepository,
    ResolutionTargetNotFoundError,
)
from app.features.attention.repository.state_repository import (
    AttentionStateError,
    AttentionStateRepository,
    StateDecision,
    StateDecisionKind,
    decision_columns,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
STATE_MODULE = "app.features.attention.repository.state_repository"
RESOLUTION_MODULE = "app.features.attention.repository.resolution_repository"
SOURCE_MODULE = "app.features.attention.pipeline.collection.repository"


# ---------------------------------------------------------------------------
# State decisions
# ---------------------------------------------------------------------------


def test_decision_columns_per_kind():
    until = NOW + timedelta(hours=4)

    assert decision_columns(StateDecision.acknowledge(), NOW) == {
        "read_state": "acknowledged",
        "last_viewed_at": NOW,
    }
    assert decision_columns(StateDecision.mark_read(), NOW)["read_state"] == "read"
    assert decision_columns(StateDecision.snooze(until), NOW) == {"snoozed_until": until}
    assert decision_columns(StateDecision.dismiss(), NOW) == {"dismissed_at": NOW}
    assert decision_columns(
        StateDecision.dismiss_with_reason(DismissReason.DUPLICATE, "seen elsewhere"), NOW
    ) == {"dismissed_at": NOW, "dismiss_reason": "duplicate", "dismiss_note": "seen elsewhere"}


def test_snooze_without_timestamp_is_rejected():
    with pytest.raises(ValueError):
        decision_columns(StateDecision(kind=StateDecisionKind.SNOOZE), NOW)


@pytest.mark.asyncio
async def test_write_decision_upserts_with_params():
    with patch(f"{STATE_MODULE}.execute_query", new=AsyncMock(return_value=1)) as mock_exec:
        await AttentionStateRepository.write_decision("user-123", "abc", StateDecision.dismiss(), NOW)

    query, params = mock_exec.await_args.args
    assert params == ("user-123", "abc", NOW)
    assert "ON CONFLICT" in repr(query)


@pytest.mark.asyncio
async def test_write_failure_raises_state_error():
    failing = AsyncMock(side_effect=DatabaseError("boom", operation="execute_query"))
    with patch(f"{STATE_MODULE}.execute_query", new=failing):
        with pytest.raises(AttentionStateError, match="dismiss"):
            await AttentionStateRepository.write_decision(
                "user-123", "abc", StateDecision.dismiss(), NOW
            )


@pytest.mark.asyncio
async def test_fetch_states_keys_by_attention_id():
    rows = [
        {
            "attention_id": "abc",
            "read_state": "read",
            "last_viewed_at": NOW,
            "snoozed_until": None,
            "dismissed_at": None,
            "dismiss_reason": None,
            "dismiss_note": None,
        }
    ]
    with patch(f"{STATE_MODULE}.fetch_all", new=AsyncMock(return_value=rows)):
        states = await AttentionStateRepository.fetch_states("user-123")

    assert states["abc"].read_state == ReadState.READ
    assert states["abc"].dismiss_reason is None


@pytest.mark.asyncio
async def test_fetch_states_failure_raises_state_error():
    failing = AsyncMock(side_effect=DatabaseError("down", operation="fetch_all"))
    with patch(f"{STATE_MODULE}.fetch_all", new=failing):
        with pytest.raises(AttentionStateError):
            await AttentionStateRepository.fetch_states("user-123")


# ---------------------------------------------------------------------------
# Resolution actions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_missing_target_raises_not_found():
    with patch(f"{RESOLUTION_MODULE}.execute_query", new=AsyncMock(return_value=0)):
        with pytest.raises(ResolutionTargetNotFoundError):
            await ResolutionRepository.approve_trade("t-404", "user-123")


@pytest.mark.asyncio
async def test_database_failure_raises_resolution_error():
    failing = AsyncMock(side_effect=DatabaseError("boom", operation="execute_query"))
    with patch(f"{RESOLUTION_MODULE}.execute_query", new=failing):
        with pytest.raises(ResolutionError):
            await ResolutionRepository.mark_deliverable_done("d-1", "user-123")


@pytest.mark.asyncio
async def test_defer_trade_returns_revisit_time():
    with patch(f"{RESOLUTION_MODULE}.execute_query", new=AsyncMock(return_value=1)) as mock_exec:
        revisit_at = await ResolutionRepository.defer_trade("t-1", 48, now=NOW)

    assert revisit_at == NOW + timedelta(hours=48)
    assert mock_exec.await_args.args[1] == (revisit_at, "t-1")


@pytest.mark.asyncio
async def test_defer_trade_rejects_non_positive_hours():
    with pytest.raises(ValueError):
        await ResolutionRepository.defer_trade("t-1", 0)


# ---------------------------------------------------------------------------
# Source queries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_user_relationships_retries_only_at_the_outer_boundary():
    project_queries = []

    async def fake_fetch_all(query, params=()):
        if "project_assignments" in query:
            project_queries.append(params)
            cause = psycopg.OperationalError("connection reset")
            raise DatabaseError("Query failed", operation="fetch_all") from cause
        return []

    with patch(f"{SOURCE_MODULE}.fetch_all", new=fake_fetch_all):
        with pytest.raises(DatabaseError) as exc_info:
            await AttentionSourceRepository.fetch_user_relationships("user-123")

    # one first attempt plus three retries, no nested retry loop
    assert len(project_queries) == 4
    assert exc_info.value.recoverable is False
