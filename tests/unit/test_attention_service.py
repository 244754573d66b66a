from datetime import timedelta

import pytest

from app.features.attention.domain import (
    AttentionType,
    AttentionUserState,
    Severity,
    SourceType,
)
from app.features.attention.pipeline.collection import CollectorRunner
from app.features.attention.repository.state_repository import AttentionStateError
from app.features.attention.services import (
    AttentionService,
    AttentionStateUnavailableError,
    AttentionUserMissingError,
)

from attention_builders import NOW, USER, build_item


class _StaticStates:
    states: dict = {}

    @classmethod
    async def fetch_states(cls, user_id):
        return dict(cls.states)


class _BrokenStates:
    @classmethod
    async def fetch_states(cls, user_id):
        raise AttentionStateError("connection refused", operation="fetch_states")


def _candidates():
    return [
        build_item(source_id="d-1", severity=Severity.HIGH, due_at=NOW - timedelta(days=2)),
        build_item(
            source_type=SourceType.TRADE_QUEUE_ITEM,
            source_id="t-1",
            attention_type=AttentionType.DECISION_REQUIRED,
            reason_code="trade_decision_needed",
            severity=Severity.CRITICAL,
        ),
        build_item(
            source_type=SourceType.NOTIFICATION,
            source_id="n-1",
            attention_type=AttentionType.INFORMATIONAL,
            reason_code="note_shared",
        ),
        # Same source as d-1 with lower priority type
        build_item(
            source_id="d-1", attention_type=AttentionType.ALIGNMENT, reason_code="high_activity"
        ),
    ]


def _service(states=None, state_repository=None, extra_collectors=None):
    async def _collect(user_id, window_start, now):
        return _candidates()

    collectors = {"fixture": _collect, **(extra_collectors or {})}
    _StaticStates.states = states or {}
    return AttentionService(
        runner=CollectorRunner(collectors, timeout_s=1),
        state_repository=state_repository or _StaticStates,
    )


@pytest.mark.asyncio
async def test_run_sections_scores_and_dedups():
    feed = await _service().run(USER, 24, now=NOW)

    assert feed.generated_at == NOW
    assert feed.window_start == NOW - timedelta(hours=24)
    assert feed.counts == {
        "informational": 1,
        "action_required": 1,
        "decision_required": 1,
        "alignment": 0,
        "total": 3,
    }
    keys = [item.source_key for item in feed.items()]
    assert len(keys) == len(set(keys))
    assert all(item.score > 0 for item in feed.items())


@pytest.mark.asyncio
async def test_run_is_deterministic_for_fixed_now():
    first = await _service().run(USER, 24, now=NOW)
    second = await _service().run(USER, 24, now=NOW)

    assert [(i.attention_id, i.score) for i in first.items()] == [
        (i.attention_id, i.score) for i in second.items()
    ]


@pytest.mark.asyncio
async def test_dismissed_items_stay_hidden():
    trade = _candidates()[1]
    states = {trade.attention_id: AttentionUserState(trade.attention_id, dismissed_at=NOW)}

    feed = await _service(states=states).run(USER, 24, now=NOW)

    assert feed.counts["decision_required"] == 0


@pytest.mark.asyncio
async def test_failed_collector_is_reported():
    async def _broken(user_id, window_start, now):
        raise RuntimeError("boom")

    feed = await _service(extra_collectors={"broken": _broken}).run(USER, 24, now=NOW)

    assert feed.failed_collectors == ["broken"]
    assert feed.counts["total"] == 3


@pytest.mark.asyncio
async def test_run_requires_user():
    with pytest.raises(AttentionUserMissingError, match="cannot run without a user"):
        await _service().run(None, 24, now=NOW)


@pytest.mark.asyncio
async def test_unreadable_state_overlay_fails_the_run():
    service = _service(state_repository=_BrokenStates)

    with pytest.raises(AttentionStateUnavailableError):
        await service.run(USER, 24, now=NOW)
