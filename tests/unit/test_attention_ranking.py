from datetime import timedelta

from app.features.attention.domain import (
    SECTION_ORDER,
    AttentionType,
    AttentionUserState,
    ReadState,
    SourceType,
)
from app.features.attention.pipeline.ranking import (
    apply_user_state,
    build_sections,
    deduplicate,
    is_hidden,
)

from attention_builders import NOW, build_item

# ---------------------------------------------------------------------------
# State overlay
# ---------------------------------------------------------------------------


def test_dismissed_item_is_removed():
    item = build_item()
    states = {item.attention_id: AttentionUserState(item.attention_id, dismissed_at=NOW)}

    assert apply_user_state([item], states, NOW) == []


def test_snoozed_item_hidden_until_snooze_lapses():
    item = build_item()
    state = AttentionUserState(item.attention_id, snoozed_until=NOW + timedelta(hours=1))

    assert apply_user_state([item], {item.attention_id: state}, NOW) == []


def test_expired_snooze_returns_item_with_state_copied():
    item = build_item()
    last_viewed = NOW - timedelta(hours=3)
    state = AttentionUserState(
        item.attention_id,
        read_state=ReadState.READ,
        last_viewed_at=last_viewed,
        snoozed_until=NOW - timedelta(hours=1),
    )

    (visible,) = apply_user_state([item], {item.attention_id: state}, NOW)

    assert visible.read_state == ReadState.READ
    assert visible.last_viewed_at == last_viewed
    assert visible.snoozed_until == NOW - timedelta(hours=1)


def test_item_without_state_is_untouched():
    item = build_item()

    (visible,) = apply_user_state([item], {}, NOW)

    assert visible.read_state is None
    assert not is_hidden(None, NOW)


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------


def test_decision_beats_higher_scored_action():
    action = build_item(
        source_type=SourceType.PROJECT,
        source_id="p-1",
        attention_type=AttentionType.ACTION_REQUIRED,
        reason_code="project_blocked",
        score=90.0,
    )
    decision = build_item(
        source_type=SourceType.PROJECT,
        source_id="p-1",
        attention_type=AttentionType.DECISION_REQUIRED,
        reason_code="project_decision",
        score=40.0,
    )

    (kept,) = deduplicate([action, decision])

    assert kept is decision


def test_equal_priority_prefers_higher_score():
    low = build_item(source_id="d-1", reason_code="a", score=10.0)
    high = build_item(source_id="d-1", reason_code="b", score=20.0)

    (kept,) = deduplicate([low, high])

    assert kept is high


def test_full_tie_keeps_first_seen():
    first = build_item(source_id="d-1", reason_code="a", score=10.0)
    second = build_item(source_id="d-1", reason_code="b", score=10.0)

    (kept,) = deduplicate([first, second])

    assert kept is first


def test_dedup_keeps_one_item_per_source_in_first_seen_order():
    items = [
        build_item(source_id="a"),
        build_item(source_id="b"),
        build_item(source_id="a", reason_code="other", score=5.0),
        build_item(source_type=SourceType.PROJECT, source_id="a"),
    ]

    result = deduplicate(items)

    keys = [item.source_key for item in result]
    assert keys == ["project_deliverable:a", "project_deliverable:b", "project:a"]
    assert len(set(keys)) == len(keys)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def test_sections_sorted_by_score_and_counted():
    items = [
        build_item(source_id="1", score=5.0),
        build_item(source_id="2", score=50.0),
        build_item(source_id="3", attention_type=AttentionType.INFORMATIONAL, score=1.0),
        build_item(source_id="4", score=5.0),
    ]

    sections, counts = build_sections(items)

    assert list(sections) == list(SECTION_ORDER)
    assert [i.source_id for i in sections[AttentionType.ACTION_REQUIRED]] == ["2", "1", "4"]
    assert counts == {
        "informational": 1,
        "action_required": 3,
        "decision_required": 0,
        "alignment": 0,
        "total": 4,
    }


def test_empty_input_gives_empty_sections():
    sections, counts = build_sections([])

    assert all(section == [] for section in sections.values())
    assert counts["total"] == 0
