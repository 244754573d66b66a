import re

from app.features.attention.domain import AttentionType, SourceType
from app.features.attention.identity import ATTENTION_ID_LENGTH, derive_attention_id


def test_same_inputs_give_same_id():
    first = derive_attention_id(
        SourceType.PROJECT_DELIVERABLE, "d-1", AttentionType.ACTION_REQUIRED, "deliverable_pending"
    )
    second = derive_attention_id(
        SourceType.PROJECT_DELIVERABLE, "d-1", AttentionType.ACTION_REQUIRED, "deliverable_pending"
    )

    assert first == second
    assert len(first) == ATTENTION_ID_LENGTH
    assert re.fullmatch(r"[0-9a-f]{32}", first)


def test_enum_and_string_inputs_agree():
    from_enums = derive_attention_id(
        SourceType.TRADE_QUEUE_ITEM, "t-1", AttentionType.DECISION_REQUIRED, "trade_decision_needed"
    )
    from_strings = derive_attention_id(
        "trade_queue_item", "t-1", "decision_required", "trade_decision_needed"
    )

    assert from_enums == from_strings


def test_each_field_changes_the_id():
    base = ("project", "p-1", "action_required", "project_blocked")
    base_id = derive_attention_id(*base)

    for index, replacement in enumerate(("quick_thought", "p-2", "alignment", "project_overdue")):
        fields = list(base)
        fields[index] = replacement
        assert derive_attention_id(*fields) != base_id


def test_field_order_matters():
    assert derive_attention_id("a", "b", "c", "d") != derive_attention_id("b", "a", "c", "d")
