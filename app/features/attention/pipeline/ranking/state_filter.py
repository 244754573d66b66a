"""
Applies the user's persisted state overlay to freshly collected candidates.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime

from app.features.attention.domain import AttentionItem, AttentionUserState


def is_hidden(state: AttentionUserState | None, now: datetime) -> bool:
    """Dismissed items never return; snoozed items return once the snooze lapses."""
    if state is None:
        return False
    if state.dismissed_at is not None:
        return True
    return state.snoozed_until is not None and state.snoozed_until > now


def apply_user_state(
    items: Iterable[AttentionItem],
    states: Mapping[str, AttentionUserState],
    now: datetime,
) -> list[AttentionItem]:
    """
    Drop dismissed and currently snoozed items, then copy read/snooze state
    onto the survivors. Items without a state row are left untouched.
    """
    visible: list[AttentionItem] = []
    for item in items:
        state = states.get(item.attention_id)
        if is_hidden(state, now):
            continue
        if state is not None:
            item.read_state = state.read_state
            item.last_viewed_at = state.last_viewed_at
            item.snoozed_until = state.snoozed_until
        visible.append(item)
    return visible
