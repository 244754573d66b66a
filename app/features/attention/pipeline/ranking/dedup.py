from collections.abc import Iterable

from app.features.attention.domain import ATTENTION_TYPE_PRIORITY, AttentionItem


def _replaces(candidate: AttentionItem, existing: AttentionItem) -> bool:
    candidate_priority = ATTENTION_TYPE_PRIORITY[candidate.attention_type]
    existing_priority = ATTENTION_TYPE_PRIORITY[existing.attention_type]
    if candidate_priority != existing_priority:
        return candidate_priority > existing_priority
    # equal priority: strictly higher score wins, full ties keep the first seen
    return candidate.score > existing.score


def deduplicate(items: Iterable[AttentionItem]) -> list[AttentionItem]:
    """
    Keep one item per source object.

    Type priority decides first, then score. The output keeps the order in
    which each source key was first seen.
    """
    by_source: dict[str, AttentionItem] = {}
    for item in items:
        existing = by_source.get(item.source_key)
        if existing is None or _replaces(item, existing):
            by_source[item.source_key] = item
    return list(by_source.values())
