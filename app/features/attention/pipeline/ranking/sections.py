from collections.abc import Iterable

from app.features.attention.domain import SECTION_ORDER, AttentionItem, AttentionType


def build_sections(
    items: Iterable[AttentionItem],
) -> tuple[dict[AttentionType, list[AttentionItem]], dict[str, int]]:
    """
    Bucket items by attention type, each bucket sorted by score descending.

    The sort is stable, so equal scores keep their input order. Counts carry
    one entry per bucket plus ``total``.
    """
    sections: dict[AttentionType, list[AttentionItem]] = {section: [] for section in SECTION_ORDER}
    for item in items:
        sections[item.attention_type].append(item)

    for section in SECTION_ORDER:
        sections[section].sort(key=lambda item: item.score, reverse=True)

    counts = {section.value: len(sections[section]) for section in SECTION_ORDER}
    counts["total"] = sum(counts.values())
    return sections, counts
