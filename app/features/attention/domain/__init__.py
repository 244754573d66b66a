"""
Domain subpackage for the attention feed feature.
"""

from .models import (
    ATTENTION_TYPE_PRIORITY,
    SECTION_ORDER,
    AttentionContext,
    AttentionFeed,
    AttentionItem,
    AttentionType,
    AttentionUserState,
    Audience,
    DismissReason,
    ItemStatus,
    ReadState,
    ScoreEntry,
    Severity,
    SourceType,
)

__all__ = [
    "ATTENTION_TYPE_PRIORITY",
    "SECTION_ORDER",
    "AttentionContext",
    "AttentionFeed",
    "AttentionItem",
    "AttentionType",
    "AttentionUserState",
    "Audience",
    "DismissReason",
    "ItemStatus",
    "ReadState",
    "ScoreEntry",
    "Severity",
    "SourceType",
]
