"""
Deterministic identity for attention items.

The id must be stable across runs so the persisted state overlay
(read/snooze/dismiss) keeps pointing at the same logical item.
"""

from __future__ import annotations

import hashlib
from enum import Enum

ATTENTION_ID_LENGTH = 32

__all__ = ["ATTENTION_ID_LENGTH", "derive_attention_id"]


def _as_text(value: str | Enum) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def derive_attention_id(
    source_type: str | Enum,
    source_id: str,
    attention_type: str | Enum,
    reason_code: str,
) -> str:
    """
    Hash the four identifying fields into a 32 char lowercase hex id.

    Order-sensitive: swapping any two fields yields a different id.
    """
    joined = ":".join(
        _as_text(part) for part in (source_type, source_id, attention_type, reason_code)
    )
    digest = hashlib.sha256(joined.encode("utf-8")).hexdigest()
    return digest[:ATTENTION_ID_LENGTH]
