"""
Ranking stages: state overlay, deduplication and sectioning.
"""

from .dedup import deduplicate
from .sections import build_sections
from .state_filter import apply_user_state, is_hidden

__all__ = ["apply_user_state", "build_sections", "deduplicate", "is_hidden"]
