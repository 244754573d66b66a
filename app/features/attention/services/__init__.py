"""
Service layer for the attention feed feature.
"""

from .attention_service import (
    AttentionService,
    AttentionStateUnavailableError,
    AttentionUserMissingError,
    attention_service,
)
from .feed_cache import AttentionFeedCache, attention_feed_cache

__all__ = [
    "AttentionFeedCache",
    "AttentionService",
    "AttentionStateUnavailableError",
    "AttentionUserMissingError",
    "attention_feed_cache",
    "attention_service",
]
