"""
Pipeline components for the attention feed.

collection -> ranking (state filter) -> scoring -> ranking (dedup, sections).
"""

__all__ = ["collection", "ranking", "scoring"]
