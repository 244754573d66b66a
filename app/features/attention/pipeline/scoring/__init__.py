"""
Attention scoring package.

Provides the weighted scorer that orders candidates inside each section.
"""

from .service import DEFAULT_WEIGHTS, AttentionScorer, ScoringWeights, attention_scorer, score_item

__all__ = ["DEFAULT_WEIGHTS", "AttentionScorer", "ScoringWeights", "attention_scorer", "score_item"]
