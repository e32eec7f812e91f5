"""
CrossDoc Similarity Layer

Lexical similarity scoring and tier classification.
"""

from crossdoc.similarity.scorer import (
    Comparison,
    MatchResult,
    ScoredCandidate,
    SimilarityScorer,
    SimilarityThresholds,
    similarity,
)

__all__ = [
    "similarity",
    "SimilarityScorer",
    "SimilarityThresholds",
    "Comparison",
    "MatchResult",
    "ScoredCandidate",
]
