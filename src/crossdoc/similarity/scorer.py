"""
Similarity Engine

Lexical similarity between two free-text fields, and its classification into
alignment tiers.

The score blends two terms over the content tokens of each text (stopwords
and clinical boilerplate removed, lightly stemmed):
- Dice coefficient of the token sets (weight 0.7)
- rapidfuzz token-sort ratio of the token strings (weight 0.3)

Identical canonical strings score exactly 1.0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator
from rapidfuzz import fuzz

from crossdoc.config import Settings
from crossdoc.core.enums import AlignmentTier
from crossdoc.core.exceptions import DegenerateTextError
from crossdoc.extraction.text import canonicalize, content_tokens, has_text

logger = logging.getLogger(__name__)

TOKEN_WEIGHT = 0.7
EDIT_WEIGHT = 0.3


def similarity(a: str | None, b: str | None) -> float:
    """
    Similarity of two texts in [0, 1].

    Raises:
        DegenerateTextError: If either text has no comparable content.
    """
    for text in (a, b):
        if not has_text(text):
            raise DegenerateTextError(text or "")

    if canonicalize(a) == canonicalize(b):
        return 1.0

    tokens_a, tokens_b = content_tokens(a), content_tokens(b)
    set_a, set_b = set(tokens_a), set(tokens_b)
    dice = 2 * len(set_a & set_b) / (len(set_a) + len(set_b))
    edit = fuzz.token_sort_ratio(" ".join(tokens_a), " ".join(tokens_b)) / 100

    score = TOKEN_WEIGHT * dice + EDIT_WEIGHT * edit
    return max(0.0, min(1.0, score))


class SimilarityThresholds(BaseModel):
    """Tier boundaries. drift_threshold <= match_threshold is enforced."""

    model_config = ConfigDict(frozen=True)

    match_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    drift_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    ambiguity_margin: float = Field(default=0.05, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_ordering(self) -> "SimilarityThresholds":
        if self.drift_threshold > self.match_threshold:
            raise ValueError(
                f"drift threshold {self.drift_threshold} exceeds "
                f"match threshold {self.match_threshold}"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "SimilarityThresholds":
        s = settings.similarity
        return cls(
            match_threshold=s.match_threshold,
            drift_threshold=s.drift_threshold,
            ambiguity_margin=s.ambiguity_margin,
        )

    def classify(self, score: float) -> AlignmentTier:
        if score >= self.match_threshold:
            return AlignmentTier.ALIGNED
        if score >= self.drift_threshold:
            return AlignmentTier.DRIFT
        return AlignmentTier.MISMATCH


@dataclass(frozen=True)
class Comparison:
    """Score of one text pair and its tier."""

    score: float
    tier: AlignmentTier


@dataclass(frozen=True)
class ScoredCandidate:
    key: str
    score: float


@dataclass(frozen=True)
class MatchResult:
    """
    Candidates ranked by descending score.

    Ties keep candidate order. ``ambiguous`` is set when the runner-up is
    within the ambiguity margin of the best candidate.
    """

    ranked: tuple[ScoredCandidate, ...]
    ambiguous: bool = False

    @property
    def best(self) -> ScoredCandidate | None:
        return self.ranked[0] if self.ranked else None


class SimilarityScorer:
    """Scores and classifies text pairs against a set of thresholds."""

    def __init__(self, thresholds: SimilarityThresholds | None = None) -> None:
        self.thresholds = thresholds or SimilarityThresholds()

    def score(self, a: str | None, b: str | None) -> float:
        return similarity(a, b)

    def classify(self, score: float) -> AlignmentTier:
        return self.thresholds.classify(score)

    def compare(self, a: str | None, b: str | None) -> Comparison:
        score = self.score(a, b)
        return Comparison(score=score, tier=self.classify(score))

    def rank(self, scores: Iterable[tuple[str, float]]) -> MatchResult:
        """Rank precomputed (key, score) pairs."""
        ranked = sorted(
            (ScoredCandidate(key, score) for key, score in scores),
            key=lambda c: c.score,
            reverse=True,
        )
        ambiguous = (
            len(ranked) > 1
            and ranked[0].score - ranked[1].score < self.thresholds.ambiguity_margin
        )
        return MatchResult(ranked=tuple(ranked), ambiguous=ambiguous)

    def best_match(self, query: str | None, candidates: Mapping[str, str | None]) -> MatchResult:
        """
        Rank candidate texts against ``query``.

        Candidates without comparable text are skipped; a degenerate query
        yields an empty result.
        """
        if not has_text(query):
            return MatchResult(ranked=())
        scores = [
            (key, self.score(query, text))
            for key, text in candidates.items()
            if has_text(text)
        ]
        return self.rank(scores)
