"""
Similarity Engine Tests

Contract of the similarity function and tier classification.
"""

import pytest
from pydantic import ValidationError

from crossdoc.core.enums import AlignmentTier
from crossdoc.core.exceptions import DegenerateTextError
from crossdoc.similarity.scorer import SimilarityScorer, SimilarityThresholds, similarity

PARAPHRASE_A = "To evaluate the efficacy of Drug X in reducing HbA1c levels in patients with type 2 diabetes"
PARAPHRASE_B = "To assess the efficacy of Drug X on HbA1c reduction in adults with type 2 diabetes"


class TestSimilarity:
    """Tests for similarity(a, b)."""

    def test_identical_text_scores_one(self):
        assert similarity("Change in HbA1c", "Change in HbA1c") == 1.0

    def test_canonical_equivalents_score_one(self):
        assert similarity("  Change in HbA1c. ", "change IN hba1c") == 1.0

    def test_symmetric(self):
        assert similarity(PARAPHRASE_A, PARAPHRASE_B) == pytest.approx(
            similarity(PARAPHRASE_B, PARAPHRASE_A)
        )

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Adverse events", "Change in HbA1c"),
            ("LDL-C change", "Blood pressure change"),
            (PARAPHRASE_A, PARAPHRASE_B),
        ],
    )
    def test_bounded(self, a, b):
        assert 0.0 <= similarity(a, b) <= 1.0

    def test_unrelated_objectives_score_low(self):
        score = similarity(
            "To evaluate efficacy in reducing blood pressure",
            "To evaluate efficacy in reducing cholesterol levels",
        )
        assert score < 0.5

    def test_paraphrase_scores_high(self):
        assert similarity(PARAPHRASE_A, PARAPHRASE_B) >= 0.85

    def test_small_wording_change_is_between_tiers(self):
        score = similarity("Change in HbA1c at week 24", "Change in HbA1c at week 52")
        assert 0.5 <= score < 0.85

    @pytest.mark.parametrize("degenerate", ["", None, "  ", "?!", "x"])
    def test_degenerate_input_raises(self, degenerate):
        with pytest.raises(DegenerateTextError):
            similarity(degenerate, "Change in HbA1c")
        with pytest.raises(DegenerateTextError):
            similarity("Change in HbA1c", degenerate)


class TestThresholds:
    """Tests for SimilarityThresholds."""

    def test_defaults(self):
        thresholds = SimilarityThresholds()

        assert thresholds.match_threshold == 0.85
        assert thresholds.drift_threshold == 0.5
        assert thresholds.ambiguity_margin == 0.05

    @pytest.mark.parametrize(
        "score,tier",
        [
            (1.0, AlignmentTier.ALIGNED),
            (0.85, AlignmentTier.ALIGNED),
            (0.84, AlignmentTier.DRIFT),
            (0.5, AlignmentTier.DRIFT),
            (0.49, AlignmentTier.MISMATCH),
            (0.0, AlignmentTier.MISMATCH),
        ],
    )
    def test_classify(self, score, tier):
        assert SimilarityThresholds().classify(score) is tier

    def test_drift_above_match_rejected(self):
        with pytest.raises(ValidationError):
            SimilarityThresholds(match_threshold=0.6, drift_threshold=0.7)

    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            SimilarityThresholds(match_threshold=1.5)

    def test_custom_thresholds_change_tier(self):
        strict = SimilarityScorer(SimilarityThresholds(match_threshold=0.95, drift_threshold=0.9))
        comparison = strict.compare(PARAPHRASE_A, PARAPHRASE_B)

        assert comparison.tier is AlignmentTier.MISMATCH


class TestBestMatch:
    """Tests for candidate ranking."""

    def test_best_candidate_first(self):
        scorer = SimilarityScorer()
        match = scorer.best_match(
            "Change in HbA1c", {"ae": "Adverse events", "hba1c": "Change in HbA1c"}
        )

        assert match.best.key == "hba1c"
        assert match.best.score == 1.0
        assert [c.key for c in match.ranked] == ["hba1c", "ae"]
        assert not match.ambiguous

    def test_near_tie_is_ambiguous(self):
        scorer = SimilarityScorer()
        match = scorer.best_match(
            "Change in HbA1c", {"first": "HbA1c at week 52", "second": "HbA1c at week 52"}
        )

        assert match.ambiguous
        assert match.best.key == "first"

    def test_degenerate_candidates_skipped(self):
        scorer = SimilarityScorer()
        match = scorer.best_match("Change in HbA1c", {"empty": "", "none": None, "ok": "HbA1c"})

        assert [c.key for c in match.ranked] == ["ok"]

    def test_degenerate_query_yields_nothing(self):
        assert SimilarityScorer().best_match("", {"a": "HbA1c"}).best is None
