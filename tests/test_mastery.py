"""Unit tests for mastery classification."""

import itertools

import pytest

from microlearn.mastery import classify, is_strength, is_struggling, mastery_rank
from microlearn.schemas import MasteryLevel


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        "average,attempts,repetitions,expected",
        [
            (95, 5, 3, MasteryLevel.EXPERT),
            (90, 3, 3, MasteryLevel.EXPERT),
            (95, 5, 2, MasteryLevel.PROFICIENT),  # not enough repetitions for expert
            (80, 1, 2, MasteryLevel.PROFICIENT),
            (89.9, 4, 4, MasteryLevel.PROFICIENT),
            (85, 3, 1, MasteryLevel.DEVELOPING),
            (70, 2, 0, MasteryLevel.DEVELOPING),
            (70, 1, 0, MasteryLevel.NOVICE),  # one attempt is not enough
            (69.9, 9, 0, MasteryLevel.NOVICE),
            (0, 0, 0, MasteryLevel.NOVICE),
        ],
    )
    def test_rules(self, average, attempts, repetitions, expected):
        """Test first-match classification thresholds."""
        assert classify(average, attempts, repetitions) == expected

    def test_monotonic_in_every_input(self):
        """Test raising any single input never lowers the level."""
        scores = [0, 50, 69, 70, 75, 79, 80, 85, 89, 90, 100]
        attempts = [0, 1, 2, 3, 5]
        repetitions = [0, 1, 2, 3, 4]

        for score, attempt, reps in itertools.product(scores, attempts, repetitions):
            base = mastery_rank(classify(score, attempt, reps))
            for higher in (s for s in scores if s > score):
                assert mastery_rank(classify(higher, attempt, reps)) >= base
            for higher in (a for a in attempts if a > attempt):
                assert mastery_rank(classify(score, higher, reps)) >= base
            for higher in (r for r in repetitions if r > reps):
                assert mastery_rank(classify(score, attempt, higher)) >= base


class TestTags:
    """Tests for struggling/strength thresholds."""

    def test_struggling(self):
        assert is_struggling(69.9)
        assert not is_struggling(70)
        assert is_struggling(74, threshold=75)

    def test_strength(self):
        assert is_strength(90)
        assert not is_strength(89.9)
