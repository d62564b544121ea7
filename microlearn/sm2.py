import math
from datetime import datetime, timedelta
from typing import Optional

from microlearn.schemas import ChunkStage, DeclaredDifficulty, RepetitionSnapshot

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
PASSING_QUALITY = 3
# Hard ceiling applied under any configured cap; keeps next_review inside datetime's range
MAX_INTERVAL_DAYS = 36500


def calculate_quality(score: float, difficulty: DeclaredDifficulty) -> int:
    """
    Map a raw attempt onto the SM-2 0-5 quality scale.

    Success on hard material earns a bonus point, and so does a clearly
    strong result on easy material. The result is always within [0, 5].
    """
    quality = math.floor(score / 20)
    difficulty = DeclaredDifficulty(difficulty)

    if difficulty == DeclaredDifficulty.EASY and score >= 80:
        quality += 1
    elif difficulty == DeclaredDifficulty.HARD and score >= 60:
        quality += 1

    return max(0, min(5, quality))


class SM2Algorithm:
    """
    SM-2 spaced repetition algorithm for calculating review intervals.
    Based on SuperMemo 2 algorithm by Piotr Wozniak.
    """

    @staticmethod
    def next_ease_factor(ease_factor: float, quality: int) -> float:
        """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3"""
        miss = 5 - quality
        return max(MIN_EASE_FACTOR, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))

    @staticmethod
    def update(
        state,
        quality: int,
        now: datetime,
        max_interval: Optional[int] = None
    ) -> RepetitionSnapshot:
        """
        Apply one review to a repetition state.

        Args:
            state: Anything exposing interval_days, ease_factor, repetitions
                (and optionally lapses): a RepetitionState row or snapshot
            quality: Response quality (0-5), already validated by the caller
            now: Instant of the review (aware UTC)
            max_interval: Optional cap on the interval in days

        Returns:
            New RepetitionSnapshot; the input is not modified
        """
        repetitions = state.repetitions
        interval = state.interval_days
        ease_factor = state.ease_factor
        lapses = getattr(state, "lapses", 0) or 0

        if quality >= PASSING_QUALITY:
            new_repetitions = repetitions + 1

            # Calculate new interval based on repetition count
            if new_repetitions == 1:
                new_interval = 1
            elif new_repetitions == 2:
                new_interval = 6
            else:
                # Grows on the ease factor in force before this review; round half up
                new_interval = int(math.floor(interval * ease_factor + 0.5))
        else:
            # Failed recall: start over
            if repetitions > 0:
                lapses += 1
            new_repetitions = 0
            new_interval = 1

        if max_interval is not None:
            new_interval = min(new_interval, max_interval)
        new_interval = max(1, min(new_interval, MAX_INTERVAL_DAYS))

        return RepetitionSnapshot(
            interval_days=new_interval,
            ease_factor=SM2Algorithm.next_ease_factor(ease_factor, quality),
            repetitions=new_repetitions,
            lapses=lapses,
            next_review=now + timedelta(days=new_interval),
            last_reviewed=now,
        )

    @staticmethod
    def initial_state(now: datetime, ease_factor: float = DEFAULT_EASE_FACTOR) -> RepetitionSnapshot:
        """
        Initialize SM-2 parameters for a chunk on first exposure.

        The chunk is due immediately so the first attempt is scored against it.
        """
        return RepetitionSnapshot(
            interval_days=1,
            ease_factor=max(MIN_EASE_FACTOR, ease_factor),
            repetitions=0,
            lapses=0,
            next_review=now,
        )

    @staticmethod
    def is_due(next_review: datetime, now: datetime) -> bool:
        """Check if a chunk is due for review"""
        return next_review <= now

    @staticmethod
    def days_overdue(next_review: datetime, now: datetime) -> int:
        """Calculate how many whole days overdue a review is"""
        if now < next_review:
            return 0
        return (now - next_review).days


def learning_stage(state) -> ChunkStage:
    """Where a chunk sits in the per-user lifecycle; state is None when unseen."""
    if state is None:
        return ChunkStage.UNSEEN
    if state.repetitions >= 1:
        return ChunkStage.REVIEWING
    if (getattr(state, "lapses", 0) or 0) > 0:
        return ChunkStage.RELEARNING
    return ChunkStage.IN_PROGRESS
