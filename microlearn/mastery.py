"""
Mastery classification.

A mastery level is a label derived from a learner's history on one chunk. It
is not a scheduling state: expert chunks keep being reviewed, just at longer
intervals.
"""

from microlearn.schemas import MasteryLevel

# (level, min average score, min repetitions, min attempts), checked in order
MASTERY_RULES = (
    (MasteryLevel.EXPERT, 90.0, 3, 0),
    (MasteryLevel.PROFICIENT, 80.0, 2, 0),
    (MasteryLevel.DEVELOPING, 70.0, 0, 2),
)

MASTERY_ORDER = [
    MasteryLevel.NOVICE,
    MasteryLevel.DEVELOPING,
    MasteryLevel.PROFICIENT,
    MasteryLevel.EXPERT,
]


def classify(average_score: float, attempts: int, repetitions: int) -> MasteryLevel:
    """
    Classify a learner's command of one chunk; first matching rule wins.

    Every rule is a conjunction of lower bounds, so raising any input can
    only move the result up.
    """
    for level, min_score, min_repetitions, min_attempts in MASTERY_RULES:
        if (
            average_score >= min_score
            and repetitions >= min_repetitions
            and attempts >= min_attempts
        ):
            return level
    return MasteryLevel.NOVICE


def mastery_rank(level: MasteryLevel) -> int:
    return MASTERY_ORDER.index(MasteryLevel(level))


def is_struggling(average_score: float, threshold: float = 70.0) -> bool:
    return average_score < threshold


def is_strength(average_score: float, threshold: float = 90.0) -> bool:
    return average_score >= threshold
