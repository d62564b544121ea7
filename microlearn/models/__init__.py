from microlearn.models.chunk import Chunk
from microlearn.models.repetition_state import RepetitionState
from microlearn.models.user_performance import UserPerformance
from microlearn.models.learning_path import LearningPath
from microlearn.models.attempt import Attempt

__all__ = [
    "Chunk",
    "RepetitionState",
    "UserPerformance",
    "LearningPath",
    "Attempt"
]
