from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


class ChunkDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class DeclaredDifficulty(str, Enum):
    """How hard the learner said the attempt felt"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MasteryLevel(str, Enum):
    NOVICE = "novice"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    EXPERT = "expert"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Lower rank sorts first
PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Pace(str, Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"


class DifficultyPreference(str, Enum):
    EASIER = "easier"
    STANDARD = "standard"
    CHALLENGING = "challenging"


class LearningStyle(str, Enum):
    VISUAL = "visual"
    AUDITORY = "auditory"
    KINESTHETIC = "kinesthetic"
    READING = "reading"


class QueueMode(str, Enum):
    NEW = "new"
    REVIEW = "review"
    CAUGHT_UP = "caught_up"


class ChunkStage(str, Enum):
    """Per-user lifecycle of a chunk"""
    UNSEEN = "unseen"
    IN_PROGRESS = "in_progress"
    REVIEWING = "reviewing"
    RELEARNING = "relearning"


class ChunkCreate(BaseModel):
    """Draft chunk as supplied by the content generator"""
    id: str = Field(min_length=1)
    title: str
    concept: str
    difficulty: ChunkDifficulty = ChunkDifficulty.BEGINNER
    estimated_minutes: int = Field(default=10, ge=1)
    prerequisites: List[str] = Field(default_factory=list)
    next_chunks: List[str] = Field(default_factory=list)
    content: Dict[str, Any] = Field(default_factory=dict)
    topic: str
    subtopic: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ChunkRead(ChunkCreate):
    """Stored chunk"""
    generation_index: int = 0
    deprecated: bool = False

    class Config:
        from_attributes = True


class LearnerProfile(BaseModel):
    """What the planner knows about the learner"""
    skill_level: ChunkDifficulty = ChunkDifficulty.INTERMEDIATE
    learning_style: LearningStyle = LearningStyle.READING
    available_minutes: int = Field(ge=0, description="Minutes per day")
    goals: List[str] = Field(default_factory=list)
    weak_areas: List[str] = Field(default_factory=list)
    strong_areas: List[str] = Field(default_factory=list)


class ReviewScheduleEntry(BaseModel):
    chunk_id: str
    next_review: Optional[datetime] = None  # None until first exposure
    priority: Priority = Priority.MEDIUM


class LearningPathRead(BaseModel):
    """Schema for learning path response"""
    user_id: str
    topic: str
    chunk_ids: List[str]
    current_index: int
    completed_chunks: List[str]
    mastered_chunks: List[str]
    struggling_chunks: List[str]
    total_time_seconds: int
    attempt_count: int
    average_score: float
    pace: Pace
    difficulty_preference: DifficultyPreference
    learning_style: Optional[LearningStyle] = None
    session_length_minutes: int
    review_schedule: List[ReviewScheduleEntry]

    class Config:
        from_attributes = True


class RepetitionSnapshot(BaseModel):
    """Spaced repetition state at one point in time"""
    interval_days: int = Field(ge=1)
    ease_factor: float = Field(ge=1.3)
    repetitions: int = Field(ge=0)
    lapses: int = Field(default=0, ge=0)
    next_review: datetime
    last_reviewed: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttemptResult(BaseModel):
    """Outcome of recording one attempt"""
    chunk_id: str
    quality: int
    state: RepetitionSnapshot
    mastery_level: MasteryLevel
    stage: ChunkStage


class NextItem(BaseModel):
    """What the learner should do now; chunk is None when caught up"""
    mode: QueueMode
    chunk: Optional[ChunkRead] = None


class UserAnalytics(BaseModel):
    user_id: str
    chunks_attempted: int
    total_attempts: int
    total_time_seconds: int
    average_score: float
    mastery_distribution: Dict[MasteryLevel, int]
    struggling_concepts: List[str]
    strong_concepts: List[str]
    due_now: int
    upcoming_reviews: int
