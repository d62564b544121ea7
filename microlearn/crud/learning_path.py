from sqlalchemy.orm import Session
from microlearn.models import LearningPath
from microlearn.path_planner import PlannedPath
from datetime import datetime
from typing import List, Optional

def create_learning_path(db: Session, user_id: str, topic: str, planned: PlannedPath, now: datetime) -> LearningPath:
    """Persist a planned path with empty progress. Does not commit."""
    db_path = LearningPath(
        user_id=user_id,
        topic=topic,
        chunk_ids=list(planned.chunk_ids),
        current_index=0,
        completed_chunks=[],
        mastered_chunks=[],
        struggling_chunks=[],
        total_time_seconds=0,
        attempt_count=0,
        average_score=0.0,
        pace=planned.pace.value,
        difficulty_preference=planned.difficulty_preference.value,
        learning_style=planned.learning_style,
        session_length_minutes=planned.session_length_minutes,
        review_schedule=[entry.model_dump(mode="json") for entry in planned.review_schedule],
        created_at=now,
        updated_at=now
    )
    db.add(db_path)
    return db_path

def get_learning_path(db: Session, user_id: str, topic: str) -> Optional[LearningPath]:
    """Get the path for (user, topic)"""
    return db.query(LearningPath).filter(
        LearningPath.user_id == user_id,
        LearningPath.topic == topic
    ).first()

def get_learning_path_for_update(db: Session, path_id: int) -> Optional[LearningPath]:
    """Re-read a path row with a row lock where the database supports one"""
    return db.query(LearningPath).filter(
        LearningPath.id == path_id
    ).with_for_update().populate_existing().first()

def get_learning_paths(db: Session, user_id: str) -> List[LearningPath]:
    """Get all paths for a user, oldest first"""
    return db.query(LearningPath).filter(
        LearningPath.user_id == user_id
    ).order_by(LearningPath.id).all()

def find_path_containing(db: Session, user_id: str, chunk_id: str) -> Optional[LearningPath]:
    """Get the user's path that schedules chunk_id; None if no path does"""
    for path in get_learning_paths(db, user_id):
        if chunk_id in path.chunk_ids:
            return path
    return None
