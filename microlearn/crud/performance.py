from sqlalchemy.orm import Session
from microlearn.models import UserPerformance
from microlearn.mastery import is_strength, is_struggling
from datetime import datetime
from typing import List, Optional

def get_performance(db: Session, user_id: str, chunk_id: str) -> Optional[UserPerformance]:
    """Get attempt aggregates for one (user, chunk)"""
    return db.query(UserPerformance).filter(
        UserPerformance.user_id == user_id,
        UserPerformance.chunk_id == chunk_id
    ).first()

def get_performance_for_user(db: Session, user_id: str) -> List[UserPerformance]:
    """Get all attempt aggregates for a user"""
    return db.query(UserPerformance).filter(
        UserPerformance.user_id == user_id
    ).order_by(UserPerformance.chunk_id).all()

def apply_attempt(
    db: Session,
    user_id: str,
    chunk_id: str,
    concept: str,
    score: float,
    time_spent_seconds: int,
    attempted_at: datetime,
    struggling_threshold: float = 70.0,
    strength_threshold: float = 90.0
) -> UserPerformance:
    """
    Fold one attempt into the (user, chunk) aggregates.
    
    Pure aggregation: mastery is classified by the caller once the repetition
    state for the same attempt has been written. Flushes but does not commit.
    """
    perf = get_performance(db, user_id, chunk_id)
    if perf is None:
        perf = UserPerformance(
            user_id=user_id,
            chunk_id=chunk_id,
            attempts=0,
            best_score=0.0,
            average_score=0.0,
            time_spent_seconds=0,
            mastery_level="novice",
            struggling_areas=[],
            strengths=[]
        )
        db.add(perf)
    
    perf.attempts += 1
    perf.best_score = max(perf.best_score, score)
    perf.average_score = (perf.average_score * (perf.attempts - 1) + score) / perf.attempts
    perf.time_spent_seconds += time_spent_seconds
    perf.last_attempt = attempted_at
    
    # JSON columns need a new list to register as changed
    perf.struggling_areas = _toggle(perf.struggling_areas, concept, is_struggling(perf.average_score, struggling_threshold))
    perf.strengths = _toggle(perf.strengths, concept, is_strength(perf.average_score, strength_threshold))
    db.flush()
    return perf

def _toggle(labels: List[str], label: str, present: bool) -> List[str]:
    labels = [l for l in (labels or []) if l != label]
    if present:
        labels.append(label)
    return labels
