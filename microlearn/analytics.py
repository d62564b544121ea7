"""Read-only learner analytics over the performance and repetition tables."""

from datetime import datetime, timedelta
from typing import List

from sqlalchemy.orm import Session

from microlearn import crud
from microlearn.schemas import MasteryLevel, UserAnalytics


def build_user_analytics(db: Session, user_id: str, now: datetime, horizon_days: int = 7) -> UserAnalytics:
    """
    Summarize a learner's progress across every chunk they have attempted.

    Args:
        db: Database session
        user_id: Learner
        now: Reference instant for due/upcoming counts
        horizon_days: Window for upcoming reviews (reviews due later than now
            and no later than now + horizon)
    """
    performances = crud.get_performance_for_user(db, user_id)

    # Same review population as the due queue: scheduled on a path, not deprecated
    on_path = {chunk_id for path in crud.get_learning_paths(db, user_id) for chunk_id in path.chunk_ids}
    active = {c.id for c in crud.get_chunks(db, on_path) if not c.deprecated}
    states = [s for s in crud.get_states_for_user(db, user_id) if s.chunk_id in active]

    distribution = {level: 0 for level in MasteryLevel}
    struggling: List[str] = []
    strong: List[str] = []
    for perf in performances:
        distribution[MasteryLevel(perf.mastery_level)] += 1
        for concept in perf.struggling_areas or []:
            if concept not in struggling:
                struggling.append(concept)
        for concept in perf.strengths or []:
            if concept not in strong:
                strong.append(concept)

    total_attempts = sum(p.attempts for p in performances)
    # Mean over attempts, not over chunks
    weighted = sum(p.average_score * p.attempts for p in performances)
    horizon = now + timedelta(days=horizon_days)

    return UserAnalytics(
        user_id=user_id,
        chunks_attempted=len(performances),
        total_attempts=total_attempts,
        total_time_seconds=sum(p.time_spent_seconds for p in performances),
        average_score=round(weighted / total_attempts, 2) if total_attempts else 0.0,
        mastery_distribution=distribution,
        struggling_concepts=struggling,
        strong_concepts=strong,
        due_now=sum(1 for s in states if s.next_review <= now),
        upcoming_reviews=sum(1 for s in states if now < s.next_review <= horizon),
    )
