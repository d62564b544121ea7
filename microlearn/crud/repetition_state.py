from sqlalchemy.orm import Session
from microlearn.models import RepetitionState
from microlearn.schemas import RepetitionSnapshot
from datetime import datetime
from typing import List, Optional

def get_state(db: Session, user_id: str, chunk_id: str) -> Optional[RepetitionState]:
    """Get SM-2 state for one (user, chunk); None if the chunk is unseen"""
    return db.query(RepetitionState).filter(
        RepetitionState.user_id == user_id,
        RepetitionState.chunk_id == chunk_id
    ).first()

def get_states_for_user(db: Session, user_id: str) -> List[RepetitionState]:
    """Get all SM-2 state for a user"""
    return db.query(RepetitionState).filter(
        RepetitionState.user_id == user_id
    ).all()

def get_due_states(db: Session, user_id: str, now: datetime) -> List[RepetitionState]:
    """Get all chunks due for review, earliest first"""
    return db.query(RepetitionState).filter(
        RepetitionState.user_id == user_id,
        RepetitionState.next_review <= now
    ).order_by(RepetitionState.next_review, RepetitionState.chunk_id).all()

def save_state(db: Session, user_id: str, chunk_id: str, snapshot: RepetitionSnapshot) -> RepetitionState:
    """
    Write a scheduler result for (user, chunk), creating the row on first exposure.
    
    Flushes but does not commit; the caller owns the transaction.
    """
    state = get_state(db, user_id, chunk_id)
    if state is None:
        state = RepetitionState(user_id=user_id, chunk_id=chunk_id)
        db.add(state)
    state.interval_days = snapshot.interval_days
    state.ease_factor = snapshot.ease_factor
    state.repetitions = snapshot.repetitions
    state.lapses = snapshot.lapses
    state.next_review = snapshot.next_review
    state.last_reviewed = snapshot.last_reviewed
    db.flush()
    return state
