from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from microlearn.database import Base, UTCDateTime

class RepetitionState(Base):
    """SM-2 spaced repetition tracking per (user, chunk)"""
    __tablename__ = "repetition_states"
    __table_args__ = (UniqueConstraint("user_id", "chunk_id", name="uq_repetition_user_chunk"),)
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    chunk_id = Column(String, ForeignKey("chunks.id"), nullable=False)
    
    # SM-2 algorithm fields
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval_days = Column(Integer, nullable=False, default=1)  # days until next review
    repetitions = Column(Integer, nullable=False, default=0)  # consecutive successful reviews
    lapses = Column(Integer, nullable=False, default=0)  # failures after at least one pass
    
    last_reviewed = Column(UTCDateTime)
    next_review = Column(UTCDateTime, nullable=False, index=True)
