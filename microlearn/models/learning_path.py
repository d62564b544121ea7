from sqlalchemy import Column, Integer, String, Float, JSON, UniqueConstraint
from microlearn.database import Base, UTCDateTime, utcnow

class LearningPath(Base):
    """Ordered, personalized chunk sequence for one user and topic"""
    __tablename__ = "learning_paths"
    __table_args__ = (UniqueConstraint("user_id", "topic", name="uq_path_user_topic"),)
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    topic = Column(String, nullable=False)
    
    chunk_ids = Column(JSON, nullable=False)  # planned order
    current_index = Column(Integer, nullable=False, default=0)  # progress cursor
    
    # Progress counters
    completed_chunks = Column(JSON, nullable=False, default=list)
    mastered_chunks = Column(JSON, nullable=False, default=list)
    struggling_chunks = Column(JSON, nullable=False, default=list)
    total_time_seconds = Column(Integer, nullable=False, default=0)
    attempt_count = Column(Integer, nullable=False, default=0)
    average_score = Column(Float, nullable=False, default=0.0)
    
    # Adaptive settings
    pace = Column(String, nullable=False, default="normal")  # slow, normal, fast
    difficulty_preference = Column(String, nullable=False, default="standard")  # easier, standard, challenging
    learning_style = Column(String)
    session_length_minutes = Column(Integer, nullable=False, default=30)
    
    # [{"chunk_id": ..., "next_review": iso8601 | None, "priority": "high"|"medium"|"low"}, ...]
    review_schedule = Column(JSON, nullable=False, default=list)
    
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow)
