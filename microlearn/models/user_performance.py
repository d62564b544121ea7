from sqlalchemy import Column, Integer, String, Float, ForeignKey, JSON, UniqueConstraint
from microlearn.database import Base, UTCDateTime

class UserPerformance(Base):
    """Aggregated attempt history per (user, chunk)"""
    __tablename__ = "user_performance"
    __table_args__ = (UniqueConstraint("user_id", "chunk_id", name="uq_performance_user_chunk"),)
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    chunk_id = Column(String, ForeignKey("chunks.id"), nullable=False)
    
    attempts = Column(Integer, nullable=False, default=0)
    best_score = Column(Float, nullable=False, default=0.0)
    average_score = Column(Float, nullable=False, default=0.0)
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    last_attempt = Column(UTCDateTime)
    
    mastery_level = Column(String, nullable=False, default="novice")
    struggling_areas = Column(JSON, nullable=False, default=list)  # concept labels
    strengths = Column(JSON, nullable=False, default=list)  # concept labels
