from sqlalchemy import Column, Integer, String, Float, ForeignKey
from microlearn.database import Base, UTCDateTime

class Attempt(Base):
    """Log entry for one reported attempt on a chunk"""
    __tablename__ = "attempts"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    chunk_id = Column(String, ForeignKey("chunks.id"), nullable=False)
    
    score = Column(Float, nullable=False)
    time_spent_seconds = Column(Integer, nullable=False)
    declared_difficulty = Column(String, nullable=False)  # easy, medium, hard
    quality = Column(Integer, nullable=False)  # 0-5, derived from score and difficulty
    
    attempted_at = Column(UTCDateTime, nullable=False)
