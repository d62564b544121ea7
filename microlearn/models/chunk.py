from sqlalchemy import Column, Integer, String, Boolean, JSON
from microlearn.database import Base, UTCDateTime, utcnow

class Chunk(Base):
    """Unit of learning content; structure is immutable once stored"""
    __tablename__ = "chunks"
    
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    concept = Column(String, nullable=False)
    difficulty = Column(String, nullable=False, default="beginner")  # beginner, intermediate, advanced
    estimated_minutes = Column(Integer, nullable=False, default=10)
    
    # Dependency edges, both as chunk id lists
    prerequisites = Column(JSON, nullable=False, default=list)
    next_chunks = Column(JSON, nullable=False, default=list)
    
    content = Column(JSON, nullable=False, default=dict)  # opaque payload from the content generator
    topic = Column(String, nullable=False, index=True)
    subtopic = Column(String)
    tags = Column(JSON, nullable=False, default=list)
    generation_index = Column(Integer, nullable=False, default=0)
    
    deprecated = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow)
