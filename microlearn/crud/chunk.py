from sqlalchemy.orm import Session
from microlearn.models import Chunk
from microlearn.schemas import ChunkCreate
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

def save_chunks(db: Session, chunks: Sequence[ChunkCreate], now: datetime) -> List[Chunk]:
    """
    Store chunk drafts in generation order.
    
    Chunks whose id is already stored are left untouched: structure is
    immutable once written, and content changes go through update_chunk_content.
    """
    existing = {c.id: c for c in get_chunks(db, [chunk.id for chunk in chunks])}
    stored = []
    for index, chunk in enumerate(chunks):
        db_chunk = existing.get(chunk.id)
        if db_chunk is None:
            db_chunk = Chunk(
                **chunk.model_dump(mode="json"),
                generation_index=index,
                deprecated=False,
                created_at=now,
                updated_at=now
            )
            db.add(db_chunk)
            existing[chunk.id] = db_chunk
        stored.append(db_chunk)
    return stored

def get_chunk(db: Session, chunk_id: str) -> Optional[Chunk]:
    """Get chunk by ID"""
    return db.get(Chunk, chunk_id)

def get_chunks(db: Session, chunk_ids: Sequence[str]) -> List[Chunk]:
    """Get chunks by ID, in no particular order"""
    if not chunk_ids:
        return []
    return db.query(Chunk).filter(Chunk.id.in_(list(chunk_ids))).all()

def get_chunks_by_topic(db: Session, topic: str, include_deprecated: bool = False) -> List[Chunk]:
    """Get all chunks for a topic in generation order"""
    query = db.query(Chunk).filter(Chunk.topic == topic)
    if not include_deprecated:
        query = query.filter(Chunk.deprecated.is_(False))
    return query.order_by(Chunk.generation_index, Chunk.id).all()

def update_chunk_content(db: Session, chunk_id: str, content: Dict[str, Any], now: datetime) -> Optional[Chunk]:
    """Replace a chunk's content payload; the only mutation chunks allow"""
    db_chunk = get_chunk(db, chunk_id)
    if db_chunk:
        db_chunk.content = content
        db_chunk.updated_at = now
        db.commit()
        db.refresh(db_chunk)
    return db_chunk

def deprecate_chunk(db: Session, chunk_id: str, now: datetime) -> Optional[Chunk]:
    """Retire a chunk from new and review queues without deleting its history"""
    db_chunk = get_chunk(db, chunk_id)
    if db_chunk:
        db_chunk.deprecated = True
        db_chunk.updated_at = now
        db.commit()
        db.refresh(db_chunk)
    return db_chunk
