"""
Shared Test Fixtures and Configuration

Provides an in-memory database, a controllable clock and a ready-made
DueQueueService wired to both.
"""

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from microlearn.config import Settings
from microlearn.database import init_db
from microlearn.due_queue import DueQueueService
from microlearn.locks import KeyedLocks
from microlearn.schemas import ChunkCreate, LearnerProfile


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def make_chunk(
    chunk_id: str,
    concept: str = None,
    prerequisites: Sequence[str] = (),
    next_chunks: Sequence[str] = (),
    topic: str = "python",
) -> ChunkCreate:
    return ChunkCreate(
        id=chunk_id,
        title=f"Chunk {chunk_id}",
        concept=concept or f"concept {chunk_id}",
        prerequisites=list(prerequisites),
        next_chunks=list(next_chunks),
        topic=topic,
    )


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Engine
# ============================================================================


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(database_url="sqlite://", max_interval_days=None)


@pytest.fixture
def service(session_factory, clock, test_settings) -> DueQueueService:
    return DueQueueService(
        session_factory=session_factory,
        clock=clock,
        settings=test_settings,
        locks=KeyedLocks(),
    )


@pytest.fixture
def dag_chunks():
    """
    A -> B -> C, A -> D, D -> E in generation order A, B, C, D, E.

    D's concept is "recursion" so it can be declared a weak area.
    """
    return [
        make_chunk("a", "variables", next_chunks=["b", "d"]),
        make_chunk("b", "loops", prerequisites=["a"], next_chunks=["c"]),
        make_chunk("c", "comprehensions", prerequisites=["b"]),
        make_chunk("d", "recursion basics", prerequisites=["a"]),
        make_chunk("e", "tail calls", prerequisites=["d"]),
    ]


@pytest.fixture
def profile():
    return LearnerProfile(available_minutes=45, weak_areas=["Recursion"])
