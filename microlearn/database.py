"""
Database wiring

Sets up the SQLAlchemy engine, session factory and declarative base.

Usage:
    from microlearn.database import SessionLocal, init_db

    init_db()
    db = SessionLocal()
    try:
        ...
    finally:
        db.close()
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.types import TypeDecorator

from microlearn.config import settings

SQLITE_BUSY_TIMEOUT_SECONDS = 30


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Stores datetimes as naive UTC and hands them back as aware UTC.

    SQLite drops the offset on DateTime(timezone=True), so every instant is
    normalized on the way in and re-tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to a UTC column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are handed across threads by the serving layer
        connect_args["check_same_thread"] = False
        # Writers queue on the database lock instead of failing fast
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS
    return create_engine(database_url, connect_args=connect_args)


def lock_for_write(db: Session) -> None:
    """
    Open the session's transaction holding the database write lock.

    SQLite ignores SELECT ... FOR UPDATE, so there the lock is taken up front
    with BEGIN IMMEDIATE and every other writer, in any process, waits until
    commit or rollback. Other databases rely on the row locks taken later in
    the transaction. Must run before any other statement of the transaction.
    """
    if db.get_bind().dialect.name == "sqlite":
        db.execute(text("BEGIN IMMEDIATE"))


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine = None) -> None:
    """
    Create tables that don't exist yet.

    Models are imported here so every table is registered on Base.metadata.
    """
    from microlearn import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
