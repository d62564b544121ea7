"""
Due Queue Service

Orchestrates planning, scheduling and mastery tracking over the persistent
tables, and answers "what should this learner do right now".

Usage:
    from microlearn.due_queue import DueQueueService

    service = DueQueueService()
    service.create_path("u1", "python", chunks, LearnerProfile(available_minutes=45))
    service.record_attempt("u1", "python-0", score=85, time_spent_seconds=300,
                           declared_difficulty="medium")
    item = service.next_item("u1", "python")
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from microlearn import crud
from microlearn.config import Settings, settings as default_settings
from microlearn.database import SessionLocal, lock_for_write, utcnow
from microlearn.errors import InvalidScoreError, PathNotFoundError, UnknownChunkError
from microlearn.locks import KeyedLocks
from microlearn.mastery import classify, is_struggling
from microlearn.models import Attempt, LearningPath
from microlearn.path_planner import plan
from microlearn.schemas import (
    PRIORITY_RANK,
    AttemptResult,
    ChunkCreate,
    ChunkRead,
    DeclaredDifficulty,
    LearnerProfile,
    LearningPathRead,
    MasteryLevel,
    NextItem,
    Priority,
    QueueMode,
    RepetitionSnapshot,
)
from microlearn.sm2 import SM2Algorithm, calculate_quality, learning_stage

logger = logging.getLogger(__name__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_attempt(score: float, time_spent_seconds: int, declared_difficulty: str) -> DeclaredDifficulty:
    """
    Boundary checks for an attempt report, run before any state is touched.

    Raises:
        InvalidScoreError: score outside [0, 100], negative time spent, or an
            unknown declared difficulty
    """
    if not _is_number(score) or not 0 <= score <= 100:
        raise InvalidScoreError(f"Score must be between 0 and 100, got {score!r}", details={"score": score})
    if not _is_number(time_spent_seconds) or time_spent_seconds < 0:
        raise InvalidScoreError(
            f"Time spent must be non-negative, got {time_spent_seconds!r}",
            details={"time_spent_seconds": time_spent_seconds},
        )
    try:
        return DeclaredDifficulty(declared_difficulty)
    except ValueError:
        raise InvalidScoreError(
            f"Declared difficulty must be easy, medium or hard, got {declared_difficulty!r}",
            details={"declared_difficulty": declared_difficulty},
        ) from None


class DueQueueService:
    """
    Service entry point for the four engine operations.

    Provides:
    - create_path: plan and persist a (user, topic) path
    - record_attempt: atomic SM-2 + performance + path update for one attempt
    - due_chunks: pending reviews, highest priority first
    - next_item: the single next unit of work (review before new)
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Callable[[], datetime] = utcnow,
        settings: Settings = None,
        locks: KeyedLocks = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.settings = settings or default_settings
        self.locks = locks or KeyedLocks()

    # ------------------------------------------------------------------
    # Path creation
    # ------------------------------------------------------------------

    def create_path(
        self,
        user_id: str,
        topic: str,
        chunks: Sequence[ChunkCreate],
        profile: LearnerProfile,
    ) -> LearningPathRead:
        """
        Plan a path for (user, topic) and store it with its chunks.

        Planning runs before anything is written, so a cyclic graph leaves the
        store untouched. A path that already exists is returned unchanged.

        Raises:
            CyclicPrerequisiteError: if the chunks' prerequisite graph has a cycle
        """
        planned = plan(chunks, profile, max_session_minutes=self.settings.max_session_minutes)
        now = self.clock()

        with self.locks.hold((user_id, topic)):
            db = self.session_factory()
            try:
                lock_for_write(db)
                existing = crud.get_learning_path(db, user_id, topic)
                if existing:
                    logger.info(f"Path for user {user_id} / {topic} already exists; leaving it as is")
                    return LearningPathRead.model_validate(existing)

                crud.save_chunks(db, chunks, now)
                db_path = crud.create_learning_path(db, user_id, topic, planned, now)
                db.commit()
                logger.info(f"Created path for user {user_id} / {topic} with {len(planned.chunk_ids)} chunks")
                return LearningPathRead.model_validate(db_path)
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    def record_attempt(
        self,
        user_id: str,
        chunk_id: str,
        score: float,
        time_spent_seconds: int,
        declared_difficulty: str,
    ) -> AttemptResult:
        """
        Record one attempt and update repetition state, performance and path.

        All three records change in one transaction under the (user, topic)
        lock and the database write lock, so service instances sharing one
        database are serialized as well. Any failure rolls every record back.

        Raises:
            InvalidScoreError: on invalid input, before any state mutation
            UnknownChunkError: if no path of the user contains the chunk
        """
        difficulty = validate_attempt(score, time_spent_seconds, declared_difficulty)
        quality = calculate_quality(score, difficulty)

        db = self.session_factory()
        try:
            path = crud.find_path_containing(db, user_id, chunk_id)
            if path is None or crud.get_chunk(db, chunk_id) is None:
                raise UnknownChunkError(user_id, chunk_id)
            path_id, topic = path.id, path.topic
            db.rollback()  # end the lookup transaction before locking

            with self.locks.hold((user_id, topic)):
                lock_for_write(db)
                result = self._apply_attempt(db, path_id, user_id, chunk_id, score, time_spent_seconds, difficulty, quality)
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info(
            f"Attempt by {user_id} on {chunk_id}: score={score} quality={quality} "
            f"interval={result.state.interval_days}d mastery={result.mastery_level.value}"
        )
        return result

    def _apply_attempt(
        self,
        db: Session,
        path_id: int,
        user_id: str,
        chunk_id: str,
        score: float,
        time_spent_seconds: int,
        difficulty: DeclaredDifficulty,
        quality: int,
    ) -> AttemptResult:
        now = self.clock()
        path = crud.get_learning_path_for_update(db, path_id)
        chunk = crud.get_chunk(db, chunk_id)
        if path is None or chunk is None or chunk_id not in path.chunk_ids:
            raise UnknownChunkError(user_id, chunk_id)

        # 1. Spaced repetition state; written before mastery reads it
        current = crud.get_state(db, user_id, chunk.id)
        if current is None:
            current = SM2Algorithm.initial_state(now, self.settings.initial_ease_factor)
        snapshot = SM2Algorithm.update(current, quality, now, max_interval=self.settings.max_interval_days)
        state = crud.save_state(db, user_id, chunk.id, snapshot)

        # 2. Performance aggregates and mastery
        perf = crud.apply_attempt(
            db,
            user_id,
            chunk.id,
            chunk.concept,
            score,
            time_spent_seconds,
            now,
            struggling_threshold=self.settings.struggling_threshold,
            strength_threshold=self.settings.strength_threshold,
        )
        mastery = classify(perf.average_score, perf.attempts, state.repetitions)
        perf.mastery_level = mastery.value

        # 3. Path progress and review schedule
        self._update_path(path, chunk.id, score, time_spent_seconds, perf.average_score, mastery, state.next_review, now)

        db.add(
            Attempt(
                user_id=user_id,
                chunk_id=chunk.id,
                score=score,
                time_spent_seconds=time_spent_seconds,
                declared_difficulty=difficulty.value,
                quality=quality,
                attempted_at=now,
            )
        )
        db.flush()

        return AttemptResult(
            chunk_id=chunk.id,
            quality=quality,
            state=RepetitionSnapshot.model_validate(state),
            mastery_level=mastery,
            stage=learning_stage(state),
        )

    def _update_path(
        self,
        path: LearningPath,
        chunk_id: str,
        score: float,
        time_spent_seconds: int,
        chunk_average: float,
        mastery: MasteryLevel,
        next_review: datetime,
        now: datetime,
    ) -> None:
        # JSON columns are replaced, never mutated in place
        completed = list(path.completed_chunks or [])
        if chunk_id not in completed:
            completed.append(chunk_id)
        path.completed_chunks = completed

        path.mastered_chunks = _set_membership(path.mastered_chunks, chunk_id, mastery == MasteryLevel.EXPERT)
        path.struggling_chunks = _set_membership(
            path.struggling_chunks,
            chunk_id,
            is_struggling(chunk_average, self.settings.struggling_threshold),
        )

        path.total_time_seconds += time_spent_seconds
        path.attempt_count += 1
        path.average_score = (path.average_score * (path.attempt_count - 1) + score) / path.attempt_count

        done = set(completed)
        path.current_index = next(
            (index for index, cid in enumerate(path.chunk_ids) if cid not in done),
            len(path.chunk_ids),
        )

        schedule = []
        for entry in path.review_schedule or []:
            entry = dict(entry)
            if entry["chunk_id"] == chunk_id:
                entry["next_review"] = next_review.isoformat()
            schedule.append(entry)
        path.review_schedule = schedule
        path.updated_at = now

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def due_chunks(self, user_id: str, topic: Optional[str] = None) -> List[str]:
        """
        Chunk ids due for review, highest priority first.

        Ordered by (priority, next review, position in path, chunk id). Only
        chunks the learner has seen and that are not deprecated qualify.
        """
        db = self.session_factory()
        try:
            return [chunk_id for chunk_id, _ in self._due(db, user_id, topic)]
        finally:
            db.close()

    def next_item(self, user_id: str, topic: str) -> NextItem:
        """
        The next unit of work for (user, topic).

        Due reviews always win over new material. With nothing due, the first
        unattempted chunk in path order is returned as new; with nothing left
        the learner is caught up.

        Raises:
            PathNotFoundError: if the user has no path for the topic
        """
        db = self.session_factory()
        try:
            path = crud.get_learning_path(db, user_id, topic)
            if path is None:
                raise PathNotFoundError(user_id, topic)

            due = self._due(db, user_id, topic)
            if due:
                _, chunk = due[0]
                return NextItem(mode=QueueMode.REVIEW, chunk=ChunkRead.model_validate(chunk))

            completed = set(path.completed_chunks or [])
            chunks = {c.id: c for c in crud.get_chunks(db, path.chunk_ids)}
            for chunk_id in path.chunk_ids:
                chunk = chunks.get(chunk_id)
                if chunk_id in completed or chunk is None or chunk.deprecated:
                    continue
                return NextItem(mode=QueueMode.NEW, chunk=ChunkRead.model_validate(chunk))

            return NextItem(mode=QueueMode.CAUGHT_UP)
        finally:
            db.close()

    def get_path(self, user_id: str, topic: str) -> LearningPathRead:
        db = self.session_factory()
        try:
            path = crud.get_learning_path(db, user_id, topic)
            if path is None:
                raise PathNotFoundError(user_id, topic)
            return LearningPathRead.model_validate(path)
        finally:
            db.close()

    def get_state(self, user_id: str, chunk_id: str) -> Optional[RepetitionSnapshot]:
        db = self.session_factory()
        try:
            state = crud.get_state(db, user_id, chunk_id)
            return RepetitionSnapshot.model_validate(state) if state else None
        finally:
            db.close()

    def _due(self, db: Session, user_id: str, topic: Optional[str]) -> List[Tuple[str, object]]:
        now = self.clock()
        paths = crud.get_learning_paths(db, user_id)
        if topic is not None:
            paths = [p for p in paths if p.topic == topic]

        # chunk id -> (priority rank, path order, position in path); first path wins
        placement: Dict[str, Tuple[int, int, int]] = {}
        for path_order, path in enumerate(paths):
            priorities = {e["chunk_id"]: e.get("priority", Priority.MEDIUM.value) for e in path.review_schedule or []}
            for position, chunk_id in enumerate(path.chunk_ids):
                if chunk_id not in placement:
                    rank = PRIORITY_RANK[Priority(priorities.get(chunk_id, Priority.MEDIUM.value))]
                    placement[chunk_id] = (rank, path_order, position)

        states = [s for s in crud.get_due_states(db, user_id, now) if s.chunk_id in placement]
        chunks = {c.id: c for c in crud.get_chunks(db, [s.chunk_id for s in states])}

        due = [
            s for s in states
            if s.chunk_id in chunks and not chunks[s.chunk_id].deprecated
        ]
        due.sort(
            key=lambda s: (
                placement[s.chunk_id][0],
                s.next_review,
                placement[s.chunk_id][1],
                placement[s.chunk_id][2],
                s.chunk_id,
            )
        )
        return [(s.chunk_id, chunks[s.chunk_id]) for s in due]


def _set_membership(members, item: str, present: bool) -> list:
    members = [m for m in (members or []) if m != item]
    if present:
        members.append(item)
    return members
