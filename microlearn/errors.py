"""
Engine errors.

Only boundary validation and DAG construction fail; the scheduler and mastery
functions are total over validated input.
"""

from typing import Iterable, Optional


class MicrolearnError(Exception):
    """
    Base exception for engine errors.

    Carries a short machine-readable error code and optional details for
    the calling layer.
    """

    error_code: str = "microlearn_error"

    def __init__(self, message: str, error_code: str = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}


class CyclicPrerequisiteError(MicrolearnError):
    """The prerequisite graph handed to the planner contains a cycle."""

    error_code = "cyclic_prerequisites"

    def __init__(self, chunk_ids: Iterable[str]):
        self.chunk_ids = list(chunk_ids)
        super().__init__(
            f"Cyclic prerequisites between chunks: {', '.join(self.chunk_ids)}",
            details={"chunk_ids": self.chunk_ids},
        )


class DuplicateChunkError(MicrolearnError):
    """The same chunk id appears more than once in one planning request."""

    error_code = "duplicate_chunk"

    def __init__(self, chunk_ids: Iterable[str]):
        self.chunk_ids = sorted(set(chunk_ids))
        super().__init__(
            f"Duplicate chunk ids: {', '.join(self.chunk_ids)}",
            details={"chunk_ids": self.chunk_ids},
        )


class UnknownChunkError(MicrolearnError):
    """Attempt reported against a chunk that is not on any of the user's paths."""

    error_code = "unknown_chunk"

    def __init__(self, user_id: str, chunk_id: str):
        self.user_id = user_id
        self.chunk_id = chunk_id
        super().__init__(
            f"Chunk {chunk_id!r} is not on any learning path of user {user_id!r}",
            details={"user_id": user_id, "chunk_id": chunk_id},
        )


class InvalidScoreError(MicrolearnError):
    """Score, time spent or declared difficulty failed boundary validation."""

    error_code = "invalid_score"


class PathNotFoundError(MicrolearnError):
    error_code = "path_not_found"

    def __init__(self, user_id: str, topic: str):
        self.user_id = user_id
        self.topic = topic
        super().__init__(
            f"No learning path for user {user_id!r} and topic {topic!r}",
            details={"user_id": user_id, "topic": topic},
        )


class ContentGenerationError(MicrolearnError):
    """The content generator returned nothing usable."""

    error_code = "content_generation_failed"


class ChunkImportError(MicrolearnError):
    error_code = "chunk_import_failed"
