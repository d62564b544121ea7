"""
Path planner for personalized learning sequences.

Orders a topic's chunks by:
1. Building the prerequisite DAG from prerequisite and next-chunk edges
2. Rejecting cycles outright
3. Emitting a topological order in which weak-area chunks are pulled forward
   as soon as their prerequisites are placed, ties broken by generation order
"""

import heapq
import logging
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from microlearn.errors import CyclicPrerequisiteError, DuplicateChunkError
from microlearn.schemas import (
    ChunkCreate,
    ChunkDifficulty,
    DifficultyPreference,
    LearnerProfile,
    Pace,
    Priority,
    ReviewScheduleEntry,
)

logger = logging.getLogger(__name__)


@dataclass
class PlannedPath:
    """Result of planning, ready to be persisted as a LearningPath."""

    chunk_ids: List[str]
    priorities: Dict[str, Priority]
    pace: Pace
    difficulty_preference: DifficultyPreference
    learning_style: str
    session_length_minutes: int
    review_schedule: List[ReviewScheduleEntry] = field(default_factory=list)


def matches_area(concept: str, areas: Iterable[str]) -> bool:
    """Case-insensitive substring match of any declared area in a concept label."""
    label = concept.lower()
    return any(area.strip() and area.strip().lower() in label for area in areas)


def determine_pace(available_minutes: int) -> Pace:
    if available_minutes < 30:
        return Pace.SLOW
    if available_minutes > 60:
        return Pace.FAST
    return Pace.NORMAL


def determine_difficulty_preference(skill_level: ChunkDifficulty) -> DifficultyPreference:
    skill_level = ChunkDifficulty(skill_level)
    if skill_level == ChunkDifficulty.BEGINNER:
        return DifficultyPreference.EASIER
    if skill_level == ChunkDifficulty.ADVANCED:
        return DifficultyPreference.CHALLENGING
    return DifficultyPreference.STANDARD


def determine_priority(concept: str, weak_areas: Sequence[str], strong_areas: Sequence[str]) -> Priority:
    """Weak areas are reviewed first; strong areas last. Weak wins when both match."""
    if matches_area(concept, weak_areas):
        return Priority.HIGH
    if matches_area(concept, strong_areas):
        return Priority.LOW
    return Priority.MEDIUM


def build_prerequisite_map(chunks: Sequence[ChunkCreate]) -> Dict[str, Set[str]]:
    """
    Collect the prerequisites of every chunk from both edge directions.

    Edges pointing outside the chunk set are dropped: those prerequisites are
    taken as satisfied elsewhere.
    """
    known = {chunk.id for chunk in chunks}
    prereqs: Dict[str, Set[str]] = {chunk.id: set() for chunk in chunks}

    for chunk in chunks:
        for prereq_id in chunk.prerequisites:
            if prereq_id in known:
                prereqs[chunk.id].add(prereq_id)
            else:
                logger.warning(f"Chunk {chunk.id} requires unknown chunk {prereq_id}; ignoring edge")
        for next_id in chunk.next_chunks:
            if next_id in known:
                prereqs[next_id].add(chunk.id)
            else:
                logger.warning(f"Chunk {chunk.id} points to unknown next chunk {next_id}; ignoring edge")

    return prereqs


def topological_order(
    chunks: Sequence[ChunkCreate],
    weak_areas: Sequence[str] = (),
) -> List[str]:
    """
    Topologically sort chunks, pulling weak-area chunks forward.

    Among the chunks whose prerequisites are all placed, weak-area chunks come
    first; ties break by position in the input (generation order). The result
    is deterministic for a given input.

    Raises:
        DuplicateChunkError: if a chunk id appears twice
        CyclicPrerequisiteError: if the prerequisite graph has a cycle
    """
    seen: Set[str] = set()
    duplicates = [chunk.id for chunk in chunks if chunk.id in seen or seen.add(chunk.id)]
    if duplicates:
        raise DuplicateChunkError(duplicates)

    position = {chunk.id: index for index, chunk in enumerate(chunks)}
    weak = {chunk.id for chunk in chunks if matches_area(chunk.concept, weak_areas)}
    prereqs = build_prerequisite_map(chunks)

    self_loops = [chunk_id for chunk_id, deps in prereqs.items() if chunk_id in deps]
    if self_loops:
        raise CyclicPrerequisiteError(self_loops)

    sorter = TopologicalSorter()
    for chunk in chunks:
        sorter.add(chunk.id, *sorted(prereqs[chunk.id], key=position.__getitem__))

    try:
        sorter.prepare()
    except CycleError as exc:
        cycle = list(dict.fromkeys(exc.args[1]))
        raise CyclicPrerequisiteError(cycle) from exc

    ready: List[Tuple[int, int, str]] = []
    order: List[str] = []
    while sorter.is_active():
        for chunk_id in sorter.get_ready():
            heapq.heappush(ready, (0 if chunk_id in weak else 1, position[chunk_id], chunk_id))
        _, _, chunk_id = heapq.heappop(ready)
        order.append(chunk_id)
        sorter.done(chunk_id)

    return order


def plan(
    chunks: Sequence[ChunkCreate],
    profile: LearnerProfile,
    max_session_minutes: int = 30,
) -> PlannedPath:
    """
    Plan a personalized path through a topic's chunks.

    Args:
        chunks: Chunk drafts in generation order
        profile: Learner profile (skill level, daily minutes, weak/strong areas)
        max_session_minutes: Upper bound for the suggested session length

    Returns:
        PlannedPath with the ordered chunk ids, adaptive settings and an
        initial review schedule (no chunk has a review date before it is seen)
    """
    order = topological_order(chunks, profile.weak_areas)

    by_id = {chunk.id: chunk for chunk in chunks}
    priorities = {
        chunk_id: determine_priority(by_id[chunk_id].concept, profile.weak_areas, profile.strong_areas)
        for chunk_id in order
    }

    planned = PlannedPath(
        chunk_ids=order,
        priorities=priorities,
        pace=determine_pace(profile.available_minutes),
        difficulty_preference=determine_difficulty_preference(profile.skill_level),
        learning_style=profile.learning_style.value,
        session_length_minutes=min(profile.available_minutes, max_session_minutes),
        review_schedule=[
            ReviewScheduleEntry(chunk_id=chunk_id, priority=priorities[chunk_id])
            for chunk_id in order
        ],
    )

    logger.debug(
        f"Planned {len(order)} chunks ({sum(p == Priority.HIGH for p in priorities.values())} high priority)"
    )
    return planned
