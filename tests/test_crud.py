"""Unit tests for the CRUD layer."""

import pytest

from microlearn import crud
from microlearn.path_planner import plan
from microlearn.schemas import LearnerProfile, RepetitionSnapshot
from microlearn.sm2 import SM2Algorithm
from tests.conftest import make_chunk


class TestChunks:
    """Tests for chunk storage."""

    def test_save_assigns_generation_order(self, db, clock, dag_chunks):
        crud.save_chunks(db, dag_chunks, clock())
        db.commit()

        stored = crud.get_chunks_by_topic(db, "python")
        assert [c.id for c in stored] == ["a", "b", "c", "d", "e"]
        assert [c.generation_index for c in stored] == [0, 1, 2, 3, 4]
        assert crud.get_chunk(db, "b").prerequisites == ["a"]

    def test_existing_chunks_are_not_overwritten(self, db, clock):
        """Test a second save with the same id keeps the stored chunk."""
        crud.save_chunks(db, [make_chunk("a", "original")], clock())
        db.commit()
        crud.save_chunks(db, [make_chunk("a", "rewritten", prerequisites=["z"])], clock())
        db.commit()

        chunk = crud.get_chunk(db, "a")
        assert chunk.concept == "original"
        assert chunk.prerequisites == []

    def test_update_content(self, db, clock):
        crud.save_chunks(db, [make_chunk("a")], clock())
        db.commit()
        clock.advance(days=1)

        chunk = crud.update_chunk_content(db, "a", {"body": "Variables name values."}, clock())
        assert chunk.content == {"body": "Variables name values."}
        assert chunk.updated_at == clock()
        assert chunk.created_at < chunk.updated_at

    def test_deprecate_hides_from_topic_listing(self, db, clock, dag_chunks):
        crud.save_chunks(db, dag_chunks, clock())
        db.commit()
        crud.deprecate_chunk(db, "c", clock())

        assert "c" not in [c.id for c in crud.get_chunks_by_topic(db, "python")]
        assert "c" in [c.id for c in crud.get_chunks_by_topic(db, "python", include_deprecated=True)]
        assert crud.get_chunk(db, "c").deprecated

    def test_missing_chunk(self, db, clock):
        assert crud.get_chunk(db, "nope") is None
        assert crud.deprecate_chunk(db, "nope", clock()) is None
        assert crud.get_chunks(db, []) == []


class TestRepetitionState:
    """Tests for repetition state persistence."""

    def test_save_then_update(self, db, clock):
        crud.save_chunks(db, [make_chunk("a")], clock())
        first = SM2Algorithm.update(SM2Algorithm.initial_state(clock()), 4, clock())
        crud.save_state(db, "u1", "a", first)
        db.commit()

        second = SM2Algorithm.update(RepetitionSnapshot.model_validate(crud.get_state(db, "u1", "a")), 4, clock())
        crud.save_state(db, "u1", "a", second)
        db.commit()

        assert len(crud.get_states_for_user(db, "u1")) == 1
        state = crud.get_state(db, "u1", "a")
        assert (state.repetitions, state.interval_days) == (2, 6)

    def test_datetimes_round_trip_as_utc(self, db, clock):
        """Test stored instants come back timezone-aware and unchanged."""
        crud.save_chunks(db, [make_chunk("a")], clock())
        crud.save_state(db, "u1", "a", SM2Algorithm.update(SM2Algorithm.initial_state(clock()), 5, clock()))
        db.commit()
        db.expire_all()

        state = crud.get_state(db, "u1", "a")
        assert state.next_review.tzinfo is not None
        assert state.last_reviewed == clock()

    def test_due_states(self, db, clock):
        crud.save_chunks(db, [make_chunk("a"), make_chunk("b")], clock())
        crud.save_state(db, "u1", "a", SM2Algorithm.update(SM2Algorithm.initial_state(clock()), 4, clock()))
        crud.save_state(db, "u1", "b", SM2Algorithm.update(SM2Algorithm.initial_state(clock()), 1, clock()))
        db.commit()

        assert crud.get_due_states(db, "u1", clock()) == []
        due = crud.get_due_states(db, "u1", clock.advance(days=1))
        assert [s.chunk_id for s in due] == ["a", "b"]
        assert crud.get_due_states(db, "u2", clock()) == []


class TestPerformance:
    """Tests for performance aggregation."""

    def test_aggregates(self, db, clock):
        crud.save_chunks(db, [make_chunk("a", "variables")], clock())
        crud.apply_attempt(db, "u1", "a", "variables", 60, 120, clock())
        perf = crud.apply_attempt(db, "u1", "a", "variables", 90, 30, clock.advance(hours=1))
        db.commit()

        assert perf.attempts == 2
        assert perf.best_score == 90
        assert perf.average_score == pytest.approx(75)
        assert perf.time_spent_seconds == 150
        assert perf.last_attempt == clock()

    def test_struggling_tag_toggles(self, db, clock):
        """Test the concept moves from struggling to neither to strength."""
        crud.save_chunks(db, [make_chunk("a", "variables")], clock())

        perf = crud.apply_attempt(db, "u1", "a", "variables", 40, 10, clock())
        assert (perf.struggling_areas, perf.strengths) == (["variables"], [])

        perf = crud.apply_attempt(db, "u1", "a", "variables", 100, 10, clock())
        assert (perf.struggling_areas, perf.strengths) == ([], [])

        for _ in range(6):
            perf = crud.apply_attempt(db, "u1", "a", "variables", 100, 10, clock())
        assert (perf.struggling_areas, perf.strengths) == ([], ["variables"])

    def test_custom_thresholds(self, db, clock):
        crud.save_chunks(db, [make_chunk("a", "variables")], clock())
        perf = crud.apply_attempt(
            db, "u1", "a", "variables", 75, 10, clock(), struggling_threshold=80, strength_threshold=70
        )
        assert perf.struggling_areas == ["variables"]
        assert perf.strengths == ["variables"]


class TestLearningPaths:
    """Tests for learning path storage."""

    def test_create_and_find(self, db, clock, dag_chunks, profile):
        crud.save_chunks(db, dag_chunks, clock())
        crud.create_learning_path(db, "u1", "python", plan(dag_chunks, profile), clock())
        db.commit()

        path = crud.get_learning_path(db, "u1", "python")
        assert path.chunk_ids == ["a", "d", "b", "c", "e"]
        assert path.pace == "normal"
        assert path.review_schedule[1] == {"chunk_id": "d", "next_review": None, "priority": "high"}

        assert crud.find_path_containing(db, "u1", "e").id == path.id
        assert crud.find_path_containing(db, "u1", "zzz") is None
        assert crud.find_path_containing(db, "u2", "a") is None
        assert crud.get_learning_path_for_update(db, path.id).topic == "python"

    def test_paths_listed_oldest_first(self, db, clock):
        profile = LearnerProfile(available_minutes=30)
        for topic in ("sql", "python"):
            chunks = [make_chunk(f"{topic}-1", topic=topic)]
            crud.save_chunks(db, chunks, clock())
            crud.create_learning_path(db, "u1", topic, plan(chunks, profile), clock())
        db.commit()

        assert [p.topic for p in crud.get_learning_paths(db, "u1")] == ["sql", "python"]
