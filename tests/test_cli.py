"""Smoke tests for the Typer CLI against the in-memory database."""

import pytest
from typer.testing import CliRunner

import cli

runner = CliRunner()

CSV_TABLE = """id,title,concept,prerequisites
py-0,Variables,variables,
py-1,Loops,loops,py-0
py-2,Recursion,recursion,py-0
"""


@pytest.fixture
def wired(monkeypatch, service, session_factory, clock, tmp_path):
    """Point the CLI at the test service, database and clock."""
    monkeypatch.setattr(cli, "get_service", lambda: service)
    monkeypatch.setattr(cli, "SessionLocal", session_factory)
    monkeypatch.setattr(cli, "utcnow", clock)
    table = tmp_path / "chunks.csv"
    table.write_text(CSV_TABLE)
    return table


def create_path(table, *extra):
    return runner.invoke(
        cli.app,
        [
            "create-path",
            "--user-id", "u1",
            "--topic", "python",
            "--file-path", str(table),
            "--available-minutes", "20",
            *extra,
        ],
    )


def test_create_path(wired):
    result = create_path(wired, "--weak-areas", "recursion")
    assert result.exit_code == 0, result.output
    assert "Learning path ready: 3 chunks" in result.output
    assert "Pace: slow" in result.output


def test_attempt_and_next(wired, clock):
    create_path(wired)

    result = runner.invoke(
        cli.app,
        ["record-attempt", "--user-id", "u1", "--chunk-id", "py-0",
         "--score", "85", "--time-spent", "60", "--difficulty", "medium"],
    )
    assert result.exit_code == 0, result.output
    assert "Quality: 4/5" in result.output
    assert "Mastery: novice" in result.output

    result = runner.invoke(cli.app, ["next", "u1", "python"])
    assert "NEW" in result.output
    assert "Loops" in result.output

    clock.advance(days=1)
    result = runner.invoke(cli.app, ["due", "u1"])
    assert "1. py-0" in result.output


def test_invalid_score_exits_nonzero(wired):
    create_path(wired)
    result = runner.invoke(
        cli.app,
        ["record-attempt", "--user-id", "u1", "--chunk-id", "py-0",
         "--score", "150", "--time-spent", "60", "--difficulty", "medium"],
    )
    assert result.exit_code == 1
    assert "Score must be between 0 and 100" in result.output


def test_missing_path(wired):
    result = runner.invoke(cli.app, ["next", "u1", "rust"])
    assert result.exit_code == 1
    assert "No learning path" in result.output


def test_nothing_due(wired):
    result = runner.invoke(cli.app, ["due", "u1"])
    assert result.exit_code == 0
    assert "Nothing due for review." in result.output


def test_import_chunks(wired, db):
    result = runner.invoke(cli.app, ["import-chunks", "--file-path", str(wired), "--topic", "python"])
    assert result.exit_code == 0, result.output
    assert "Imported 3 chunks" in result.output

    from microlearn.crud import get_chunks_by_topic
    assert [c.id for c in get_chunks_by_topic(db, "python")] == ["py-0", "py-1", "py-2"]


def test_analytics(wired):
    create_path(wired)
    runner.invoke(
        cli.app,
        ["record-attempt", "--user-id", "u1", "--chunk-id", "py-0",
         "--score", "95", "--time-spent", "120", "--difficulty", "easy"],
    )
    result = runner.invoke(cli.app, ["analytics", "u1"])
    assert result.exit_code == 0, result.output
    assert "Total attempts: 1" in result.output
    assert "Strong: variables" in result.output
