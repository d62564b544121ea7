import logging
import sys
from typing import List, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from microlearn.analytics import build_user_analytics
from microlearn.chunk_importer import ChunkImporter
from microlearn.config import settings
from microlearn.content_generator import get_content_generator
from microlearn.crud import save_chunks
from microlearn.database import SessionLocal, init_db, utcnow
from microlearn.due_queue import DueQueueService
from microlearn.errors import MicrolearnError
from microlearn.schemas import ChunkCreate, ChunkDifficulty, LearnerProfile, LearningStyle, QueueMode

app = typer.Typer(help="Microlearn CLI - spaced repetition scheduling for microlearning chunks")
console = Console()
logger = logging.getLogger(__name__)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Configure logging before any command runs"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )


def get_service() -> DueQueueService:
    return DueQueueService()


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _fail(error: Exception):
    console.print(f"[red]✗[/red] {error}")
    raise typer.Exit(code=1)


def _chunk_table(chunks: List[ChunkCreate]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Concept", style="yellow")
    table.add_column("Difficulty")
    table.add_column("Prerequisites", style="blue")
    for chunk in chunks:
        table.add_row(
            chunk.id,
            chunk.title[:50],
            chunk.concept[:40],
            chunk.difficulty.value,
            ", ".join(chunk.prerequisites) or "-"
        )
    return table


@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")


@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from microlearn.database import engine, Base
    console.print("[yellow]Dropping all tables...[/yellow]")
    Base.metadata.drop_all(bind=engine)
    console.print("[yellow]Recreating tables...[/yellow]")
    init_db()
    console.print("[green]✓[/green] Database reset complete! All data deleted.")


@app.command()
def import_chunks(
    file_path: str = typer.Option(..., prompt="Chunk table path (.csv or .xlsx)"),
    topic: Optional[str] = typer.Option(None, help="Topic for rows that don't name one")
):
    """Import chunks from a CSV or Excel table into the chunk store"""
    db = SessionLocal()
    try:
        chunks = ChunkImporter.auto_parse(file_path, topic)
        save_chunks(db, chunks, utcnow())
        db.commit()
        console.print(f"[green]✓[/green] Imported {len(chunks)} chunks")
        console.print(_chunk_table(chunks))
    except MicrolearnError as e:
        db.rollback()
        _fail(e)
    finally:
        db.close()


@app.command()
def generate_chunks(
    topic: str = typer.Option(..., prompt="Topic"),
    complexity: ChunkDifficulty = typer.Option(ChunkDifficulty.INTERMEDIATE, help="Learner level"),
    count: int = typer.Option(settings.default_chunk_count, help="Number of chunks"),
    output: Optional[str] = typer.Option(None, help="Write the chunk table to this CSV file")
):
    """Generate chunk drafts for a topic with the configured LLM"""
    console.print(f"[yellow]Generating {count} chunks for '{topic}' (this may take a moment)...[/yellow]")
    try:
        chunks = get_content_generator().generate_chunks(topic, complexity, count)
    except MicrolearnError as e:
        _fail(e)

    console.print(_chunk_table(chunks))

    if output:
        rows = [
            {
                "id": c.id,
                "title": c.title,
                "concept": c.concept,
                "difficulty": c.difficulty.value,
                "estimated_minutes": c.estimated_minutes,
                "prerequisites": ";".join(c.prerequisites),
                "next_chunks": ";".join(c.next_chunks),
                "topic": c.topic,
                "subtopic": c.subtopic or "",
                "tags": ";".join(c.tags),
            }
            for c in chunks
        ]
        pd.DataFrame(rows).to_csv(output, index=False)
        console.print(f"[green]✓[/green] Chunk table written to {output}")


@app.command()
def create_path(
    user_id: str = typer.Option(..., prompt="User ID"),
    topic: str = typer.Option(..., prompt="Topic"),
    file_path: str = typer.Option(..., prompt="Chunk table path (.csv or .xlsx)"),
    available_minutes: int = typer.Option(..., prompt="Available minutes per day"),
    skill_level: ChunkDifficulty = typer.Option(ChunkDifficulty.INTERMEDIATE, help="Learner skill level"),
    learning_style: LearningStyle = typer.Option(LearningStyle.READING, help="Preferred learning style"),
    weak_areas: Optional[str] = typer.Option(None, help="Weak areas (comma-separated)"),
    strong_areas: Optional[str] = typer.Option(None, help="Strong areas (comma-separated)")
):
    """Plan a personalized learning path for a user and topic"""
    try:
        chunks = ChunkImporter.auto_parse(file_path, topic)
        profile = LearnerProfile(
            skill_level=skill_level,
            learning_style=learning_style,
            available_minutes=available_minutes,
            weak_areas=_split_csv(weak_areas),
            strong_areas=_split_csv(strong_areas)
        )
        path = get_service().create_path(user_id, topic, chunks, profile)
    except MicrolearnError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Learning path ready: {len(path.chunk_ids)} chunks")
    console.print(f"  Pace: {path.pace.value}, difficulty: {path.difficulty_preference.value}, "
                  f"session: {path.session_length_minutes} min")
    _print_path(path)


@app.command()
def record_attempt(
    user_id: str = typer.Option(..., prompt="User ID"),
    chunk_id: str = typer.Option(..., prompt="Chunk ID"),
    score: float = typer.Option(..., prompt="Score (0-100)"),
    time_spent: int = typer.Option(..., prompt="Time spent (seconds)"),
    difficulty: str = typer.Option("medium", prompt="How did it feel? (easy/medium/hard)")
):
    """Record an attempt on a chunk and update its review schedule"""
    try:
        result = get_service().record_attempt(user_id, chunk_id, score, time_spent, difficulty)
    except MicrolearnError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Attempt recorded!")
    console.print(f"  Quality: {result.quality}/5")
    console.print(f"  Stage: {result.stage.value}")
    console.print(f"  Next review: {result.state.next_review:%Y-%m-%d %H:%M} UTC (in {result.state.interval_days} days)")
    console.print(f"  Ease factor: {result.state.ease_factor:.2f}")
    console.print(f"  Mastery: {result.mastery_level.value}")


@app.command()
def due(
    user_id: str,
    topic: Optional[str] = typer.Option(None, help="Limit to one topic")
):
    """List chunks due for review, highest priority first"""
    chunk_ids = get_service().due_chunks(user_id, topic)
    if not chunk_ids:
        console.print("[green]Nothing due for review.[/green]")
        return

    console.print(f"\n[yellow]Chunks Due for Review ({len(chunk_ids)}):[/yellow]")
    for position, chunk_id in enumerate(chunk_ids[:20], 1):
        console.print(f"  {position}. {chunk_id}")
    if len(chunk_ids) > 20:
        console.print(f"[dim]... and {len(chunk_ids) - 20} more chunks[/dim]")


@app.command(name="next")
def next_item(user_id: str, topic: str):
    """Show what the learner should do right now"""
    try:
        item = get_service().next_item(user_id, topic)
    except MicrolearnError as e:
        _fail(e)

    if item.mode == QueueMode.CAUGHT_UP:
        console.print("[green]✓[/green] All caught up! Nothing new or due.")
        return

    label = "[yellow]REVIEW[/yellow]" if item.mode == QueueMode.REVIEW else "[cyan]NEW[/cyan]"
    console.print(f"{label} [bold]{item.chunk.title}[/bold] ({item.chunk.id})")
    console.print(f"  Concept: {item.chunk.concept}")
    console.print(f"  Difficulty: {item.chunk.difficulty.value}, ~{item.chunk.estimated_minutes} min")


@app.command()
def view_path(user_id: str, topic: str):
    """View a learning path and its progress"""
    try:
        path = get_service().get_path(user_id, topic)
    except MicrolearnError as e:
        _fail(e)

    console.print(f"\n[bold]Learning Path - {topic}[/bold]")
    console.print(f"  Progress: {len(path.completed_chunks)}/{len(path.chunk_ids)} chunks")
    console.print(f"  Mastered: {len(path.mastered_chunks)}, struggling: {len(path.struggling_chunks)}")
    console.print(f"  Average score: {path.average_score:.1f}")
    console.print(f"  Time spent: {path.total_time_seconds // 60} min")
    _print_path(path)


def _print_path(path):
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Chunk", style="cyan")
    table.add_column("Priority", style="yellow")
    table.add_column("Next Review", style="green")
    table.add_column("Status")

    schedule = {entry.chunk_id: entry for entry in path.review_schedule}
    for position, chunk_id in enumerate(path.chunk_ids, 1):
        entry = schedule.get(chunk_id)
        if chunk_id in path.mastered_chunks:
            status = "mastered"
        elif chunk_id in path.struggling_chunks:
            status = "struggling"
        elif chunk_id in path.completed_chunks:
            status = "seen"
        else:
            status = "-"
        table.add_row(
            str(position),
            chunk_id,
            entry.priority.value if entry else "-",
            f"{entry.next_review:%Y-%m-%d}" if entry and entry.next_review else "-",
            status
        )
    console.print(table)


@app.command()
def analytics(user_id: str):
    """View learning analytics for a user"""
    db = SessionLocal()
    try:
        report = build_user_analytics(db, user_id, utcnow())
    finally:
        db.close()

    console.print(f"\n[bold]Learning Analytics - {user_id}[/bold]\n")
    console.print(f"[cyan]Statistics:[/cyan]")
    console.print(f"  Chunks attempted: {report.chunks_attempted}")
    console.print(f"  Total attempts: {report.total_attempts}")
    console.print(f"  Average score: {report.average_score:.1f}")
    console.print(f"  Time spent: {report.total_time_seconds // 60} min")
    console.print(f"  Reviews due now: {report.due_now}")
    console.print(f"  Reviews in the next 7 days: {report.upcoming_reviews}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Mastery", style="cyan")
    table.add_column("Chunks", justify="right")
    for level, count in report.mastery_distribution.items():
        table.add_row(level.value, str(count))
    console.print(table)

    if report.struggling_concepts:
        console.print(f"\n[yellow]Struggling:[/yellow] {', '.join(report.struggling_concepts)}")
    if report.strong_concepts:
        console.print(f"[green]Strong:[/green] {', '.join(report.strong_concepts)}")


if __name__ == "__main__":
    app()
