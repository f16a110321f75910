import typer
from rich.console import Console
from rich.table import Table
from rich.markup import escape
from loguru import logger
from pydantic import TypeAdapter, ValidationError
from typing import List, Optional
from datetime import datetime, timezone
from pathlib import Path
import json
import sys

from capsule_engine.config import settings
from capsule_engine.models import Capsule, GamificationStats, StudyAction
from capsule_engine.planning import generate_study_plan
from capsule_engine.progression import get_engine
from capsule_engine.schemas import StageStatus
from capsule_engine.srs import get_scheduler, now_ms

app = typer.Typer(help="Capsule Engine CLI - inspect review schedules and study progression")
console = Console()

STATUS_STYLES = {
    StageStatus.COMPLETED: "blue",
    StageStatus.DUE: "bold yellow",
    StageStatus.UPCOMING: "dim",
}


@app.callback()
def main():
    """Configure logging for every command"""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format="<level>{message}</level>")


def _fail(message: str):
    console.print(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(code=1)


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        _fail(f"File not found: {path}")
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _load_capsules(path: Path) -> List[Capsule]:
    """Read a capsule export: a list of capsules or an object with a 'capsules' list"""
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("capsules", [])
    try:
        return TypeAdapter(List[Capsule]).validate_python(data)
    except ValidationError as e:
        _fail(f"Invalid capsule data: {e}")


def _format_date(timestamp_ms: int) -> str:
    if timestamp_ms == 0:
        return "-"
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


@app.command()
def due(capsules_file: Path):
    """List capsules with due flag, retention and mastery"""
    capsules = _load_capsules(capsules_file)
    scheduler = get_scheduler()
    now = now_ms()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Capsule", style="cyan")
    table.add_column("Stage", justify="right")
    table.add_column("Due", style="yellow")
    table.add_column("Retention", justify="right")
    table.add_column("Mastery", justify="right")
    table.add_column("Next Review", style="green")
    table.add_column("Overdue", style="red", justify="right")

    for capsule in sorted(capsules, key=lambda c: not scheduler.is_due(c, now)):
        is_due = scheduler.is_due(capsule, now)
        table.add_row(
            capsule.title or capsule.id,
            str(capsule.review_stage),
            "yes" if is_due else "no",
            f"{scheduler.retention(capsule, now)}%",
            str(scheduler.mastery(capsule)),
            _format_date(scheduler.next_review_at(capsule)),
            str(scheduler.days_overdue(capsule, now)) if is_due else "",
        )

    console.print(table)


@app.command()
def schedule(capsules_file: Path, capsule_id: str):
    """Show the review timeline of one capsule"""
    capsules = _load_capsules(capsules_file)
    capsule = next((c for c in capsules if c.id == capsule_id), None)
    if capsule is None:
        _fail(f"Capsule {capsule_id} not found")

    timeline = get_scheduler().schedule(capsule)
    if not timeline:
        console.print("[yellow]No stages to show[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Stage", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Review Date")
    table.add_column("Status")

    for item in timeline:
        style = STATUS_STYLES[item.status]
        table.add_row(
            str(item.stage),
            f"{item.interval_days} d",
            _format_date(item.review_date),
            f"[{style}]{item.status.value}[/{style}]",
        )

    console.print(table)


@app.command()
def report(capsules_file: Path):
    """Show global performance over a capsule export"""
    capsules = _load_capsules(capsules_file)
    scheduler = get_scheduler()
    now = now_ms()
    performance = scheduler.analyze_global_performance(capsules, now)
    breakdown = scheduler.status_breakdown(capsules, now)

    console.print(f"\n[bold]Learning Progress[/bold] ({breakdown.total} capsules)\n")
    console.print(f"[cyan]Statistics:[/cyan]")
    console.print(f"  Global mastery: {performance.global_mastery}/100")
    console.print(f"  Average retention: {performance.retention_average}%")
    console.print(f"  Due for review: {performance.due_count} ({breakdown.due.percent:.0f}%)")
    console.print(f"  Overdue: {performance.overdue_count}")
    console.print(f"  Upcoming: {performance.upcoming_count}")
    console.print(f"  In progress: {breakdown.in_progress.count}")

    queue = scheduler.review_queue(capsules, now)
    if queue:
        console.print(f"\n[yellow]Review Queue:[/yellow]")
        for capsule in queue[:10]:
            console.print(f"  - {capsule.title or capsule.id} (stage {capsule.review_stage})")
        if len(queue) > 10:
            console.print(f"[dim]... and {len(queue) - 10} more capsules[/dim]")


@app.command()
def award(
    stats_file: Path,
    action: str = typer.Argument(..., help="create, quiz, flashcard, join_group or challenge"),
    capsules: int = typer.Option(0, help="Total capsule count after the action"),
    score: Optional[int] = typer.Option(None, help="Quiz score 0-100"),
):
    """Apply a study action to a gamification snapshot and print the new state"""
    data = _read_json(stats_file)
    try:
        stats = GamificationStats.model_validate(data)
        study_action = StudyAction(action)
    except ValidationError as e:
        _fail(f"Invalid gamification data: {e}")
    except ValueError:
        _fail(f"Unknown action '{action}'. Use one of: {', '.join(a.value for a in StudyAction)}")

    engine = get_engine()
    result = engine.process_action(stats, study_action, capsules, score)

    if result.level_up:
        console.print(f"[green]✓[/green] Level up! Now level {result.stats.level}")
    for badge in result.new_badges:
        console.print(f"[green]✓[/green] Badge unlocked: {badge.name} - {badge.description}")
    console.print(
        f"  XP: {result.stats.xp} (level {result.stats.level}, "
        f"{engine.level_progress(result.stats.xp):.0f}% to next)"
    )
    console.print(f"  Streak: {result.stats.current_streak} days")

    typer.echo(result.stats.model_dump_json(by_alias=True, indent=2))


@app.command()
def plan(
    capsules_file: Path,
    exam_date: str = typer.Option(..., help="Exam date (YYYY-MM-DD)"),
    minutes: int = typer.Option(60, help="Study minutes available per day"),
    name: str = typer.Option("Exam plan", help="Plan name"),
):
    """Generate a study plan up to an exam date"""
    capsules = _load_capsules(capsules_file)
    try:
        exam_day = datetime.strptime(exam_date, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        study_plan = generate_study_plan(name, capsules, int(exam_day.timestamp() * 1000), minutes)
    except ValueError as e:
        _fail(str(e))

    titles = {c.id: c.title or c.id for c in capsules}

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Date", style="cyan", width=12)
    table.add_column("Capsules", style="yellow")
    table.add_column("Duration", style="blue", justify="right")

    for session in study_plan.schedule:
        if session.is_rest_day:
            table.add_row(session.date, "[dim]rest[/dim]", "")
            continue
        table.add_row(
            session.date,
            "\n".join(titles[t.capsule_id] for t in session.tasks),
            f"{session.total_minutes} min",
        )

    console.print(f"\n[bold]{study_plan.name}[/bold]")
    console.print(table)


if __name__ == "__main__":
    app()
