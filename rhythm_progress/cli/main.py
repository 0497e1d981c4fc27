"""
Typer CLI for rhythm-progress.

Commands:
    rhythm status                     - Progress summary and next phase
    rhythm lessons                    - Curriculum with completion and lock state
    rhythm record <lesson> -a 0.8     - Record a finished lesson
    rhythm pattern <lesson> <i> --correct
                                      - Record one pattern outcome
    rhythm qualities [--weak]         - Quality mastery, review schedule, trend
    rhythm trend <quality>            - Trend details for one quality
    rhythm recommend [-s strategy] [-n count]
                                      - Next lesson recommendation(s)
    rhythm phases                     - Phase unlock state and stats
    rhythm master <quality>           - Mark a quality as mastered
    rhythm phase <n>                  - Set the current phase
    rhythm export [path]              - Export progress as JSON
    rhythm import <path>              - Import progress from JSON
    rhythm reset [--yes]              - Reset all progress

Usage:
    rhythm --help
    rhythm record lesson-1-kick-snare-skeleton --accuracy 0.8 --results 1,1,0,1
    rhythm recommend --strategy quality-targeted
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table
from rich.text import Text

from rhythm_progress import __version__
from rhythm_progress.analytics.quality import format_quality_name
from rhythm_progress.analytics.trend import TrendDirection
from rhythm_progress.config import get_settings
from rhythm_progress.curriculum.models import CurriculumError
from rhythm_progress.recommend.engine import Strategy
from rhythm_progress.tracker import ProgressTracker

console = Console()

app = typer.Typer(
    name="rhythm",
    help="Rhythm curriculum progress tracker: lesson results, skill mastery, recommendations",
    no_args_is_help=True,
)

_TRUE_TOKENS = {"1", "true", "t", "y", "yes", "correct"}
_FALSE_TOKENS = {"0", "false", "f", "n", "no", "incorrect"}


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


def _get_tracker() -> ProgressTracker:
    """Tracker for the configured store; exits on an unreadable curriculum."""
    try:
        tracker = ProgressTracker.from_settings(get_settings())
    except CurriculumError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    tracker.load()
    if tracker.error:
        rprint(f"[yellow]Warning:[/yellow] {tracker.error} (using a fresh record)")
    return tracker


def _finish(ok: bool, tracker: ProgressTracker, message: str) -> None:
    if not ok:
        rprint(f"[red]Error:[/red] {tracker.error or 'operation failed'}")
        raise typer.Exit(code=1)
    rprint(f"[green][OK][/green] {message}")


def _parse_results(raw: Optional[str]) -> Optional[list[Optional[bool]]]:
    """'1,0,-,1' -> [True, False, None, True]."""
    if raw is None:
        return None
    results: list[Optional[bool]] = []
    for token in (t.strip().lower() for t in raw.split(",")):
        if token in _TRUE_TOKENS:
            results.append(True)
        elif token in _FALSE_TOKENS:
            results.append(False)
        elif token in {"", "-", "none"}:
            results.append(None)
        else:
            raise typer.BadParameter(f"Unrecognized pattern result: {token!r}")
    return results


def _format_progress_bar(score: float, width: int = 10) -> str:
    """Format a progress bar for a 0-100 score."""
    filled = int(score / 100 * width)
    return "#" * filled + "-" * (width - filled)


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


@app.callback()
def main_callback() -> None:
    """Configure logging before any command runs."""
    _configure_logging(get_settings().log_level)


@app.command("status")
def show_status() -> None:
    """Show the progress summary panel."""
    tracker = _get_tracker()
    summary = tracker.summary()
    total = len(tracker.curriculum)
    completion = summary.lessons_completed / total * 100 if total else 0.0

    content = Text()
    content.append("[MASTERY] Overall accuracy: ", style="cyan")
    content.append(f"{_format_progress_bar(summary.overall_accuracy * 100)} {_pct(summary.overall_accuracy)}\n")
    content.append("[LESSONS] Completed: ", style="green")
    content.append(f"{summary.lessons_completed}/{total} ({completion:.0f}%)\n", style="bold")
    content.append(f"[>] Current phase: {summary.current_phase}\n")

    next_phase = tracker.get_next_phase()
    if next_phase is None:
        content.append("[OK] All phases complete\n", style="green")
    else:
        content.append(f"[>] Working phase: {next_phase}\n")

    content.append(f"[QUALITIES] Marked mastered: {summary.qualities_mastered}\n")
    insights = tracker.learning_insights()
    if insights["weak_qualities"]:
        weak = ", ".join(format_quality_name(q) for q, _ in insights["weak_qualities"])
        content.append(f"[!] Weak: {weak}\n", style="yellow")
    content.append(f"[TIME] Practice time: {summary.total_time / 60:.0f} min\n")

    advice = tracker.check_for_break()
    if advice.should_break:
        content.append(f"\n[!] {advice.reason}", style="yellow")

    console.print(Panel(content, title="[bold]Rhythm Progress[/bold]", border_style="blue"))


@app.command("lessons")
def list_lessons() -> None:
    """List the curriculum with completion, accuracy and lock state."""
    tracker = _get_tracker()

    table = Table(title="Curriculum")
    table.add_column("Phase", justify="right")
    table.add_column("#", justify="right")
    table.add_column("Lesson", style="cyan")
    table.add_column("Quality")
    table.add_column("Accuracy", justify="right")
    table.add_column("Status")

    for lesson in tracker.curriculum.sorted_lessons():
        progress = tracker.get_lesson_progress(lesson.id)
        if tracker.is_lesson_completed(lesson.id):
            status = "[green]completed[/green]"
        elif not tracker.is_phase_unlocked(lesson.phase):
            status = "[dim]locked[/dim]"
        elif progress:
            status = "[yellow]in progress[/yellow]"
        else:
            status = ""
        table.add_row(
            str(lesson.phase),
            str(lesson.lesson_number),
            lesson.id,
            lesson.quality or "-",
            _pct(progress.accuracy) if progress else "-",
            status,
        )

    console.print(table)


@app.command("record")
def record_lesson(
    lesson_id: str = typer.Argument(..., help="Lesson identifier"),
    accuracy: float = typer.Option(..., "--accuracy", "-a", min=0.0, max=1.0, help="Lesson accuracy (0-1)"),
    results: Optional[str] = typer.Option(
        None, "--results", "-r", help="Comma-separated pattern outcomes, e.g. 1,0,-,1"
    ),
    time_taken: Optional[float] = typer.Option(None, "--time", "-t", help="Seconds spent"),
    tempo: Optional[float] = typer.Option(None, "--tempo", help="Playback tempo (BPM)"),
) -> None:
    """Record a finished lesson."""
    tracker = _get_tracker()
    if lesson_id not in tracker.curriculum:
        rprint(f"[red]Error:[/red] Unknown lesson: {lesson_id}")
        raise typer.Exit(code=1)

    ok = tracker.record_lesson_completion(
        lesson_id, accuracy, _parse_results(results), time_taken=time_taken, tempo=tempo
    )
    state = "completed" if tracker.is_lesson_completed(lesson_id) else "not yet completed"
    _finish(ok, tracker, f"{lesson_id} recorded at {_pct(accuracy)} ({state})")


@app.command("pattern")
def record_pattern(
    lesson_id: str = typer.Argument(..., help="Lesson identifier"),
    index: int = typer.Argument(..., min=0, help="Pattern index (0-based)"),
    correct: bool = typer.Option(..., "--correct/--incorrect", help="Pattern outcome"),
    time_taken: Optional[float] = typer.Option(None, "--time", "-t", help="Seconds spent"),
) -> None:
    """Record one pattern outcome within a lesson."""
    tracker = _get_tracker()
    if lesson_id not in tracker.curriculum:
        rprint(f"[red]Error:[/red] Unknown lesson: {lesson_id}")
        raise typer.Exit(code=1)

    ok = tracker.record_pattern_result(lesson_id, index, correct, time_taken)
    _finish(ok, tracker, f"{lesson_id} accuracy now {_pct(tracker.get_lesson_accuracy(lesson_id))}")


@app.command("qualities")
def show_qualities(
    weak: bool = typer.Option(False, "--weak", help="Only qualities below the threshold"),
    threshold: float = typer.Option(0.7, "--threshold", help="Weak quality threshold (0-1)"),
) -> None:
    """Show mastery, review schedule and trend per quality."""
    tracker = _get_tracker()
    entries = tracker.weak_qualities(threshold) if weak else tracker.quality_progress()

    if not entries:
        rprint("[dim]No quality data yet.[/dim]" if not weak else "[green]No weak qualities.[/green]")
        return

    table = Table(title="Weak Qualities" if weak else "Quality Progress")
    table.add_column("Quality", style="cyan")
    table.add_column("Accuracy", justify="right")
    table.add_column("Mastery")
    table.add_column("Lessons", justify="right")
    table.add_column("Last practiced")
    table.add_column("Review")
    table.add_column("Trend", justify="center")

    for entry in entries:
        level = entry.mastery_level
        review = (
            "[red]overdue[/red]" if entry.is_overdue else f"every {entry.review_interval_days}d"
        )
        name = format_quality_name(entry.quality)
        if entry.marked_mastered:
            name += " *"
        table.add_row(
            name,
            f"{entry.percent}%",
            f"[{level.color}]{level.display_name}[/{level.color}]",
            str(entry.lesson_count),
            entry.last_practiced_label,
            review,
            entry.trend.direction.arrow,
        )

    console.print(table)


@app.command("trend")
def show_trend(
    quality: str = typer.Argument(..., help="Quality identifier"),
    window: Optional[int] = typer.Option(None, "--window", "-w", min=1, help="Window in days"),
) -> None:
    """Show the accuracy trend of one quality."""
    tracker = _get_tracker()
    trend = tracker.quality_trend(quality, window_days=window)

    rprint(f"[bold]{format_quality_name(quality)}[/bold]")
    rprint(f"  Direction: {trend.direction.arrow} {trend.direction.value}")
    rprint(f"  Snapshots in window: {trend.snapshot_count}")
    if trend.direction is not TrendDirection.INSUFFICIENT_DATA:
        rprint(f"  Slope: {trend.slope:+.4f}/day ({trend.rate:+.3f} per period)")
        rprint(f"  Change: {trend.change_percentage:+.1f} points")
    if trend.latest_accuracy is not None:
        rprint(f"  Oldest -> latest: {_pct(trend.oldest_accuracy)} -> {_pct(trend.latest_accuracy)}")


@app.command("recommend")
def recommend(
    strategy: Optional[str] = typer.Option(
        None,
        "--strategy",
        "-s",
        help="sequential, review, mastery-skip or quality-targeted (single recommendation only)",
    ),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Number of recommendations (mixes all strategies)"
    ),
) -> None:
    """Recommend what to practice next."""
    if strategy and count is not None and count > 1:
        raise typer.BadParameter(
            "--strategy applies to a single recommendation; drop it or use --count 1",
            param_hint="--strategy",
        )
    tracker = _get_tracker()

    if count is None or count == 1:
        rec = tracker.get_recommended_lesson(Strategy.parse(strategy) if strategy else None)
        if rec.lesson_id is None:
            rprint(f"[green]{rec.reason}[/green]")
            return
        rprint(f"[bold cyan]{rec.lesson_id}[/bold cyan]  [dim]({rec.strategy.value})[/dim]")
        rprint(f"  {rec.reason}")
        return

    recs = tracker.get_multiple_recommendations(count)
    if not recs:
        rprint("[green]All lessons completed[/green]")
        return

    table = Table(title="Recommendations")
    table.add_column("Priority", justify="right")
    table.add_column("Lesson", style="cyan")
    table.add_column("Strategy")
    table.add_column("Reason")
    for rec in recs:
        table.add_row(str(rec.priority), rec.lesson_id or "-", rec.strategy.value, rec.reason)
    console.print(table)


@app.command("phases")
def show_phases() -> None:
    """Show phase unlock state and statistics."""
    tracker = _get_tracker()

    table = Table(title="Phases")
    table.add_column("Phase", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Unlocked")
    table.add_column("Completed", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Unlock condition", style="dim")

    for number in tracker.curriculum.phase_numbers:
        phase = tracker.curriculum.phase(number)
        stats = tracker.phase_stats(number)
        unlocked = "[green]yes[/green]" if tracker.is_phase_unlocked(number) else "[red]no[/red]"
        table.add_row(
            str(number),
            phase.title,
            unlocked,
            f"{stats['completed']}/{stats['total']}",
            _pct(stats["accuracy"]),
            phase.unlock_condition,
        )

    console.print(table)


@app.command("master")
def master_quality(quality: str = typer.Argument(..., help="Quality identifier")) -> None:
    """Mark a quality as mastered."""
    tracker = _get_tracker()
    _finish(tracker.mark_quality_mastered(quality), tracker, f"{quality} marked as mastered")


@app.command("phase")
def set_phase(phase_number: int = typer.Argument(..., min=1, help="Phase number")) -> None:
    """Set the learner's current phase."""
    tracker = _get_tracker()
    _finish(tracker.update_current_phase(phase_number), tracker, f"Current phase set to {phase_number}")


@app.command("export")
def export_progress(
    path: Optional[Path] = typer.Argument(None, help="Output file (stdout when omitted)"),
) -> None:
    """Export progress as JSON."""
    tracker = _get_tracker()
    payload = json.dumps(tracker.export_progress(), indent=2)
    if path is None:
        typer.echo(payload)
        return
    path.write_text(payload, encoding="utf-8")
    rprint(f"[green][OK][/green] Progress exported to {path}")


@app.command("import")
def import_progress(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON backup")) -> None:
    """Import progress from a JSON backup (replaces current progress)."""
    tracker = _get_tracker()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        rprint(f"[red]Error:[/red] Cannot read {path}: {e}")
        raise typer.Exit(code=1)

    result = tracker.import_progress(data)
    if not result.success:
        rprint(f"[red]Import rejected[/red] ({result.failed} problem(s)):")
        for error in result.errors:
            rprint(f"  - {error}")
        raise typer.Exit(code=1)
    rprint(f"[green][OK][/green] Progress imported from {path}")


@app.command("reset")
def reset_progress(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")) -> None:
    """Reset all progress."""
    if not yes and not Confirm.ask("Reset ALL progress?", default=False):
        rprint("[dim]Cancelled.[/dim]")
        return
    tracker = _get_tracker()
    _finish(tracker.reset_progress(), tracker, "Progress reset")


@app.command("version")
def show_version() -> None:
    """Show version information."""
    rprint(f"[bold]rhythm-progress[/bold] v{__version__}")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
