"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of fatigue, recovery and record data.
"""

from datetime import datetime

from rich.console import Console
from rich.table import Table

from ..core.exercises.base import Exercise
from ..core.exercises.muscles import Muscle
from ..core.models import (
    MuscleBaseline,
    MuscleForecast,
    PersonalBest,
    ReadinessStatus,
    RecommendationSet,
    RecoveryStatus,
    RecoveryTimeline,
    WorkoutReport,
)
from ..core.records import format_record

console = Console()
err_console = Console(stderr=True)

STATUS_STYLES: dict[ReadinessStatus, str] = {
    ReadinessStatus.READY: "green",
    ReadinessStatus.CAUTION: "yellow",
    ReadinessStatus.DONT_TRAIN: "red",
}


def _status_cell(status: ReadinessStatus) -> str:
    style = STATUS_STYLES[status]
    return f"[{style}]{status.label}[/{style}]"


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def _when(ts: datetime | None) -> str:
    if ts is None:
        return "-"
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


def _days(value: float) -> str:
    if value <= 0:
        return "now"
    hours = value * 24
    if hours < 48:
        return f"{hours:.0f}h"
    return f"{value:.1f}d"


def format_report_table(report: WorkoutReport) -> Table:
    """
    Create a Rich table of per-muscle fatigue for one processed workout.

    Args:
        report: Processed workout report

    Returns:
        Rich Table object
    """
    table = Table(title=f"Workout {report.workout_id}")

    table.add_column("Muscle", style="cyan")
    table.add_column("Volume", justify="right")
    table.add_column("Baseline", justify="right", style="dim")
    table.add_column("Fatigue", justify="right", style="bold")
    table.add_column("Status")

    for m in report.muscles:
        fatigue = _pct(m.display_fatigue)
        if m.exceeds_baseline:
            fatigue += f" [red](+{m.exceedance:.1f})[/red]"
        table.add_row(
            str(m.muscle),
            f"{m.volume:,.0f}",
            f"{m.baseline:,.0f}",
            fatigue,
            _status_cell(m.status),
        )

    return table


def print_report(report: WorkoutReport) -> None:
    """Print everything a processed workout produced."""
    if report.already_processed:
        print_info(f"Workout {report.workout_id} was already processed; state unchanged.")
    console.print(format_report_table(report))

    for u in report.baseline_updates:
        console.print(
            f"[magenta]Baseline ↑[/magenta] {u.muscle}: "
            f"{u.old_value:,.0f} → {u.new_value:,.0f} (+{u.exceedance_percent:.1f}%)"
        )
    for event in report.personal_records:
        console.print(f"[bold green]PR[/bold green] {format_record(event)}")
    for w in report.warnings:
        print_warning(w)


def format_status_table(statuses: list[RecoveryStatus]) -> Table:
    """Create a Rich table of current fatigue for every muscle."""
    at = statuses[0].at if statuses else None
    title = "Recovery status" + (f" at {_when(at)}" if at else "")
    table = Table(title=title)

    table.add_column("Muscle", style="cyan")
    table.add_column("Fatigue", justify="right", style="bold")
    table.add_column("Status")
    table.add_column("Ready in", justify="right")
    table.add_column("Last trained", style="dim")

    for s in statuses:
        if s.last_trained is None:
            table.add_row(str(s.muscle), "-", "[dim]no data yet[/dim]", "-", "-")
            continue
        table.add_row(
            str(s.muscle),
            _pct(s.display_fatigue),
            _status_cell(s.status),
            _days(s.days_until_ready),
            _when(s.last_trained),
        )
    return table


def print_status(statuses: list[RecoveryStatus]) -> None:
    if all(s.last_trained is None for s in statuses):
        print_no_data("No workouts logged yet. Every muscle is fresh.")
        return
    console.print(format_status_table(statuses))


def print_timeline(muscle: Muscle, timeline: RecoveryTimeline, status: RecoveryStatus) -> None:
    """Print current fatigue, projections and ready/recovered times for one muscle."""
    console.print(f"[bold cyan]{muscle}[/bold cyan] recovery")
    console.print(
        f"  Now: [bold]{_pct(status.display_fatigue)}[/bold] {_status_cell(status.status)}"
        f"  (was {_pct(timeline.initial_fatigue)} at {_when(timeline.started_at)})"
    )

    table = Table(title="Projection after training")
    table.add_column("After", justify="right")
    table.add_column("Fatigue", justify="right", style="bold")
    table.add_column("Status")
    for p in timeline.projections:
        table.add_row(f"{p.hours_after:.0f}h", _pct(min(100.0, p.fatigue)), _status_cell(p.status))
    console.print(table)

    console.print(f"  Ready at:     {_when(timeline.ready_at)}")
    console.print(f"  Recovered at: {_when(timeline.recovered_at)}")


def format_forecast_table(forecasts: list[MuscleForecast]) -> Table:
    table = Table(title="Workout forecast")

    table.add_column("Muscle", style="cyan")
    table.add_column("Now", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Added", justify="right")
    table.add_column("After", justify="right", style="bold")
    table.add_column("Status")

    for f in forecasts:
        table.add_row(
            str(f.muscle),
            _pct(f.current_fatigue),
            f"{f.planned_volume:,.0f}",
            _pct(f.planned_fatigue),
            _pct(min(100.0, f.projected_fatigue)),
            _status_cell(f.status),
        )
    return table


def format_baselines_table(baselines: dict[Muscle, MuscleBaseline]) -> Table:
    table = Table(title="Muscle baselines")

    table.add_column("Muscle", style="cyan")
    table.add_column("Learned", justify="right")
    table.add_column("Override", justify="right", style="magenta")
    table.add_column("Effective", justify="right", style="bold")

    for muscle in Muscle:
        b = baselines.get(muscle)
        if b is None:
            table.add_row(str(muscle), "-", "-", "[red]missing[/red]")
            continue
        table.add_row(
            str(muscle),
            f"{b.system_learned_max:,.0f}",
            f"{b.user_override:,.0f}" if b.is_overridden else "-",
            f"{b.effective:,.0f}",
        )
    return table


def format_records_table(bests: dict[str, PersonalBest], names: dict[str, str]) -> Table:
    table = Table(title="Personal bests")

    table.add_column("ID", style="dim")
    table.add_column("Exercise", style="cyan")
    table.add_column("Best set", justify="right", style="bold")
    table.add_column("Best session", justify="right", style="bold")
    table.add_column("Rolling avg", justify="right")

    for ex_id in sorted(bests):
        pb = bests[ex_id]
        table.add_row(
            ex_id,
            names.get(ex_id, ex_id),
            f"{pb.best_single_set:,.0f}",
            f"{pb.best_session_volume:,.0f}",
            f"{pb.rolling_average_max:,.0f}" if pb.rolling_average_max is not None else "-",
        )
    return table


def format_exercises_table(exercises: list[Exercise]) -> Table:
    table = Table(title="Exercise catalog")

    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Muscles")

    for ex in exercises:
        muscles = ", ".join(f"{e.muscle} {e.percentage:.0f}%" for e in ex.engagements)
        table.add_row(ex.exercise_id, ex.name, ex.category, muscles)
    return table


def format_recommendations_table(recs: RecommendationSet) -> Table:
    table = Table(title=f"Exercises for {recs.target}")

    table.add_column("ID", style="dim")
    table.add_column("Exercise", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Target", justify="right")
    table.add_column("Score", justify="right", style="bold")

    for r in recs.safe:
        table.add_row(
            r.exercise_id, r.name, r.category, f"{r.target_engagement:.0f}%", f"{r.score:.1f}"
        )
    return table


def print_recommendations(recs: RecommendationSet) -> None:
    if recs.safe:
        console.print(format_recommendations_table(recs))
    else:
        print_no_data(f"No safe exercises for {recs.target} right now.")
    for r in recs.unsafe:
        for b in r.bottlenecks:
            print_warning(f"{r.name}: {b.message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_calculation_failed(message: str) -> None:
    """Print a data/calculation problem (needs an integrity fix)."""
    console.print(f"[red]Calculation failed: {message}[/red]")


def print_no_data(message: str) -> None:
    """Print a 'no data yet' notice (a normal state, not an error)."""
    console.print(f"[yellow]{message}[/yellow]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
