"""Workout commands: log-workout, forecast, exercises."""

import json
import uuid
from typing import Annotated, Optional

import typer

from ...core.models import LoggedExercise, Workout, utc_now
from ...io.serializers import (
    ValidationError,
    forecast_to_dict,
    parse_exercise_spec,
    parse_timestamp,
    workout_report_to_dict,
)
from .. import views
from ..app import (
    DEFAULT_USER,
    ENGINE_ERRORS,
    DataDirOption,
    JsonOption,
    UserOption,
    app,
    fail,
    get_processor,
    require_user,
)

ExerciseSpecOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--exercise",
        "-e",
        help="ID:SETS, repeatable. Sets are REPS@WEIGHT, '3x' repeats, '!' = to failure. "
        "e.g. ex02:3x10@105,10@90!",
    ),
]


def _parse_exercises(specs: list[str] | None) -> list[LoggedExercise]:
    if not specs:
        views.print_error("At least one --exercise is required.")
        raise typer.Exit(1)
    try:
        return [parse_exercise_spec(s) for s in specs]
    except (ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)


@app.command("log-workout")
def log_workout(
    exercise: ExerciseSpecOption = None,
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="When it was performed (ISO 8601 or YYYY-MM-DD, default: now)"),
    ] = None,
    workout_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Workout id (default: generated). Re-using an id is a no-op."),
    ] = None,
    notes: Annotated[
        Optional[str],
        typer.Option("--notes", "-n", help="Workout notes"),
    ] = None,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Log a completed workout and update fatigue, baselines and personal bests.

      fatigue-tracker log-workout -e ex02:3x10@105,3x10@90 -e ex04:8@180,8@180!
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)

    logged = _parse_exercises(exercise)
    try:
        performed_at = parse_timestamp(date) if date else utc_now()
        workout = Workout(
            workout_id=workout_id or uuid.uuid4().hex[:12],
            performed_at=performed_at,
            exercises=tuple(logged),
            notes=notes,
        )
        report = processor.complete_workout(user_id, workout)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps(workout_report_to_dict(report), indent=2))
        return

    views.print_report(report)
    if not report.already_processed:
        views.print_success(
            f"Logged workout {report.workout_id} "
            f"({workout.set_count} sets, {workout.total_volume:,.0f} total volume)"
        )


@app.command("forecast")
def forecast(
    exercise: ExerciseSpecOption = None,
    at: Annotated[
        Optional[str],
        typer.Option("--at", help="Planned time (ISO 8601, default: now)"),
    ] = None,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the fatigue a planned workout would cause, without saving anything.
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)

    logged = _parse_exercises(exercise)
    try:
        when = parse_timestamp(at) if at else utc_now()
        planned = Workout(workout_id="forecast", performed_at=when, exercises=tuple(logged))
        forecasts = processor.forecast_workout(user_id, planned, when)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({"muscles": [forecast_to_dict(f) for f in forecasts]}, indent=2))
        return

    views.console.print(views.format_forecast_table(forecasts))
    for f in forecasts:
        if f.exceeds_baseline:
            views.print_warning(f"{f.muscle}: planned volume is above the current baseline")


@app.command("exercises")
def exercises(
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List the exercise catalog with muscle engagement percentages.
    """
    processor = get_processor(data_dir)
    catalog = list(processor.catalog.values())

    if json_out:
        print(json.dumps(
            [
                {
                    "id": ex.exercise_id,
                    "name": ex.name,
                    "category": ex.category,
                    "muscles": {str(e.muscle): e.percentage for e in ex.engagements},
                }
                for ex in catalog
            ],
            indent=2,
        ))
        return

    views.console.print(views.format_exercises_table(catalog))
