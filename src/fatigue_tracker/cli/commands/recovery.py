"""Recovery commands: status, recovery, recommend."""

import json
from typing import Annotated, Optional

import typer

from ...core.config import ESTIMATED_REPS, ESTIMATED_SETS, ESTIMATED_WEIGHT, RECOMMEND_MAX_RESULTS
from ...core.exercises.muscles import parse_muscle
from ...core.models import utc_now
from ...core.recommender import RecommendOptions
from ...io.serializers import (
    ValidationError,
    parse_timestamp,
    recommendation_set_to_dict,
    recovery_status_to_dict,
    recovery_timeline_to_dict,
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

AtOption = Annotated[
    Optional[str],
    typer.Option("--at", help="Point in time to evaluate (ISO 8601 or YYYY-MM-DD, default: now)"),
]


def _parse_at(at: str | None):
    if not at:
        return utc_now()
    try:
        return parse_timestamp(at)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


@app.command("status")
def status(
    at: AtOption = None,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show current fatigue and readiness of every muscle.
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)
    when = _parse_at(at)

    try:
        statuses = processor.recovery_overview(user_id, when)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({"muscles": [recovery_status_to_dict(s) for s in statuses]}, indent=2))
        return

    views.print_status(statuses)


@app.command("recovery")
def recovery(
    muscle: Annotated[str, typer.Argument(help="Muscle group, e.g. Pectoralis, Lats, Quads")],
    at: AtOption = None,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the recovery timeline of one muscle: now, +24/48/72h, ready and recovered times.
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)
    when = _parse_at(at)

    try:
        target = parse_muscle(muscle)
        current = processor.muscle_status(user_id, target, when)
        timeline = processor.recovery_timeline(user_id, target, when)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({
            "status": recovery_status_to_dict(current),
            "timeline": recovery_timeline_to_dict(timeline) if timeline is not None else None,
        }, indent=2))
        return

    if timeline is None:
        views.print_no_data(f"No data yet for {target}: never trained, ready now.")
        return
    views.print_timeline(target, timeline, current)


@app.command("recommend")
def recommend(
    muscle: Annotated[str, typer.Argument(help="Muscle group to train, e.g. Pectoralis, Lats")],
    at: AtOption = None,
    equipment: Annotated[
        Optional[list[str]],
        typer.Option("--equipment", "-q", help="Available equipment, repeatable (default: any)"),
    ] = None,
    favorite: Annotated[
        Optional[list[str]],
        typer.Option("--favorite", "-f", help="Favorite exercise id, repeatable"),
    ] = None,
    avoid: Annotated[
        Optional[list[str]],
        typer.Option("--avoid", help="Exercise id to leave out, repeatable"),
    ] = None,
    weight: Annotated[
        float,
        typer.Option("--weight", "-w", help="Estimated working weight for the overload check"),
    ] = ESTIMATED_WEIGHT,
    sets: Annotated[int, typer.Option("--sets", help="Estimated sets")] = ESTIMATED_SETS,
    reps: Annotated[int, typer.Option("--reps", help="Estimated reps per set")] = ESTIMATED_REPS,
    limit: Annotated[int, typer.Option("--limit", "-l", help="Max suggestions")] = RECOMMEND_MAX_RESULTS,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Suggest exercises for a muscle, ranked by fit and current freshness.

    Exercises that would push any engaged muscle past its baseline are
    listed separately as unsafe.

      fatigue-tracker recommend Lats -q Dumbbells -q "Pull-up Bar" -f ex04
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)
    when = _parse_at(at)

    try:
        target = parse_muscle(muscle)
        options = RecommendOptions(
            available_equipment=frozenset(equipment) if equipment else None,
            favorites=frozenset(favorite or ()),
            avoid=frozenset(avoid or ()),
            estimated_sets=sets,
            estimated_reps=reps,
            estimated_weight=weight,
            max_results=limit,
        )
        recs = processor.recommend_exercises(user_id, target, when, options)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps(recommendation_set_to_dict(recs), indent=2))
        return

    views.print_recommendations(recs)
