"""Profile commands: init, baselines, set-baseline, records, rebuild."""

import json
from typing import Annotated, Optional

import typer

from ...core.exercises.muscles import Muscle, parse_muscle
from ...io.serializers import baseline_to_dict, personal_best_to_dict
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


@app.command()
def init(
    experience: Annotated[
        str,
        typer.Option(
            "--experience",
            "-x",
            help="Seeds every muscle baseline: Beginner | Intermediate | Advanced",
        ),
    ] = "Intermediate",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Re-seed existing state (workout log is kept)"),
    ] = False,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Create a user and seed baselines for all tracked muscles.
    """
    processor = get_processor(data_dir)
    existed = processor.store.exists(user_id)

    try:
        ledger = processor.init_user(user_id, experience, overwrite=force)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({
            "user_id": ledger.user_id,
            "experience": ledger.experience,
            "created": force or not existed,
            "data_dir": str(processor.store.user_dir(user_id)),
        }, indent=2))
        return

    if existed and not force:
        views.print_warning(f"User '{user_id}' already initialized. Use --force to re-seed.")
        return
    seed = processor.config.baseline_for_experience(experience)
    views.print_success(
        f"Initialized user '{user_id}' ({experience}, baselines {seed:,.0f}) "
        f"in {processor.store.user_dir(user_id)}"
    )


@app.command("baselines")
def baselines(
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show learned and overridden baselines for every muscle.
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)
    try:
        current = processor.baselines(user_id)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps(
            {str(m): {**baseline_to_dict(b), "effective": b.effective} for m, b in current.items()},
            indent=2,
        ))
        return

    views.console.print(views.format_baselines_table(current))


@app.command("set-baseline")
def set_baseline(
    muscle: Annotated[str, typer.Argument(help="Muscle group, e.g. Pectoralis")],
    value: Annotated[
        Optional[float],
        typer.Argument(help="Override value (volume treated as 100% fatigue)"),
    ] = None,
    clear: Annotated[
        bool,
        typer.Option("--clear", help="Remove the override and use the learned value"),
    ] = False,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Override a muscle's baseline, or clear the override with --clear.
    """
    if clear == (value is not None):
        views.print_error("Give either a VALUE or --clear.")
        raise typer.Exit(1)

    processor = get_processor(data_dir)
    require_user(processor, user_id)
    try:
        target: Muscle = parse_muscle(muscle)
        updated = processor.set_baseline_override(user_id, target, None if clear else value)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({str(target): {**baseline_to_dict(updated), "effective": updated.effective}}, indent=2))
        return

    if clear:
        views.print_success(
            f"Cleared {target} override; using learned {updated.system_learned_max:,.0f}"
        )
    else:
        views.print_success(f"{target} baseline override set to {updated.user_override:,.0f}")


@app.command("records")
def records(
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show personal bests per exercise.
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)
    try:
        bests = processor.personal_bests(user_id)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({ex_id: personal_best_to_dict(pb) for ex_id, pb in bests.items()}, indent=2))
        return

    if not bests:
        views.print_no_data("No personal bests yet. Log a workout first.")
        return
    names = {ex_id: ex.name for ex_id, ex in processor.catalog.items()}
    views.console.print(views.format_records_table(bests, names))


@app.command("rebuild")
def rebuild(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation"),
    ] = False,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Recalculate learned baselines and personal bests from the workout log.

    Learned baselines can go down if the log no longer supports them.
    Overrides are kept.
    """
    processor = get_processor(data_dir)
    require_user(processor, user_id)

    if not force and not json_out and not views.confirm_action(
        "Recalculate baselines and personal bests from history?"
    ):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        ledger = processor.rebuild(user_id)
    except ENGINE_ERRORS as e:
        fail(e)

    if json_out:
        print(json.dumps({
            "workouts": len(ledger.processed_workout_ids),
            "baselines": {str(m): baseline_to_dict(b) for m, b in ledger.baselines.items()},
            "personal_bests": {
                ex_id: personal_best_to_dict(pb) for ex_id, pb in ledger.personal_bests.items()
            },
        }, indent=2))
        return

    views.print_success(
        f"Rebuilt from {len(ledger.processed_workout_ids)} workouts "
        f"({len(ledger.personal_bests)} exercises with personal bests)"
    )
    views.console.print(views.format_baselines_table(ledger.baselines))
