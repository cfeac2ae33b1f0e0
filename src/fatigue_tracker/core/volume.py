"""
Volume calculator: logged sets → per-exercise and per-muscle training volume.

    set volume      = weight × reps
    exercise volume = Σ set volume
    muscle volume   = Σ over exercises, sets of (set volume × engagement% / 100)

An exercise contributes to every muscle it engages independently, and
contributions add up across exercises and sets.
"""

from collections.abc import Mapping

from .errors import UnknownExerciseError
from .exercises.base import Exercise
from .exercises.muscles import Muscle
from .models import ExerciseVolume, LoggedSet, Workout, WorkoutVolume


def set_volume(logged_set: LoggedSet) -> float:
    """weight × reps for one set."""
    return logged_set.weight * logged_set.reps


def distribute_volume(volume: float, exercise: Exercise) -> dict[Muscle, float]:
    """
    Split an amount of exercise volume across the muscles it engages.

    Args:
        volume: Volume performed (one set or an exercise total)
        exercise: Catalog entry with engagement percentages

    Returns:
        {muscle: volume × percentage / 100}
    """
    return {e.muscle: volume * e.fraction for e in exercise.engagements}


def _resolve_exercises(workout: Workout, catalog: Mapping[str, Exercise]) -> list[Exercise]:
    """Look up every logged exercise before any volume is accumulated."""
    resolved: list[Exercise] = []
    for logged in workout.exercises:
        exercise = catalog.get(logged.exercise_id)
        if exercise is None:
            raise UnknownExerciseError(logged.exercise_id)
        resolved.append(exercise)
    return resolved


def calculate_workout_volume(workout: Workout, catalog: Mapping[str, Exercise]) -> WorkoutVolume:
    """
    Compute per-muscle and per-exercise volume for one workout.

    Sets are validated when they are constructed (LoggedSet rejects negative
    and non-finite values), so by the time a Workout exists its sets are
    sound.  Every exercise id is resolved up front: a single unknown id fails
    the whole workout instead of being skipped.

    The same exercise logged twice in one workout is reported once, with its
    sets concatenated in logged order.

    Args:
        workout: The workout to evaluate
        catalog: Exercise id → Exercise

    Returns:
        WorkoutVolume with muscle volumes and per-exercise figures

    Raises:
        UnknownExerciseError: If any exercise id is not in the catalog
    """
    resolved = _resolve_exercises(workout, catalog)

    muscle_volumes: dict[Muscle, float] = {}
    set_volumes_by_exercise: dict[str, list[float]] = {}

    for logged, exercise in zip(workout.exercises, resolved):
        volumes = set_volumes_by_exercise.setdefault(logged.exercise_id, [])
        for logged_set in logged.sets:
            v = set_volume(logged_set)
            volumes.append(v)
            for muscle, share in distribute_volume(v, exercise).items():
                muscle_volumes[muscle] = muscle_volumes.get(muscle, 0.0) + share

    exercises = tuple(
        ExerciseVolume(exercise_id=ex_id, set_volumes=tuple(vols))
        for ex_id, vols in set_volumes_by_exercise.items()
    )
    return WorkoutVolume(muscle_volumes=muscle_volumes, exercises=exercises)


def muscle_volumes_by_exercise_total(
    workout: Workout,
    catalog: Mapping[str, Exercise],
) -> dict[Muscle, float]:
    """
    Same muscle totals, distributing each exercise's total instead of each set.

    Distribution is linear, so this must agree with calculate_workout_volume
    up to float rounding.
    """
    resolved = _resolve_exercises(workout, catalog)
    totals: dict[Muscle, float] = {}
    for logged, exercise in zip(workout.exercises, resolved):
        for muscle, share in distribute_volume(logged.volume, exercise).items():
            totals[muscle] = totals.get(muscle, 0.0) + share
    return totals
