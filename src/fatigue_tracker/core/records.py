"""
Personal-record detection.

Two headline figures are tracked per exercise and compared independently:

    best_single_set     = max over all sets ever logged of (weight × reps)
    best_session_volume = max over all workouts of Σ set volume for the exercise

Each only moves up, and only on a strictly greater value.  A smoothed
``rolling_average_max`` (highest mean of the last N session best sets) is
kept alongside for trend displays.
"""

import logging
from collections.abc import Iterable, Mapping, MutableMapping

from .config import PB_ROLLING_WINDOW
from .exercises.base import Exercise
from .models import ExerciseVolume, PersonalBest, PersonalRecordEvent, Workout
from .volume import calculate_workout_volume

logger = logging.getLogger(__name__)

BEST_SINGLE_SET: str = "best_single_set"
BEST_SESSION_VOLUME: str = "best_session_volume"
RECORD_FIELDS: tuple[str, ...] = (BEST_SINGLE_SET, BEST_SESSION_VOLUME)


def _update_rolling_average(best: PersonalBest, session_best_set: float, window: int) -> None:
    """Push one session's best set and raise rolling_average_max if the mean beats it."""
    best.recent_session_bests.append(session_best_set)
    del best.recent_session_bests[:-window]
    mean = sum(best.recent_session_bests) / len(best.recent_session_bests)
    if best.rolling_average_max is None or mean > best.rolling_average_max:
        best.rolling_average_max = mean


def detect_personal_records(
    exercise_volumes: Iterable[ExerciseVolume],
    bests: MutableMapping[str, PersonalBest],
    window: int = PB_ROLLING_WINDOW,
) -> list[PersonalRecordEvent]:
    """
    Compare one workout's per-exercise figures against stored personal bests.

    ``bests`` is updated in place.  An exercise with no stored row gets one,
    and both of its fields are reported as first-time records.

    Args:
        exercise_volumes: Per-exercise figures from the volume calculator
        bests: exercise_id → PersonalBest (mutated)
        window: Sessions averaged for rolling_average_max

    Returns:
        One event per improved field, in workout order
    """
    events: list[PersonalRecordEvent] = []

    for ev in exercise_volumes:
        if not ev.set_volumes:
            continue
        candidates = {
            BEST_SINGLE_SET: ev.best_set_volume,
            BEST_SESSION_VOLUME: ev.total_volume,
        }
        current = bests.get(ev.exercise_id)

        if current is None:
            current = PersonalBest(
                best_single_set=candidates[BEST_SINGLE_SET],
                best_session_volume=candidates[BEST_SESSION_VOLUME],
            )
            bests[ev.exercise_id] = current
            for name in RECORD_FIELDS:
                events.append(
                    PersonalRecordEvent(
                        exercise_id=ev.exercise_id,
                        field=name,
                        old_value=None,
                        new_value=candidates[name],
                    )
                )
        else:
            for name in RECORD_FIELDS:
                old = getattr(current, name)
                if candidates[name] > old:
                    setattr(current, name, candidates[name])
                    events.append(
                        PersonalRecordEvent(
                            exercise_id=ev.exercise_id,
                            field=name,
                            old_value=old,
                            new_value=candidates[name],
                        )
                    )

        _update_rolling_average(current, ev.best_set_volume, window)

    for event in events:
        logger.debug(
            "PR %s %s: %s -> %.1f",
            event.exercise_id,
            event.field,
            "first" if event.is_first_time else f"{event.old_value:.1f}",
            event.new_value,
        )
    return events


def rebuild_personal_bests(
    workouts: Iterable[Workout],
    catalog: Mapping[str, Exercise],
    window: int = PB_ROLLING_WINDOW,
) -> dict[str, PersonalBest]:
    """
    Recompute every personal best from workout history (oldest first).

    Corrective operation for when stored bests have drifted from the log.
    """
    bests: dict[str, PersonalBest] = {}
    for workout in sorted(workouts, key=lambda w: w.performed_at):
        volume = calculate_workout_volume(workout, catalog)
        detect_personal_records(volume.exercises, bests, window)
    return bests


def format_record(event: PersonalRecordEvent) -> str:
    """Short human-readable description of one PR event."""
    label = "single set" if event.field == BEST_SINGLE_SET else "session volume"
    if event.is_first_time:
        return f"{event.exercise_id}: first {label} record {event.new_value:.0f}"
    pct = event.percent_increase
    suffix = f" (+{pct:.1f}%)" if pct is not None else ""
    return (
        f"{event.exercise_id}: new {label} best {event.new_value:.0f} "
        f"(was {event.old_value:.0f}){suffix}"
    )
