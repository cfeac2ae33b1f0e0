"""
Baseline learning: ratchet each muscle's learned capacity upward.

The learned baseline is "the most volume this muscle has handled in a single
workout so far".  It only ever increases.  A user override, when present,
takes precedence for fatigue calculations but is never touched here.
"""

from collections.abc import Iterable, Mapping

from .config import DEFAULT_BASELINE, MAX_BASELINE_INCREASE_PERCENT
from .errors import BaselineMissingError
from .exercises.base import Exercise
from .exercises.muscles import ALL_MUSCLES, Muscle
from .models import BaselineUpdate, MuscleBaseline, Workout
from .volume import calculate_workout_volume


def seed_baselines(
    value: float = DEFAULT_BASELINE,
    muscles: Iterable[Muscle] = ALL_MUSCLES,
) -> dict[Muscle, MuscleBaseline]:
    """One baseline row per tracked muscle, all at the seed value."""
    return {m: MuscleBaseline(system_learned_max=value) for m in muscles}


def learn_baselines(
    muscle_volumes: Mapping[Muscle, float],
    baselines: Mapping[Muscle, MuscleBaseline],
) -> list[BaselineUpdate]:
    """
    Apply the ratchet rule to every muscle that received volume.

    ``baselines`` is updated in place: if observed volume is strictly
    greater than ``system_learned_max``, the learned value becomes the
    observed volume.

    Args:
        muscle_volumes: Volume per muscle from one workout
        baselines: Current baselines (mutated)

    Returns:
        One BaselineUpdate per muscle whose learned value went up

    Raises:
        BaselineMissingError: If a muscle with volume has no baseline row
    """
    updates: list[BaselineUpdate] = []
    for muscle in Muscle:
        if muscle not in muscle_volumes:
            continue
        baseline = baselines.get(muscle)
        if baseline is None:
            raise BaselineMissingError(str(muscle))
        observed = muscle_volumes[muscle]
        if observed > baseline.system_learned_max:
            updates.append(
                BaselineUpdate(
                    muscle=muscle,
                    old_value=baseline.system_learned_max,
                    new_value=observed,
                )
            )
            baseline.system_learned_max = observed
    return updates


def validate_baseline_update(
    current: float,
    suggested: float,
    max_increase_percent: float = MAX_BASELINE_INCREASE_PERCENT,
) -> tuple[bool, str]:
    """
    Sanity-check a proposed baseline change.

    Large single-workout jumps are usually data-entry mistakes (an extra zero
    on a weight).  The ratchet still applies them; this check is for callers
    that want to flag them.

    Returns:
        (is_valid, reason)
    """
    if current <= 0:
        return False, "Current baseline must be positive"
    increase = (suggested - current) / current * 100
    if increase <= 0:
        return False, "Suggested baseline must be higher than current baseline"
    if increase > max_increase_percent:
        return False, (
            f"Increase of {increase:.1f}% exceeds maximum allowed "
            f"({max_increase_percent:.0f}%). This might be an error."
        )
    return True, "Baseline update is reasonable"


def summarize_updates(updates: list[BaselineUpdate]) -> str:
    """One-line message describing baseline changes from a workout."""
    if not updates:
        return "No baseline updates needed."
    ranked = sorted(updates, key=lambda u: u.exceedance_percent, reverse=True)
    if len(ranked) == 1:
        u = ranked[0]
        return (
            f"{u.muscle} baseline raised by {u.exceedance_percent:.1f}% "
            f"({u.old_value:.0f} → {u.new_value:.0f})"
        )
    names = ", ".join(str(u.muscle) for u in ranked[:3])
    remaining = len(ranked) - 3
    if remaining > 0:
        return f"Baselines raised for {names} and {remaining} more"
    return f"Baselines raised for {names}"


def rebuild_baselines(
    workouts: Iterable[Workout],
    catalog: Mapping[str, Exercise],
    previous: Mapping[Muscle, MuscleBaseline],
    seed: float = DEFAULT_BASELINE,
) -> dict[Muscle, MuscleBaseline]:
    """
    Recompute learned baselines from full workout history.

    Corrective operation: the learned value becomes the larger of the seed
    and the highest single-workout volume in history.  User overrides are
    carried over unchanged.  Unlike the ratchet, this can lower a learned
    value (e.g. after a mistyped workout was removed), which is why it is
    only run on explicit request.
    """
    rebuilt = seed_baselines(seed)
    for muscle, old in previous.items():
        rebuilt.setdefault(muscle, MuscleBaseline(system_learned_max=seed))
        rebuilt[muscle].user_override = old.user_override

    for workout in workouts:
        volumes = calculate_workout_volume(workout, catalog).muscle_volumes
        learn_baselines(volumes, rebuilt)
    return rebuilt
