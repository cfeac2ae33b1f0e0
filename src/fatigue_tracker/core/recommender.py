"""
Exercise recommendations for a target muscle.

Given the current fatigue of every muscle, the user's baselines and the
catalog, rank the exercises that work a target muscle:

    1. Filter: target engagement >= MIN_ENGAGEMENT_PERCENT, equipment
       available, not on the avoid list.
    2. Bottleneck check: an estimated session (sets × reps × weight) is
       spread over every engaged muscle; any muscle whose projected fatigue
       goes above 100% makes the exercise unsafe.
    3. Score (0-100), from SCORE_WEIGHTS:
         target_match  engagement of the target muscle
         freshness     100 − engagement-weighted fatigue of engaged muscles
         variety       fewer same-category exercises in recent history
         preference    exercise is a favorite
         primary       target is the exercise's highest-engaged muscle
                       (half the points otherwise)

Unsafe exercises score 0 and are returned separately with their warnings.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .config import (
    ESTIMATED_REPS,
    ESTIMATED_SETS,
    ESTIMATED_WEIGHT,
    MIN_ENGAGEMENT_PERCENT,
    RECOMMEND_MAX_RESULTS,
    SCORE_WEIGHTS,
    VARIETY_CATEGORY_LIMIT,
)
from .exercises.base import Exercise
from .exercises.muscles import Muscle
from .fatigue import display_fatigue, fatigue_percent
from .models import (
    BottleneckWarning,
    MuscleBaseline,
    Recommendation,
    RecommendationSet,
    ScoreBreakdown,
)

logger = logging.getLogger(__name__)

ALWAYS_AVAILABLE = frozenset({"bodyweight"})


def _norm(items: Iterable[str]) -> frozenset[str]:
    return frozenset(i.strip().lower() for i in items if i.strip())


@dataclass(frozen=True)
class RecommendOptions:
    """
    Caller preferences for one recommendation request.

    ``available_equipment=None`` means no equipment filter.
    ``recent_exercises=None`` lets the processor fill it from the workout log.
    """

    available_equipment: frozenset[str] | None = None
    favorites: frozenset[str] = frozenset()
    avoid: frozenset[str] = frozenset()
    recent_exercises: tuple[str, ...] | None = None
    estimated_sets: int = ESTIMATED_SETS
    estimated_reps: int = ESTIMATED_REPS
    estimated_weight: float = ESTIMATED_WEIGHT
    max_results: int = RECOMMEND_MAX_RESULTS

    def __post_init__(self) -> None:
        if self.estimated_sets < 1 or self.estimated_reps < 1:
            raise ValueError("estimated sets and reps must be at least 1")
        if not self.estimated_weight > 0:
            raise ValueError(f"estimated weight must be positive, got {self.estimated_weight}")
        if self.max_results < 1:
            raise ValueError("max_results must be at least 1")

    @property
    def estimated_volume(self) -> float:
        return self.estimated_sets * self.estimated_reps * self.estimated_weight


def is_primary_target(exercise: Exercise, target: Muscle) -> bool:
    """True if no other muscle is engaged more than the target."""
    pct = exercise.engagement_for(target)
    return pct > 0 and all(e.percentage <= pct for e in exercise.engagements)


def equipment_available(exercise: Exercise, available: frozenset[str] | None) -> bool:
    if available is None:
        return True
    have = _norm(available) | ALWAYS_AVAILABLE
    return _norm(exercise.equipment) <= have


def eligible_exercises(
    catalog: Iterable[Exercise],
    target: Muscle,
    options: RecommendOptions,
) -> list[Exercise]:
    """Exercises that work the target and pass the equipment/avoid filters."""
    avoid = _norm(options.avoid)
    result: list[Exercise] = []
    for ex in catalog:
        if ex.engagement_for(target) < MIN_ENGAGEMENT_PERCENT:
            continue
        if ex.exercise_id.lower() in avoid:
            continue
        if not equipment_available(ex, options.available_equipment):
            continue
        result.append(ex)
    return result


def find_bottlenecks(
    exercise: Exercise,
    current_fatigue: Mapping[Muscle, float],
    baselines: Mapping[Muscle, MuscleBaseline],
    volume: float,
) -> tuple[BottleneckWarning, ...]:
    """
    Muscles an estimated session of this exercise would push above 100%.

    Raises:
        BaselineMissingError: If an engaged muscle has no usable baseline
    """
    warnings: list[BottleneckWarning] = []
    for e in exercise.engagements:
        if e.percentage <= 0:
            continue
        baseline = baselines.get(e.muscle)
        added = fatigue_percent(
            volume * e.fraction,
            baseline.effective if baseline is not None else None,
            str(e.muscle),
        )
        current = current_fatigue.get(e.muscle, 0.0)
        projected = current + added
        if projected > 100:
            warnings.append(BottleneckWarning(e.muscle, current, projected))
    return tuple(warnings)


def score_exercise(
    exercise: Exercise,
    target: Muscle,
    current_fatigue: Mapping[Muscle, float],
    recent_categories: Mapping[str, int],
    favorites: frozenset[str] = frozenset(),
) -> ScoreBreakdown:
    """Factor points for one exercise; see the module docstring."""
    w = SCORE_WEIGHTS

    weight_sum = sum(e.percentage for e in exercise.engagements)
    if weight_sum > 0:
        avg_fatigue = sum(
            display_fatigue(current_fatigue.get(e.muscle, 0.0)) * e.percentage
            for e in exercise.engagements
        ) / weight_sum
    else:
        avg_fatigue = 0.0

    same_category = recent_categories.get(exercise.category, 0)
    variety = max(0.0, 1 - same_category / VARIETY_CATEGORY_LIMIT)

    return ScoreBreakdown(
        target_match=exercise.engagement_for(target) / 100 * w["target_match"],
        freshness=(100 - avg_fatigue) / 100 * w["freshness"],
        variety=variety * w["variety"],
        preference=w["preference"] if exercise.exercise_id.lower() in _norm(favorites) else 0.0,
        primary=w["primary"] if is_primary_target(exercise, target) else w["primary"] / 2,
    )


def recommend_exercises(
    catalog: Mapping[str, Exercise],
    target: Muscle,
    current_fatigue: Mapping[Muscle, float],
    baselines: Mapping[Muscle, MuscleBaseline],
    options: RecommendOptions | None = None,
) -> RecommendationSet:
    """
    Rank catalog exercises for a target muscle.

    Args:
        catalog: Exercise id → Exercise
        target: Muscle to train
        current_fatigue: Decayed fatigue % per muscle (missing = 0)
        baselines: Baseline per muscle, for the bottleneck check
        options: Filters, favorites, history and the estimated session

    Returns:
        RecommendationSet with safe exercises best-first (at most
        ``options.max_results``) and every unsafe exercise

    Raises:
        BaselineMissingError: If an engaged muscle has no usable baseline
    """
    options = options or RecommendOptions()
    recent_categories = Counter(
        catalog[ex_id].category for ex_id in (options.recent_exercises or ()) if ex_id in catalog
    )

    candidates = eligible_exercises(catalog.values(), target, options)
    scored: list[Recommendation] = []
    for ex in candidates:
        bottlenecks = find_bottlenecks(ex, current_fatigue, baselines, options.estimated_volume)
        factors = score_exercise(ex, target, current_fatigue, recent_categories, options.favorites)
        scored.append(
            Recommendation(
                exercise_id=ex.exercise_id,
                name=ex.name,
                category=ex.category,
                target_engagement=ex.engagement_for(target),
                score=0.0 if bottlenecks else round(factors.total, 1),
                factors=factors,
                bottlenecks=bottlenecks,
            )
        )

    scored.sort(key=lambda r: (-r.score, -r.target_engagement, r.exercise_id))
    safe = [r for r in scored if r.is_safe]
    unsafe = [r for r in scored if not r.is_safe]
    logger.debug(
        "Recommendations for %s: %d eligible, %d safe, %d unsafe",
        target, len(candidates), len(safe), len(unsafe),
    )
    return RecommendationSet(
        target=target,
        safe=tuple(safe[: options.max_results]),
        unsafe=tuple(unsafe),
        total_eligible=len(candidates),
    )
