"""
Data models for fatigue-tracker.

All core dataclasses representing logged training data, per-muscle state,
baselines, personal bests, and the plain-data results the engine returns.
Timestamps are timezone-aware ``datetime`` objects; naive values are taken
to be UTC.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .errors import InvalidSetError, InvalidWorkoutError
from .exercises.muscles import Muscle


def as_utc(ts: datetime) -> datetime:
    """Return ts as an aware UTC datetime (naive values are assumed UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadinessStatus(str, Enum):
    """Three-tier training readiness."""

    READY = "ready"
    CAUTION = "caution"
    DONT_TRAIN = "dont_train"

    @property
    def label(self) -> str:
        return {"ready": "Ready", "caution": "Caution", "dont_train": "Don't Train"}[self.value]


# ---------------------------------------------------------------------------
# Logged training data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggedSet:
    """A single performed set."""

    weight: float
    reps: float
    to_failure: bool = False

    def __post_init__(self) -> None:
        """Validate set data."""
        for name in ("weight", "reps"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidSetError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidSetError(f"{name} must be finite, got {value}")
            if value < 0:
                raise InvalidSetError(f"{name} must be non-negative, got {value}")
        if not math.isfinite(self.weight * self.reps):
            raise InvalidSetError(
                f"set volume overflows: {self.weight} x {self.reps} is not a finite number"
            )

    @property
    def volume(self) -> float:
        """weight × reps"""
        return self.weight * self.reps


@dataclass(frozen=True)
class LoggedExercise:
    """One exercise within a workout, with its sets in logged order."""

    exercise_id: str
    sets: tuple[LoggedSet, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.exercise_id, str) or not self.exercise_id.strip():
            raise InvalidWorkoutError("exercise_id must be a non-empty string")
        # Accept lists from callers; store as a tuple.
        object.__setattr__(self, "sets", tuple(self.sets))

    @property
    def volume(self) -> float:
        """Σ set volume"""
        return sum(s.volume for s in self.sets)


@dataclass(frozen=True)
class Workout:
    """
    A completed workout.

    Created once and never edited; ``workout_id`` is the idempotency key for
    processing.
    """

    workout_id: str
    performed_at: datetime
    exercises: tuple[LoggedExercise, ...] = ()
    notes: str | None = None

    def __post_init__(self) -> None:
        """Validate workout data."""
        if not isinstance(self.workout_id, str) or not self.workout_id.strip():
            raise InvalidWorkoutError("workout_id must be a non-empty string")
        if not isinstance(self.performed_at, datetime):
            raise InvalidWorkoutError(f"performed_at must be a datetime, got {self.performed_at!r}")
        object.__setattr__(self, "performed_at", as_utc(self.performed_at))
        object.__setattr__(self, "exercises", tuple(self.exercises))
        if not self.exercises:
            raise InvalidWorkoutError(f"Workout {self.workout_id} has no exercises")
        if not math.isfinite(sum(e.volume for e in self.exercises)):
            raise InvalidSetError(f"Workout {self.workout_id} volume is not a finite number")

    @property
    def total_volume(self) -> float:
        return sum(e.volume for e in self.exercises)

    @property
    def set_count(self) -> int:
        return sum(len(e.sets) for e in self.exercises)


# ---------------------------------------------------------------------------
# Long-lived per-user state
# ---------------------------------------------------------------------------


@dataclass
class MuscleBaseline:
    """
    Capacity reference ("100% fatigue") for one muscle.

    ``system_learned_max`` only ever moves up (Baseline Learner);
    ``user_override`` changes only through an explicit user edit.
    """

    system_learned_max: float
    user_override: float | None = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.system_learned_max) or self.system_learned_max <= 0:
            raise ValueError("system_learned_max must be a positive number")
        if self.user_override is not None and (
            not math.isfinite(self.user_override) or self.user_override <= 0
        ):
            raise ValueError("user_override must be a positive number")

    @property
    def effective(self) -> float:
        """user_override if set, else system_learned_max."""
        return self.user_override if self.user_override is not None else self.system_learned_max

    @property
    def is_overridden(self) -> bool:
        return self.user_override is not None


@dataclass
class MuscleState:
    """
    Cached result of the last fatigue evaluation for one muscle.

    Between workouts the current fatigue is derived from ``fatigue_percent``
    and ``last_trained`` by the recovery model; nothing here is decayed in
    place.
    """

    fatigue_percent: float = 0.0
    volume_today: float = 0.0
    last_trained: datetime | None = None
    recovered_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.fatigue_percent < 0:
            raise ValueError("fatigue_percent must be non-negative")
        if self.volume_today < 0:
            raise ValueError("volume_today must be non-negative")
        if self.last_trained is not None:
            self.last_trained = as_utc(self.last_trained)
        if self.recovered_at is not None:
            self.recovered_at = as_utc(self.recovered_at)

    @property
    def never_trained(self) -> bool:
        return self.last_trained is None


@dataclass
class PersonalBest:
    """
    Best recorded performance for one exercise.

    Both headline fields only move up, independently of each other.
    ``recent_session_bests`` holds the best single set of the most recent
    sessions (newest last) and feeds ``rolling_average_max``.
    """

    best_single_set: float
    best_session_volume: float
    rolling_average_max: float | None = None
    recent_session_bests: list[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.best_single_set < 0 or self.best_session_volume < 0:
            raise ValueError("personal best values must be non-negative")


# ---------------------------------------------------------------------------
# Derived results (plain data handed to callers)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExerciseVolume:
    """Per-exercise volume figures for one workout."""

    exercise_id: str
    set_volumes: tuple[float, ...]

    @property
    def total_volume(self) -> float:
        return sum(self.set_volumes)

    @property
    def best_set_volume(self) -> float:
        return max(self.set_volumes, default=0.0)


@dataclass(frozen=True)
class WorkoutVolume:
    """Output of the volume calculator for one workout."""

    muscle_volumes: dict[Muscle, float]
    exercises: tuple[ExerciseVolume, ...]


@dataclass(frozen=True)
class MuscleFatigue:
    """Fatigue evaluation of one muscle for one workout."""

    muscle: Muscle
    volume: float
    baseline: float
    fatigue_percent: float
    display_fatigue: float
    status: ReadinessStatus

    @property
    def exceeds_baseline(self) -> bool:
        return self.fatigue_percent > 100

    @property
    def exceedance(self) -> float | None:
        """Percentage points above 100%, or None when within baseline."""
        return self.fatigue_percent - 100 if self.exceeds_baseline else None


@dataclass(frozen=True)
class BaselineUpdate:
    """One ratchet step of a muscle's learned baseline."""

    muscle: Muscle
    old_value: float
    new_value: float

    @property
    def increase(self) -> float:
        return self.new_value - self.old_value

    @property
    def exceedance_percent(self) -> float:
        return (self.new_value - self.old_value) / self.old_value * 100


@dataclass(frozen=True)
class PersonalRecordEvent:
    """
    One improved personal-best field.

    ``old_value``/``percent_increase`` are None for a first-time record:
    there is no previous value to compare against.
    """

    exercise_id: str
    field: str  # "best_single_set" | "best_session_volume"
    old_value: float | None
    new_value: float

    @property
    def is_first_time(self) -> bool:
        return self.old_value is None

    @property
    def improvement(self) -> float:
        return self.new_value - (self.old_value or 0.0)

    @property
    def percent_increase(self) -> float | None:
        if self.old_value is None or self.old_value == 0:
            return None
        return self.improvement / self.old_value * 100


@dataclass(frozen=True)
class WorkoutReport:
    """Everything one processed workout produced, for presentation."""

    user_id: str
    workout_id: str
    performed_at: datetime
    muscles: tuple[MuscleFatigue, ...]
    exercises: tuple[ExerciseVolume, ...]
    baseline_updates: tuple[BaselineUpdate, ...] = ()
    personal_records: tuple[PersonalRecordEvent, ...] = ()
    warnings: tuple[str, ...] = ()
    already_processed: bool = False

    def fatigue_for(self, muscle: Muscle) -> MuscleFatigue | None:
        for m in self.muscles:
            if m.muscle == muscle:
                return m
        return None


@dataclass(frozen=True)
class RecoveryStatus:
    """Point-in-time recovery answer for one muscle."""

    muscle: Muscle
    at: datetime
    initial_fatigue: float
    current_fatigue: float
    status: ReadinessStatus
    last_trained: datetime | None
    days_elapsed: float | None
    days_until_ready: float
    ready_at: datetime | None

    @property
    def display_fatigue(self) -> float:
        return min(100.0, self.current_fatigue)


@dataclass(frozen=True)
class RecoveryPoint:
    """Projected fatigue at an offset after training."""

    hours_after: float
    fatigue: float
    status: ReadinessStatus


@dataclass(frozen=True)
class RecoveryTimeline:
    """Current state plus projections for a recovery display."""

    initial_fatigue: float
    started_at: datetime
    current: RecoveryPoint
    projections: tuple[RecoveryPoint, ...]
    days_until_ready: float
    days_until_recovered: float
    ready_at: datetime
    recovered_at: datetime


@dataclass(frozen=True)
class MuscleForecast:
    """
    What a planned workout would do to one muscle.

    ``planned_fatigue`` is the planned volume alone against the effective
    baseline; ``projected_fatigue`` adds it to the current decayed fatigue.
    """

    muscle: Muscle
    current_fatigue: float
    planned_volume: float
    planned_fatigue: float
    projected_fatigue: float
    status: ReadinessStatus
    exceeds_baseline: bool


@dataclass(frozen=True)
class BottleneckWarning:
    """A muscle an estimated session would push past its baseline."""

    muscle: Muscle
    current_fatigue: float
    projected_fatigue: float

    @property
    def overage(self) -> float:
        return self.projected_fatigue - 100

    @property
    def message(self) -> str:
        return (
            f"{self.muscle} would reach {self.projected_fatigue:.0f}% fatigue "
            f"(exceeds baseline by {self.overage:.0f}%)"
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points earned per scoring factor."""

    target_match: float
    freshness: float
    variety: float
    preference: float
    primary: float

    @property
    def total(self) -> float:
        return self.target_match + self.freshness + self.variety + self.preference + self.primary


@dataclass(frozen=True)
class Recommendation:
    """
    One scored exercise for a target muscle.

    An unsafe exercise keeps its factor breakdown but scores 0.
    """

    exercise_id: str
    name: str
    category: str
    target_engagement: float
    score: float
    factors: ScoreBreakdown
    bottlenecks: tuple[BottleneckWarning, ...] = ()

    @property
    def is_safe(self) -> bool:
        return not self.bottlenecks


@dataclass(frozen=True)
class RecommendationSet:
    """Ranked suggestions for one target muscle."""

    target: Muscle
    safe: tuple[Recommendation, ...]
    unsafe: tuple[Recommendation, ...]
    total_eligible: int


@dataclass
class UserLedger:
    """
    All mutable per-user engine state, persisted as one document.

    ``processed_workout_ids`` is the idempotency record: a workout id listed
    here has already contributed to states, baselines and bests.
    """

    user_id: str
    experience: str = "Intermediate"
    baselines: dict[Muscle, MuscleBaseline] = field(default_factory=dict)
    states: dict[Muscle, MuscleState] = field(default_factory=dict)
    personal_bests: dict[str, PersonalBest] = field(default_factory=dict)
    processed_workout_ids: list[str] = field(default_factory=list)

    def is_processed(self, workout_id: str) -> bool:
        return workout_id in self.processed_workout_ids

    def state_for(self, muscle: Muscle) -> MuscleState:
        """Stored state, or the never-trained state when absent."""
        return self.states.get(muscle) or MuscleState()
