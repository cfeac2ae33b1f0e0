"""
Configuration constants for the muscle fatigue & recovery model.

All adjustable parameters are centralized here for easy tuning.  The values
below are the defaults; ``engine.yaml`` (bundled) and the user override file
can replace any of them through :func:`load_engine_config`.
"""

from dataclasses import dataclass, field
from typing import Final

# =============================================================================
# READINESS THRESHOLDS (fatigue %, lower bound of each band is inclusive)
# =============================================================================

READY_THRESHOLD: Final[float] = 40.0  # < 40 → Ready
CAUTION_THRESHOLD: Final[float] = 80.0  # 40–79.9 → Caution, >= 80 → Don't Train
DISPLAY_FATIGUE_CAP: Final[float] = 100.0  # Rendered fatigue is clamped here

# =============================================================================
# RECOVERY
# =============================================================================

RECOVERY_RATE_PER_DAY: Final[float] = 0.15  # 15 percentage points per 24 h
PROJECTION_HOURS: Final[tuple[int, ...]] = (24, 48, 72)

# =============================================================================
# BASELINES
# =============================================================================

DEFAULT_BASELINE: Final[float] = 10_000.0  # Seed for system_learned_max

EXPERIENCE_BASELINES: Final[dict[str, float]] = {
    "Beginner": 5_000.0,
    "Intermediate": 10_000.0,
    "Advanced": 15_000.0,
}

MAX_BASELINE_INCREASE_PERCENT: Final[float] = 50.0  # Sanity ceiling for one jump

# =============================================================================
# PERSONAL BESTS
# =============================================================================

PB_ROLLING_WINDOW: Final[int] = 3  # Sessions averaged for rolling_average_max

# =============================================================================
# CATALOG
# =============================================================================

MUSCLE_NAME_POLICY: Final[str] = "strict"  # "strict" | "lenient"
MUSCLE_NAME_POLICIES: Final[tuple[str, ...]] = ("strict", "lenient")

# =============================================================================
# EXERCISE RECOMMENDATIONS
# =============================================================================

MIN_ENGAGEMENT_PERCENT: Final[float] = 5.0  # Below this the target is not really worked
RECOMMEND_MAX_RESULTS: Final[int] = 15  # Safe suggestions returned
RECENT_HISTORY_DAYS: Final[int] = 7  # Window for the variety factor
VARIETY_CATEGORY_LIMIT: Final[int] = 5  # Same-category exercises before variety hits 0

# Estimated session used for the bottleneck check (3 sets × 10 reps @ 100)
ESTIMATED_SETS: Final[int] = 3
ESTIMATED_REPS: Final[int] = 10
ESTIMATED_WEIGHT: Final[float] = 100.0

# Score weights, summing to 100
SCORE_WEIGHTS: Final[dict[str, float]] = {
    "target_match": 40.0,  # Engagement of the requested muscle
    "freshness": 25.0,  # Low fatigue across every engaged muscle
    "variety": 15.0,  # Category not hammered recently
    "preference": 10.0,  # User favorite
    "primary": 10.0,  # Target is the exercise's main mover
}


@dataclass(frozen=True)
class ReadinessThresholds:
    """Band edges for the three-tier readiness classification."""

    ready: float = READY_THRESHOLD
    caution: float = CAUTION_THRESHOLD

    def __post_init__(self) -> None:
        if not 0 <= self.ready < self.caution:
            raise ValueError(
                f"thresholds must satisfy 0 <= ready < caution, got {self.ready}, {self.caution}"
            )


@dataclass(frozen=True)
class EngineConfig:
    """
    Resolved engine configuration.

    Built once from ``engine.yaml`` + user overrides and passed explicitly
    to every component that needs a tunable value.
    """

    thresholds: ReadinessThresholds = field(default_factory=ReadinessThresholds)
    recovery_rate_per_day: float = RECOVERY_RATE_PER_DAY
    recovery_rate_per_muscle: dict[str, float] = field(default_factory=dict)
    projection_hours: tuple[int, ...] = PROJECTION_HOURS
    default_baseline: float = DEFAULT_BASELINE
    experience_baselines: dict[str, float] = field(
        default_factory=lambda: dict(EXPERIENCE_BASELINES)
    )
    max_baseline_increase_percent: float = MAX_BASELINE_INCREASE_PERCENT
    pb_rolling_window: int = PB_ROLLING_WINDOW
    muscle_name_policy: str = MUSCLE_NAME_POLICY

    def __post_init__(self) -> None:
        if self.recovery_rate_per_day <= 0:
            raise ValueError("recovery_rate_per_day must be positive")
        for muscle, rate in self.recovery_rate_per_muscle.items():
            if rate <= 0:
                raise ValueError(f"recovery rate for {muscle!r} must be positive")
        if self.default_baseline <= 0:
            raise ValueError("default_baseline must be positive")
        if self.pb_rolling_window < 1:
            raise ValueError("pb_rolling_window must be at least 1")
        if self.muscle_name_policy not in MUSCLE_NAME_POLICIES:
            raise ValueError(
                f"Invalid muscle_name_policy: {self.muscle_name_policy!r}. "
                f"Must be one of {MUSCLE_NAME_POLICIES}"
            )

    def rate_for(self, muscle: str) -> float:
        """Return the recovery rate for a muscle, falling back to the global rate."""
        return self.recovery_rate_per_muscle.get(muscle, self.recovery_rate_per_day)

    def baseline_for_experience(self, experience: str) -> float:
        """Return the seed baseline for an experience level."""
        if experience not in self.experience_baselines:
            valid = ", ".join(self.experience_baselines)
            raise ValueError(f"Unknown experience '{experience}'. Valid: {valid}")
        return self.experience_baselines[experience]


def load_engine_config() -> EngineConfig:
    """
    Build an EngineConfig from the merged YAML sources.

    Sections missing from YAML fall back to the constants above.
    """
    from .engine.config_loader import load_model_config

    raw = load_model_config()
    readiness = raw.get("readiness", {})
    recovery = raw.get("recovery", {})
    baselines = raw.get("baselines", {})
    records = raw.get("personal_bests", {})
    catalog = raw.get("catalog", {})

    return EngineConfig(
        thresholds=ReadinessThresholds(
            ready=float(readiness.get("READY_THRESHOLD", READY_THRESHOLD)),
            caution=float(readiness.get("CAUTION_THRESHOLD", CAUTION_THRESHOLD)),
        ),
        recovery_rate_per_day=float(recovery.get("RATE_PER_DAY", RECOVERY_RATE_PER_DAY)),
        recovery_rate_per_muscle={
            str(k): float(v) for k, v in (recovery.get("PER_MUSCLE") or {}).items()
        },
        projection_hours=tuple(
            int(h) for h in recovery.get("PROJECTION_HOURS", PROJECTION_HOURS)
        ),
        default_baseline=float(baselines.get("DEFAULT", DEFAULT_BASELINE)),
        experience_baselines={
            str(k): float(v)
            for k, v in (baselines.get("BY_EXPERIENCE") or EXPERIENCE_BASELINES).items()
        },
        max_baseline_increase_percent=float(
            baselines.get("MAX_INCREASE_PERCENT", MAX_BASELINE_INCREASE_PERCENT)
        ),
        pb_rolling_window=int(records.get("ROLLING_WINDOW", PB_ROLLING_WINDOW)),
        muscle_name_policy=str(catalog.get("MUSCLE_NAME_POLICY", MUSCLE_NAME_POLICY)),
    )
