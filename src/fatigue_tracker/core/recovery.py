"""
Linear recovery model.

    current = max(0, initial − days_elapsed × rate × 100)

Recovery is linear and floors at zero; there is no "negative fatigue"
credit.  Time to ready solves the same line for the ready threshold:

    days_until_ready = max(0, (initial − ready) / (rate × 100))

Everything here is a pure function of (initial fatigue, elapsed time, rate).
"""

import math
from datetime import datetime, timedelta

from .config import PROJECTION_HOURS, RECOVERY_RATE_PER_DAY, EngineConfig, ReadinessThresholds
from .errors import RecoveryQueryError
from .fatigue import classify
from .models import RecoveryPoint, RecoveryTimeline, ReadinessStatus, as_utc

SECONDS_PER_DAY = 24 * 60 * 60


def _check_fatigue(value: float, name: str = "initial_fatigue") -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecoveryQueryError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise RecoveryQueryError(f"{name} must be a finite, non-negative number, got {value}")


def days_between(start: datetime, at: datetime) -> float:
    """
    Elapsed days from start to at.

    Raises:
        RecoveryQueryError: If at is earlier than start
    """
    delta = (as_utc(at) - as_utc(start)).total_seconds() / SECONDS_PER_DAY
    if delta < 0:
        raise RecoveryQueryError(
            f"Query time {at.isoformat()} is before the start time {start.isoformat()}"
        )
    return delta


class RecoveryModel:
    """
    Linear fatigue decay at a fixed daily rate.

    Args:
        rate_per_day: Fraction of 100% fatigue recovered per 24 h (0.15 = 15 points)
        thresholds: Readiness band edges
    """

    def __init__(
        self,
        rate_per_day: float = RECOVERY_RATE_PER_DAY,
        thresholds: ReadinessThresholds | None = None,
        projection_hours: tuple[int, ...] = PROJECTION_HOURS,
    ):
        if not math.isfinite(rate_per_day) or rate_per_day <= 0:
            raise RecoveryQueryError(f"rate_per_day must be positive, got {rate_per_day}")
        self.rate_per_day = rate_per_day
        self.thresholds = thresholds or ReadinessThresholds()
        self.projection_hours = projection_hours

    @classmethod
    def from_config(cls, config: EngineConfig, muscle: str | None = None) -> "RecoveryModel":
        """Build the model for a muscle (per-muscle rate if configured)."""
        rate = config.rate_for(muscle) if muscle is not None else config.recovery_rate_per_day
        return cls(rate, config.thresholds, config.projection_hours)

    @property
    def points_per_day(self) -> float:
        """Fatigue percentage points recovered per day."""
        return self.rate_per_day * 100

    # -- point-in-time ------------------------------------------------------

    def fatigue_after(self, initial_fatigue: float, days_elapsed: float) -> float:
        """Fatigue remaining after days_elapsed days."""
        _check_fatigue(initial_fatigue)
        if not math.isfinite(days_elapsed) or days_elapsed < 0:
            raise RecoveryQueryError(f"days_elapsed must be non-negative, got {days_elapsed}")
        if days_elapsed == 0:
            return initial_fatigue
        return max(0.0, initial_fatigue - days_elapsed * self.points_per_day)

    def current_fatigue(self, initial_fatigue: float, start: datetime, at: datetime) -> float:
        """Fatigue at time at, for a muscle that was at initial_fatigue at start."""
        return self.fatigue_after(initial_fatigue, days_between(start, at))

    # -- time-to-X ----------------------------------------------------------

    def days_until(self, initial_fatigue: float, target: float) -> float:
        """Days for fatigue to fall from initial_fatigue to target (0 if already there)."""
        _check_fatigue(initial_fatigue)
        _check_fatigue(target, "target")
        if initial_fatigue <= target:
            return 0.0
        return (initial_fatigue - target) / self.points_per_day

    def days_until_ready(self, initial_fatigue: float) -> float:
        """Days until fatigue reaches the ready threshold."""
        return self.days_until(initial_fatigue, self.thresholds.ready)

    def days_until_recovered(self, initial_fatigue: float) -> float:
        """Days until fatigue reaches zero."""
        return self.days_until(initial_fatigue, 0.0)

    def ready_at(self, initial_fatigue: float, start: datetime) -> datetime:
        """Timestamp at which fatigue crosses the ready threshold."""
        return as_utc(start) + timedelta(days=self.days_until_ready(initial_fatigue))

    def recovered_at(self, initial_fatigue: float, start: datetime) -> datetime:
        """Timestamp at which fatigue reaches zero."""
        return as_utc(start) + timedelta(days=self.days_until_recovered(initial_fatigue))

    # -- displays -----------------------------------------------------------

    def point(self, initial_fatigue: float, hours_after: float) -> RecoveryPoint:
        fatigue = self.fatigue_after(initial_fatigue, hours_after / 24)
        return RecoveryPoint(
            hours_after=hours_after,
            fatigue=fatigue,
            status=classify(fatigue, self.thresholds),
        )

    def projections(self, initial_fatigue: float) -> tuple[RecoveryPoint, ...]:
        """Projected fatigue at the configured offsets (24/48/72 h by default)."""
        return tuple(self.point(initial_fatigue, h) for h in self.projection_hours)

    def timeline(self, initial_fatigue: float, start: datetime, at: datetime) -> RecoveryTimeline:
        """
        Full recovery picture for one muscle.

        Projections are measured from the training time; ready/recovered
        times are absolute.
        """
        hours_elapsed = days_between(start, at) * 24
        return RecoveryTimeline(
            initial_fatigue=initial_fatigue,
            started_at=as_utc(start),
            current=self.point(initial_fatigue, hours_elapsed),
            projections=self.projections(initial_fatigue),
            days_until_ready=self.days_until_ready(initial_fatigue),
            days_until_recovered=self.days_until_recovered(initial_fatigue),
            ready_at=self.ready_at(initial_fatigue, start),
            recovered_at=self.recovered_at(initial_fatigue, start),
        )
