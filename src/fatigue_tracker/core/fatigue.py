"""
Fatigue engine: per-muscle volume + baseline → fatigue % and readiness.

    fatigue% = volume / effective_baseline × 100

The raw percentage is never clamped; values above 100 mean the muscle did
more than its recorded capacity and drive baseline learning.  Only the
display value is capped at 100.
"""

from collections.abc import Mapping

from .config import DISPLAY_FATIGUE_CAP, EngineConfig, ReadinessThresholds
from .errors import BaselineMissingError
from .exercises.muscles import Muscle
from .models import MuscleBaseline, MuscleFatigue, ReadinessStatus


def fatigue_percent(volume: float, baseline: float | None, muscle: str = "?") -> float:
    """
    Calculate fatigue percentage.

    Args:
        volume: Volume attributed to the muscle
        baseline: Effective baseline capacity
        muscle: Muscle name, for the error message

    Returns:
        volume / baseline × 100 (may exceed 100)

    Raises:
        BaselineMissingError: If baseline is None, zero or negative
    """
    if baseline is None:
        raise BaselineMissingError(str(muscle))
    if baseline <= 0:
        raise BaselineMissingError(str(muscle), baseline)
    return volume / baseline * 100


def display_fatigue(percent: float) -> float:
    """Fatigue as rendered: capped at 100%."""
    return min(DISPLAY_FATIGUE_CAP, percent)


def classify(percent: float, thresholds: ReadinessThresholds | None = None) -> ReadinessStatus:
    """
    Three-tier readiness classification.

    Lower bound of each band is inclusive:
        percent <  ready            → READY
        ready <= percent < caution  → CAUTION
        percent >= caution          → DONT_TRAIN
    """
    t = thresholds or ReadinessThresholds()
    if percent >= t.caution:
        return ReadinessStatus.DONT_TRAIN
    if percent >= t.ready:
        return ReadinessStatus.CAUTION
    return ReadinessStatus.READY


def evaluate_muscle(
    muscle: Muscle,
    volume: float,
    baseline: MuscleBaseline | None,
    thresholds: ReadinessThresholds | None = None,
) -> MuscleFatigue:
    """Evaluate one muscle against its effective baseline."""
    if baseline is None:
        raise BaselineMissingError(str(muscle))
    pct = fatigue_percent(volume, baseline.effective, str(muscle))
    return MuscleFatigue(
        muscle=muscle,
        volume=volume,
        baseline=baseline.effective,
        fatigue_percent=pct,
        display_fatigue=display_fatigue(pct),
        status=classify(pct, thresholds),
    )


def evaluate_muscle_fatigue(
    muscle_volumes: Mapping[Muscle, float],
    baselines: Mapping[Muscle, MuscleBaseline],
    config: EngineConfig | None = None,
) -> list[MuscleFatigue]:
    """
    Evaluate every muscle that received volume.

    Muscles are returned in Muscle declaration order.  A muscle with volume
    but no baseline record is a data-integrity fault and raises.

    Args:
        muscle_volumes: Output of the volume calculator
        baselines: Current baseline per muscle
        config: Engine configuration (thresholds)

    Returns:
        List of MuscleFatigue

    Raises:
        BaselineMissingError: If a muscle with volume has no usable baseline
    """
    thresholds = config.thresholds if config is not None else None
    results: list[MuscleFatigue] = []
    for muscle in Muscle:
        if muscle not in muscle_volumes:
            continue
        results.append(
            evaluate_muscle(muscle, muscle_volumes[muscle], baselines.get(muscle), thresholds)
        )
    return results


def fatigue_warnings(
    results: list[MuscleFatigue],
    thresholds: ReadinessThresholds | None = None,
) -> list[str]:
    """Human-readable warnings for muscles near or beyond capacity."""
    t = thresholds or ReadinessThresholds()
    warnings: list[str] = []
    for r in results:
        if r.exceeds_baseline:
            warnings.append(
                f"{r.muscle}: EXCEEDED baseline by {r.fatigue_percent - 100:.1f}% "
                f"({r.volume:.0f}/{r.baseline:.0f})"
            )
        elif r.fatigue_percent > t.caution:
            warnings.append(f"{r.muscle}: approaching capacity at {r.fatigue_percent:.1f}%")
    return warnings
