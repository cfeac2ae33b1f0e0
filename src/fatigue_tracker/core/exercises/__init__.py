"""
Exercise catalog for fatigue-tracker.

Each exercise declares the muscles it engages and the share of set volume
attributed to each of them.
"""

from .base import Exercise, MuscleEngagement
from .muscles import ALL_MUSCLES, Muscle, normalize_muscle, parse_muscle
from .registry import ExerciseCatalog, get_default_catalog, get_exercise

__all__ = [
    "ALL_MUSCLES",
    "Exercise",
    "ExerciseCatalog",
    "Muscle",
    "MuscleEngagement",
    "get_default_catalog",
    "get_exercise",
    "normalize_muscle",
    "parse_muscle",
]
