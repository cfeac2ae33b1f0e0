"""
Base types for exercise definitions.

An Exercise declares which muscles it engages and what share of each set's
volume is attributed to each of them.  Shares are independent: a bench press
can tax Pectoralis at 85% and Triceps at 35% at the same time, so they need
not sum to 100.
"""

import math
from dataclasses import dataclass, field
from typing import Literal

from ..errors import CatalogError
from .muscles import Muscle

Category = Literal["Push", "Pull", "Legs", "Core"]
CATEGORIES: tuple[str, ...] = ("Push", "Pull", "Legs", "Core")


@dataclass(frozen=True)
class MuscleEngagement:
    """Share of an exercise's volume attributed to one muscle (0–100%)."""

    muscle: Muscle
    percentage: float

    def __post_init__(self) -> None:
        if not isinstance(self.muscle, Muscle):
            raise CatalogError(f"muscle must be a Muscle, got {self.muscle!r}")
        if isinstance(self.percentage, bool) or not isinstance(self.percentage, (int, float)):
            raise CatalogError(f"percentage must be a number, got {self.percentage!r}")
        if not math.isfinite(self.percentage) or not 0 <= self.percentage <= 100:
            raise CatalogError(
                f"{self.muscle}: engagement percentage must be within [0, 100], "
                f"got {self.percentage}"
            )

    @property
    def fraction(self) -> float:
        return self.percentage / 100


@dataclass(frozen=True)
class Exercise:
    """
    One catalog entry.

    Static reference data; never mutated at runtime.
    """

    # Identity
    exercise_id: str          # e.g. "ex02"
    name: str                 # e.g. "Dumbbell Bench Press"
    category: Category

    # Muscle engagement table
    engagements: tuple[MuscleEngagement, ...]

    # Descriptive only
    equipment: tuple[str, ...] = field(default_factory=tuple)
    difficulty: str | None = None

    def __post_init__(self) -> None:
        if not self.exercise_id:
            raise CatalogError("exercise_id must be a non-empty string")
        if self.category not in CATEGORIES:
            raise CatalogError(
                f"{self.exercise_id}: invalid category {self.category!r}. "
                f"Must be one of {CATEGORIES}"
            )
        seen: set[Muscle] = set()
        for engagement in self.engagements:
            if engagement.muscle in seen:
                raise CatalogError(
                    f"{self.exercise_id}: muscle {engagement.muscle} listed more than once"
                )
            seen.add(engagement.muscle)

    @property
    def muscles(self) -> tuple[Muscle, ...]:
        """Muscles engaged, in catalog order."""
        return tuple(e.muscle for e in self.engagements)

    def engagement_for(self, muscle: Muscle) -> float:
        """Engagement percentage for a muscle (0.0 if not engaged)."""
        for e in self.engagements:
            if e.muscle == muscle:
                return e.percentage
        return 0.0
