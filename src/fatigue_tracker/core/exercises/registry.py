"""
Exercise catalog registry.

All known exercises live in an ExerciseCatalog.  Use get_default_catalog()
for the bundled catalog (plus user additions) and get_exercise() to look up
an Exercise by its id.

The bundled catalog is loaded from ``src/fatigue_tracker/catalog.yaml`` on
first use.  If it cannot be loaded a CatalogError is raised: the engine
cannot compute anything without valid engagement tables.
"""

from collections.abc import Iterable, Iterator, Mapping
from functools import lru_cache

from ..errors import CatalogError, UnknownExerciseError
from .base import Exercise
from .muscles import Muscle


class ExerciseCatalog(Mapping[str, Exercise]):
    """Read-only mapping of exercise id → Exercise."""

    def __init__(self, exercises: Iterable[Exercise]):
        self._by_id: dict[str, Exercise] = {}
        for ex in exercises:
            if ex.exercise_id in self._by_id:
                raise CatalogError(f"Duplicate exercise id {ex.exercise_id!r}")
            self._by_id[ex.exercise_id] = ex

    def __getitem__(self, exercise_id: str) -> Exercise:
        return self._by_id[exercise_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_id)

    def __len__(self) -> int:
        return len(self._by_id)

    def get_exercise(self, exercise_id: str) -> Exercise:
        """
        Return the Exercise for the given id.

        Raises:
            UnknownExerciseError: If exercise_id is not in the catalog
        """
        try:
            return self._by_id[exercise_id]
        except KeyError:
            raise UnknownExerciseError(exercise_id) from None

    def engaging(self, muscle: Muscle) -> list[Exercise]:
        """Exercises that engage the given muscle, highest engagement first."""
        hits = [ex for ex in self._by_id.values() if ex.engagement_for(muscle) > 0]
        hits.sort(key=lambda ex: ex.engagement_for(muscle), reverse=True)
        return hits


@lru_cache(maxsize=None)
def _cached_catalog(policy: str) -> ExerciseCatalog:
    from .loader import load_exercises_from_yaml

    loaded = load_exercises_from_yaml(policy=policy)
    if not loaded:
        raise CatalogError(
            "fatigue-tracker: no exercises could be loaded. "
            "Check that src/fatigue_tracker/catalog.yaml is present and valid."
        )
    return ExerciseCatalog(loaded.values())


def get_default_catalog(policy: str | None = None) -> ExerciseCatalog:
    """Return the bundled catalog, loaded once per muscle-name policy."""
    if policy is None:
        from ..config import load_engine_config

        policy = load_engine_config().muscle_name_policy
    return _cached_catalog(policy)


def get_exercise(exercise_id: str) -> Exercise:
    """Return the Exercise for exercise_id from the default catalog."""
    return get_default_catalog().get_exercise(exercise_id)
