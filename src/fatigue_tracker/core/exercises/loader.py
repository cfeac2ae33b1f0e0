"""
YAML → Exercise loader.

Loads the exercise catalog from the bundled ``src/fatigue_tracker/catalog.yaml``.
Each entry is a flat mapping:

    - id: ex02
      name: Dumbbell Bench Press
      category: Push
      equipment: [Dumbbells, Bench]
      muscles:
        Pectoralis: 85
        Triceps: 35
        Deltoids: 35

User overrides: entries in ``~/.fatigue-tracker/catalog.yaml`` are deep-merged
over the bundled entry with the same id, so only changed keys need to be
listed.  Entries whose id has no bundled counterpart are added as new
exercises.

Muscle names are normalized through ``normalize_muscle`` under the configured
policy.  Two names that normalize to the same group (e.g. "Rectus Abdominis"
and "Obliques" → Core) have their percentages added together.
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path

import yaml

from .. import config
from ..engine.config_loader import deep_merge, get_bundled_path, get_user_yaml_path, load_yaml_file
from ..errors import CatalogError
from .base import Exercise, MuscleEngagement
from .muscles import Muscle, normalize_muscle

logger = logging.getLogger(__name__)

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset({"id", "name", "category", "muscles"})


def _engagements_from_mapping(
    exercise_id: str,
    raw: dict,
    policy: str,
) -> tuple[MuscleEngagement, ...]:
    """Normalize muscle names and build validated engagements (catalog order kept)."""
    if not isinstance(raw, dict) or not raw:
        raise CatalogError(f"{exercise_id}: 'muscles' must be a non-empty mapping")

    totals: dict[Muscle, float] = {}
    for name, pct in raw.items():
        muscle = normalize_muscle(str(name), policy)
        if muscle is None:
            warnings.warn(
                f"fatigue-tracker: {exercise_id}: dropping unmapped muscle {name!r}",
                stacklevel=2,
            )
            logger.warning("%s: dropped unmapped muscle name %r", exercise_id, name)
            continue
        if isinstance(pct, bool) or not isinstance(pct, (int, float)):
            raise CatalogError(f"{exercise_id}: percentage for {name!r} must be a number")
        totals[muscle] = totals.get(muscle, 0.0) + float(pct)

    return tuple(MuscleEngagement(muscle=m, percentage=p) for m, p in totals.items())


def exercise_from_dict(d: dict, policy: str = config.MUSCLE_NAME_POLICY) -> Exercise:
    """Convert a raw dict (from YAML) to an Exercise.

    Raises CatalogError if any required field is absent or invalid.
    """
    if not isinstance(d, dict):
        raise CatalogError(f"Exercise entry must be a mapping, got {type(d).__name__}")
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise CatalogError(f"Exercise {d.get('id', '?')} missing fields: {sorted(missing)}")

    exercise_id = str(d["id"])
    return Exercise(
        exercise_id=exercise_id,
        name=str(d["name"]),
        category=str(d["category"]),  # type: ignore[arg-type]
        engagements=_engagements_from_mapping(exercise_id, d["muscles"], policy),
        equipment=tuple(str(e) for e in d.get("equipment") or ()),
        difficulty=str(d["difficulty"]) if d.get("difficulty") is not None else None,
    )


def _entries_by_id(data: dict, source: Path) -> dict[str, dict]:
    entries = data.get("exercises") or []
    if not isinstance(entries, list):
        raise CatalogError(f"{source}: 'exercises' must be a list")
    result: dict[str, dict] = {}
    for entry in entries:
        if not isinstance(entry, dict) or "id" not in entry:
            raise CatalogError(f"{source}: every exercise needs an 'id'")
        ex_id = str(entry["id"])
        if ex_id in result:
            raise CatalogError(f"{source}: duplicate exercise id {ex_id!r}")
        result[ex_id] = entry
    return result


def _load_user_entries() -> dict[str, dict]:
    """Return user catalog entries by id; a broken user file is ignored with a warning."""
    path = get_user_yaml_path("catalog.yaml")
    if path is None:
        return {}
    try:
        return _entries_by_id(load_yaml_file(path), path)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        warnings.warn(f"fatigue-tracker: ignoring user catalog {path} ({exc})", stacklevel=3)
        return {}


def load_exercises_from_yaml(
    path: Path | None = None,
    policy: str = config.MUSCLE_NAME_POLICY,
    include_user: bool = True,
) -> dict[str, Exercise]:
    """Return {exercise_id: Exercise} loaded from a catalog YAML file.

    Args:
        path: Catalog file; defaults to the bundled catalog.yaml
        policy: Muscle-name policy ("strict" | "lenient")
        include_user: Merge ~/.fatigue-tracker/catalog.yaml when present

    Raises:
        CatalogError: If the catalog (bundled or given) is invalid
    """
    source = path if path is not None else get_bundled_path("catalog.yaml")
    try:
        raw = load_yaml_file(source)
    except (OSError, yaml.YAMLError) as exc:
        raise CatalogError(f"Failed to load exercise catalog {source}: {exc}") from exc

    entries = _entries_by_id(raw, source)

    if include_user:
        for ex_id, user_entry in _load_user_entries().items():
            if ex_id in entries:
                entries[ex_id] = deep_merge(entries[ex_id], user_entry)
            else:
                entries[ex_id] = user_entry

    result: dict[str, Exercise] = {}
    for ex_id, entry in entries.items():
        result[ex_id] = exercise_from_dict(entry, policy)

    logger.debug("Loaded %d exercises from %s", len(result), source)
    return result
