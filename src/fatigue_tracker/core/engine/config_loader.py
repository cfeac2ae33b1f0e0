"""
YAML → typed config loader.

Loads model constants from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.fatigue-tracker/engine.yaml, or
from the file named by the ``FATIGUE_TRACKER_CONFIG`` environment variable.

Usage:
    from fatigue_tracker.core.engine.config_loader import load_model_config
    cfg = load_model_config()
    rate = cfg.get("recovery", {}).get("RATE_PER_DAY", 0.15)

If the user override file exists but cannot be parsed, a warning is issued
and the file is ignored.  The bundled file must always parse.
"""

from __future__ import annotations

import importlib.resources
import os
import warnings
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "FATIGUE_TRACKER_CONFIG"
HOME_ENV_VAR = "FATIGUE_TRACKER_HOME"

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping.

    Raises:
        OSError: If the file cannot be read
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the top level is not a mapping
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _load_user_yaml(path: Path) -> dict[str, Any]:
    try:
        return load_yaml_file(path)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        warnings.warn(
            f"fatigue-tracker: ignoring user config {path} ({exc})",
            stacklevel=3,
        )
        return {}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_user_home() -> Path:
    """Return the per-user settings directory (``~/.fatigue-tracker``)."""
    env = os.environ.get(HOME_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".fatigue-tracker"


def get_bundled_path(filename: str) -> Path:
    """Return the path of a data file bundled with the package."""
    ref = importlib.resources.files("fatigue_tracker").joinpath(filename)
    return Path(str(ref))


def get_user_yaml_path(filename: str = "engine.yaml") -> Path | None:
    """Return the user override file if it exists, else None."""
    env = os.environ.get(CONFIG_ENV_VAR)
    if env and filename == "engine.yaml":
        p = Path(env).expanduser()
        return p if p.exists() else None
    p = get_user_home() / filename
    return p if p.exists() else None


def load_model_config() -> dict[str, Any]:
    """
    Load and merge model configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/fatigue_tracker/engine.yaml
    2. User override (``$FATIGUE_TRACKER_CONFIG`` or ~/.fatigue-tracker/engine.yaml)

    Returns:
        Merged dict of config sections.
    """
    config = load_yaml_file(get_bundled_path("engine.yaml"))

    user = get_user_yaml_path("engine.yaml")
    if user is not None:
        user_cfg = _load_user_yaml(user)
        if user_cfg:
            config = deep_merge(config, user_cfg)

    return config
