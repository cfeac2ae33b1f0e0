"""
CLI entry point using Typer.

Provides commands for fatigue and recovery tracking:
- init: Create a user and seed baselines
- log-workout: Log a completed workout
- status / recovery: Current fatigue and recovery timelines
- forecast: Fatigue a planned workout would cause
- baselines / set-baseline: Capacity baselines
- records: Personal bests
- rebuild: Recalculate baselines and personal bests from history
- exercises: Exercise catalog
"""

from .app import app
from .commands import profile, recovery, workouts  # noqa: F401  (registers commands)

if __name__ == "__main__":
    app()
