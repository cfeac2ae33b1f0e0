"""Fatigue engine: volume, fatigue, recovery, baselines and personal records."""
