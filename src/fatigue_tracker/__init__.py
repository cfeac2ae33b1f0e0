"""
fatigue-tracker: per-muscle fatigue, recovery and personal-record tracking.
"""

__version__ = "0.1.0"
