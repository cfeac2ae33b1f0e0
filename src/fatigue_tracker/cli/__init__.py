"""Command-line interface for fatigue-tracker."""
