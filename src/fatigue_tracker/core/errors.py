"""
Exception hierarchy for the fatigue engine.

Every error raised by the engine derives from FatigueTrackerError so that
callers can distinguish "calculation failed" from "no data yet".  Each class
also derives from the closest builtin so existing ``except ValueError``
handlers keep working.
"""


class FatigueTrackerError(Exception):
    """Base class for all engine errors."""


class CatalogError(FatigueTrackerError, ValueError):
    """Raised when exercise catalog data is malformed."""


class UnknownMuscleError(CatalogError):
    """Raised when a muscle name cannot be normalized in strict mode."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown muscle name: {name!r}")


class UnknownExerciseError(FatigueTrackerError, KeyError):
    """Raised when a logged exercise id has no catalog entry."""

    def __init__(self, exercise_id: str):
        self.exercise_id = exercise_id
        super().__init__(exercise_id)

    def __str__(self) -> str:
        return f"Unknown exercise '{self.exercise_id}': not in the exercise catalog"


class InvalidSetError(FatigueTrackerError, ValueError):
    """Raised for negative or non-finite weight/reps."""


class InvalidWorkoutError(FatigueTrackerError, ValueError):
    """Raised for structurally invalid workouts (no exercises, bad id)."""


class BaselineMissingError(FatigueTrackerError, LookupError):
    """Raised when a muscle has volume but no usable baseline."""

    def __init__(self, muscle: str, value: float | None = None):
        self.muscle = muscle
        self.value = value
        if value is None:
            msg = f"No baseline recorded for muscle {muscle}"
        else:
            msg = f"Invalid baseline for muscle {muscle}: {value} (must be positive)"
        super().__init__(msg)

    def __str__(self) -> str:
        return str(self.args[0])


class RecoveryQueryError(FatigueTrackerError, ValueError):
    """Raised for invalid recovery-model inputs."""


class UnknownUserError(FatigueTrackerError, LookupError):
    """Raised when no state exists for a user id."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No data for user '{user_id}'. Run 'init' first.")

    def __str__(self) -> str:
        return str(self.args[0])


class TransactionError(FatigueTrackerError):
    """Raised when the atomic state update could not be committed."""
