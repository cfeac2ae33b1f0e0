"""
File-based per-user state storage.

Layout under the data directory::

    <data_dir>/<user_id>/state.json      baselines, muscle states, personal bests
    <data_dir>/<user_id>/workouts.jsonl  append-only workout log

``state.json`` is only ever replaced whole (write to a temporary file, then
``os.replace``), so a reader sees either the old or the new document.
Writers for the same user are serialized by a per-user re-entrant lock, which
readers of the append-only log also take so they never see a half-written line.
"""

import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..core.engine.config_loader import get_user_home
from ..core.errors import InvalidWorkoutError, TransactionError, UnknownUserError
from ..core.models import UserLedger, Workout
from .serializers import (
    ValidationError,
    dict_to_ledger,
    json_line_to_workout,
    ledger_to_dict,
    workout_to_json_line,
)

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"
WORKOUTS_FILENAME = "workouts.jsonl"

_USER_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

# One lock per (data dir, user id), shared by every StateStore in the process.
_locks: dict[tuple[str, str], threading.RLock] = {}
_locks_guard = threading.Lock()


def _user_lock(data_dir: Path, user_id: str) -> threading.RLock:
    key = (str(data_dir.resolve()), user_id)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


def validate_user_id(user_id: str) -> str:
    """
    Validate a user id for use as a directory name.

    Raises:
        ValidationError: If the id is empty or contains path characters
    """
    if not isinstance(user_id, str) or not _USER_ID_RE.match(user_id):
        raise ValidationError(
            f"Invalid user id: {user_id!r}. Use letters, digits, '.', '_' or '-'."
        )
    return user_id


class StateStore:
    """
    Persistence boundary for the fatigue engine.

    Provides read access to per-user state, append access for workouts,
    and a single atomic transaction primitive for state updates.
    """

    def __init__(self, data_dir: str | Path):
        """
        Initialize the store.

        Args:
            data_dir: Root directory holding one sub-directory per user
        """
        self.data_dir = Path(data_dir)

    def user_dir(self, user_id: str) -> Path:
        return self.data_dir / validate_user_id(user_id)

    def state_path(self, user_id: str) -> Path:
        return self.user_dir(user_id) / STATE_FILENAME

    def workouts_path(self, user_id: str) -> Path:
        return self.user_dir(user_id) / WORKOUTS_FILENAME

    def exists(self, user_id: str) -> bool:
        """Check if state has been initialized for the user."""
        return self.state_path(user_id).exists()

    def list_users(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        return sorted(p.parent.name for p in self.data_dir.glob(f"*/{STATE_FILENAME}"))

    # -- state document -----------------------------------------------------

    def init_user(self, ledger: UserLedger, overwrite: bool = False) -> bool:
        """
        Create the user's directory, state document and empty workout log.

        Args:
            ledger: Seeded initial state
            overwrite: Replace existing state (the workout log is kept)

        Returns:
            True if state was written, False if it already existed
        """
        with _user_lock(self.data_dir, ledger.user_id):
            if self.exists(ledger.user_id) and not overwrite:
                return False
            self.user_dir(ledger.user_id).mkdir(parents=True, exist_ok=True)
            self._write_state(ledger)
            self.workouts_path(ledger.user_id).touch()
        logger.info("Initialized state for user %s", ledger.user_id)
        return True

    def load(self, user_id: str) -> UserLedger:
        """
        Load the user's current state.

        Raises:
            UnknownUserError: If the user has not been initialized
            ValidationError: If the state document is corrupt
        """
        path = self.state_path(user_id)
        if not path.exists():
            raise UnknownUserError(user_id)
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Error parsing {path}: {e}") from e
        ledger = dict_to_ledger(data)
        if ledger.user_id != user_id:
            raise ValidationError(
                f"{path} belongs to user {ledger.user_id!r}, expected {user_id!r}"
            )
        return ledger

    def _write_state(self, ledger: UserLedger) -> None:
        path = self.state_path(ledger.user_id)
        fd, tmp = tempfile.mkstemp(prefix=".state-", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(ledger_to_dict(ledger), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    @contextmanager
    def transaction(self, user_id: str) -> Iterator[UserLedger]:
        """
        Atomic read-modify-write of the user's state.

        Yields a freshly loaded ledger.  If the block completes, the ledger is
        written back in one ``os.replace``; if it raises, nothing is written
        and the exception propagates.  Transactions for one user run one at
        a time.

        Raises:
            UnknownUserError: If the user has not been initialized
            TransactionError: If the commit itself fails
        """
        with _user_lock(self.data_dir, user_id):
            ledger = self.load(user_id)
            yield ledger
            try:
                self._write_state(ledger)
            except OSError as e:
                raise TransactionError(f"Could not commit state for user {user_id}: {e}") from e
            logger.debug("Committed state for user %s", user_id)

    # -- workout log --------------------------------------------------------

    def append_workout(self, user_id: str, workout: Workout) -> None:
        """
        Append a workout to the user's log.

        Raises:
            UnknownUserError: If the user has not been initialized
            InvalidWorkoutError: If a workout with the same id is already saved
        """
        if not self.exists(user_id):
            raise UnknownUserError(user_id)
        with _user_lock(self.data_dir, user_id):
            if self.get_workout(user_id, workout.workout_id) is not None:
                raise InvalidWorkoutError(f"Workout {workout.workout_id} is already saved")
            with open(self.workouts_path(user_id), "a") as f:
                f.write(workout_to_json_line(workout) + "\n")
                f.flush()
                os.fsync(f.fileno())
        logger.info("Saved workout %s for user %s", workout.workout_id, user_id)

    def load_workouts(self, user_id: str) -> list[Workout]:
        """
        Load all saved workouts, oldest first.

        Raises:
            UnknownUserError: If the user has not been initialized
            ValidationError: If a line of the log is corrupt
        """
        if not self.exists(user_id):
            raise UnknownUserError(user_id)
        path = self.workouts_path(user_id)
        if not path.exists():
            return []

        workouts: list[Workout] = []
        with _user_lock(self.data_dir, user_id), open(path, "r") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    workouts.append(json_line_to_workout(line))
                except ValidationError as e:
                    raise ValidationError(f"Error parsing line {line_num} in {path}: {e}") from e

        workouts.sort(key=lambda w: w.performed_at)
        return workouts

    def get_workout(self, user_id: str, workout_id: str) -> Workout | None:
        """Return the saved workout with the given id, or None."""
        for workout in self.load_workouts(user_id):
            if workout.workout_id == workout_id:
                return workout
        return None


def get_default_data_dir() -> Path:
    """
    Resolve the data directory.

    Uses ``$FATIGUE_TRACKER_HOME`` when set, else ``~/.fatigue-tracker``;
    this is the same directory that holds user config overrides.
    """
    return get_user_home()
