"""
Tests for the file-backed state store and the JSON serializers it uses.
"""

import json
from datetime import datetime, timezone

import pytest

from fatigue_tracker.core.errors import InvalidWorkoutError, UnknownUserError
from fatigue_tracker.core.exercises import Muscle
from fatigue_tracker.core.models import (
    LoggedExercise,
    LoggedSet,
    MuscleBaseline,
    MuscleState,
    PersonalBest,
    UserLedger,
    Workout,
)
from fatigue_tracker.io.serializers import (
    ValidationError,
    dict_to_ledger,
    json_line_to_workout,
    ledger_to_dict,
    parse_exercise_spec,
    parse_sets,
    parse_timestamp,
    workout_to_json_line,
)
from fatigue_tracker.io.state_store import StateStore, get_default_data_dir, validate_user_id


def _ledger(user_id: str = "alice") -> UserLedger:
    return UserLedger(
        user_id=user_id,
        baselines={Muscle.PECTORALIS: MuscleBaseline(10000.0), Muscle.LATS: MuscleBaseline(8000.0, 9000.0)},
        states={Muscle.PECTORALIS: MuscleState()},
    )


def _workout(wid: str, day: int) -> Workout:
    return Workout(
        workout_id=wid,
        performed_at=datetime(2025, 3, day, 9, 30, tzinfo=timezone.utc),
        exercises=(LoggedExercise("ex02", (LoggedSet(weight=105, reps=10),)),),
    )


@pytest.fixture
def store(tmp_path):
    s = StateStore(tmp_path / "data")
    s.init_user(_ledger())
    return s


class TestSerializers:
    """Set notation, timestamps and ledger documents."""

    def test_parse_exercise_spec(self):
        logged = parse_exercise_spec("ex02:3x10@105,10@90!")
        assert logged.exercise_id == "ex02"
        assert len(logged.sets) == 4
        assert logged.sets[0] == LoggedSet(weight=105, reps=10)
        assert logged.sets[3].to_failure
        assert logged.volume == 3 * 1050 + 900

    def test_parse_sets_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid set"):
            parse_sets("10x")

    def test_parse_exercise_spec_requires_id_and_sets(self):
        with pytest.raises(ValidationError):
            parse_exercise_spec("ex02")
        with pytest.raises(ValidationError):
            parse_exercise_spec(":10@100")

    def test_parse_timestamp_date_is_midnight_utc(self):
        assert parse_timestamp("2025-03-01") == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_parse_timestamp_z_suffix(self):
        ts = parse_timestamp("2025-03-01T10:15:00Z")
        assert ts == datetime(2025, 3, 1, 10, 15, tzinfo=timezone.utc)

    def test_parse_timestamp_invalid(self):
        with pytest.raises(ValidationError):
            parse_timestamp("yesterday")

    def test_ledger_document_uses_muscle_names(self):
        ledger = _ledger()
        ledger.personal_bests["ex02"] = PersonalBest(1050.0, 3150.0, 1050.0, [1050.0])
        ledger.processed_workout_ids.append("w1")

        data = ledger_to_dict(ledger)
        assert set(data["baselines"]) == {"Pectoralis", "Lats"}
        assert data["baselines"]["Lats"] == {"system_learned_max": 8000.0, "user_override": 9000.0}

        restored = dict_to_ledger(json.loads(json.dumps(data)))
        assert restored == ledger

    def test_ledger_with_unknown_muscle_is_invalid(self):
        data = ledger_to_dict(_ledger())
        data["baselines"]["Wings"] = {"system_learned_max": 1.0}
        with pytest.raises(ValidationError):
            dict_to_ledger(data)

    def test_workout_line_keeps_failure_flag(self):
        workout = Workout(
            workout_id="w1",
            performed_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
            exercises=(LoggedExercise("ex04", (LoggedSet(weight=180, reps=8, to_failure=True),)),),
            notes="grip gave out",
        )
        line = workout_to_json_line(workout)
        assert "\n" not in line
        assert json_line_to_workout(line) == workout

    def test_workout_line_with_negative_weight_is_invalid(self):
        line = json.dumps({
            "workout_id": "w1",
            "performed_at": "2025-03-01",
            "exercises": [{"exercise_id": "ex02", "sets": [{"weight": -5, "reps": 10}]}],
        })
        with pytest.raises(ValidationError):
            json_line_to_workout(line)

    def test_workout_line_with_overflowing_volume_is_invalid(self):
        line = json.dumps({
            "workout_id": "w1",
            "performed_at": "2025-03-01",
            "exercises": [{"exercise_id": "ex02", "sets": [{"weight": 1e200, "reps": 1e200}]}],
        })
        with pytest.raises(ValidationError, match="finite"):
            json_line_to_workout(line)


class TestStateDocument:
    """init / load / transaction."""

    def test_init_and_load(self, store, tmp_path):
        assert store.exists("alice")
        assert (tmp_path / "data" / "alice" / "state.json").exists()
        assert (tmp_path / "data" / "alice" / "workouts.jsonl").exists()
        assert store.load("alice") == _ledger()

    def test_init_does_not_overwrite(self, store):
        other = _ledger()
        other.experience = "Advanced"
        assert store.init_user(other) is False
        assert store.load("alice").experience == "Intermediate"
        assert store.init_user(other, overwrite=True) is True
        assert store.load("alice").experience == "Advanced"

    def test_load_unknown_user(self, store):
        with pytest.raises(UnknownUserError):
            store.load("bob")

    def test_list_users(self, store):
        store.init_user(_ledger("bob"))
        assert store.list_users() == ["alice", "bob"]

    def test_invalid_user_id(self, store):
        for bad in ("", "../etc", "a/b", ".hidden"):
            with pytest.raises(ValidationError):
                validate_user_id(bad)
        with pytest.raises(ValidationError):
            store.load("../alice")

    def test_transaction_commits(self, store):
        with store.transaction("alice") as ledger:
            ledger.baselines[Muscle.PECTORALIS].system_learned_max = 12000.0
            ledger.processed_workout_ids.append("w1")

        loaded = store.load("alice")
        assert loaded.baselines[Muscle.PECTORALIS].system_learned_max == 12000.0
        assert loaded.is_processed("w1")

    def test_transaction_rolls_back_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction("alice") as ledger:
                ledger.baselines[Muscle.PECTORALIS].system_learned_max = 99999.0
                raise RuntimeError("boom")

        assert store.load("alice") == _ledger()
        leftovers = list(store.user_dir("alice").glob("*.tmp"))
        assert leftovers == []

    def test_transaction_unknown_user(self, store):
        with pytest.raises(UnknownUserError):
            with store.transaction("bob"):
                pass

    def test_corrupt_state_document(self, store):
        store.state_path("alice").write_text("{not json")
        with pytest.raises(ValidationError):
            store.load("alice")

    def test_state_of_other_user_is_rejected(self, store):
        store.init_user(_ledger("bob"))
        store.state_path("alice").write_text(store.state_path("bob").read_text())
        with pytest.raises(ValidationError, match="belongs to user"):
            store.load("alice")


class TestWorkoutLog:
    """Append-only JSONL workout log."""

    def test_append_and_load_sorted(self, store):
        store.append_workout("alice", _workout("late", 5))
        store.append_workout("alice", _workout("early", 2))

        workouts = store.load_workouts("alice")
        assert [w.workout_id for w in workouts] == ["early", "late"]
        assert store.get_workout("alice", "late") == _workout("late", 5)
        assert store.get_workout("alice", "missing") is None

    def test_duplicate_id_rejected(self, store):
        store.append_workout("alice", _workout("w1", 2))
        with pytest.raises(InvalidWorkoutError):
            store.append_workout("alice", _workout("w1", 3))
        assert len(store.load_workouts("alice")) == 1

    def test_append_for_unknown_user(self, store):
        with pytest.raises(UnknownUserError):
            store.append_workout("bob", _workout("w1", 2))

    def test_corrupt_line_reports_line_number(self, store):
        store.append_workout("alice", _workout("w1", 2))
        with open(store.workouts_path("alice"), "a") as f:
            f.write("{broken\n")
        with pytest.raises(ValidationError, match="line 2"):
            store.load_workouts("alice")

    def test_blank_lines_are_skipped(self, store):
        with open(store.workouts_path("alice"), "a") as f:
            f.write("\n" + workout_to_json_line(_workout("w1", 2)) + "\n\n")
        assert [w.workout_id for w in store.load_workouts("alice")] == ["w1"]


class TestDefaultDataDir:
    def test_env_var_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FATIGUE_TRACKER_HOME", str(tmp_path / "home"))
        assert get_default_data_dir() == tmp_path / "home"

    def test_falls_back_to_home(self, monkeypatch):
        monkeypatch.delenv("FATIGUE_TRACKER_HOME", raising=False)
        assert get_default_data_dir().name == ".fatigue-tracker"
