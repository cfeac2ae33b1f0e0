"""
Smoke tests for the fatigue-tracker CLI.

Tests basic functionality:
- App runs and shows help
- A user can be initialized
- Workouts can be logged (and re-logging is a no-op)
- Status, recovery and forecast views render
- Baselines can be overridden and rebuilt
- Exercise suggestions render
- Engine errors exit with code 1
"""

import json

import pytest
from typer.testing import CliRunner

from fatigue_tracker.cli.main import app


runner = CliRunner()

BENCH = "ex02:3x10@105"


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    """Keep user config and catalog overrides out of the tests."""
    monkeypatch.setenv("FATIGUE_TRACKER_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("FATIGUE_TRACKER_CONFIG", raising=False)


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    result = runner.invoke(app, ["init", "--data-dir", str(path)])
    assert result.exit_code == 0, result.output
    return path


def _invoke(data_dir, *args):
    return runner.invoke(app, [*args, "--data-dir", str(data_dir)])


def _log_bench(data_dir, workout_id="w1"):
    return _invoke(
        data_dir, "log-workout", "-e", BENCH, "--date", "2025-03-01", "--id", workout_id, "--json"
    )


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "log-workout" in result.output
        assert "status" in result.output

    def test_init_creates_state(self, tmp_path):
        path = tmp_path / "data"
        result = runner.invoke(app, ["init", "--data-dir", str(path), "-x", "Advanced", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["created"] is True
        assert data["experience"] == "Advanced"
        assert (path / "default" / "state.json").exists()

    def test_init_twice_warns(self, data_dir):
        result = _invoke(data_dir, "init")
        assert result.exit_code == 0
        assert "already initialized" in result.output

    def test_init_unknown_experience(self, tmp_path):
        result = runner.invoke(app, ["init", "--data-dir", str(tmp_path / "data"), "-x", "Elite"])
        assert result.exit_code == 1

    def test_log_workout(self, data_dir):
        result = _log_bench(data_dir)
        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["workout_id"] == "w1"
        assert report["already_processed"] is False
        pecs = next(m for m in report["muscles"] if m["muscle"] == "Pectoralis")
        # 3150 × 85% against the Intermediate seed of 10,000
        assert pecs["volume"] == pytest.approx(2677.5)
        assert pecs["fatigue_percent"] == pytest.approx(26.78, abs=0.01)
        assert pecs["status"] == "ready"
        assert {r["field"] for r in report["personal_records"]} == {
            "best_single_set",
            "best_session_volume",
        }

    def test_log_workout_same_id_is_noop(self, data_dir):
        _log_bench(data_dir)
        result = _log_bench(data_dir)
        assert result.exit_code == 0
        assert json.loads(result.stdout)["already_processed"] is True

    def test_log_workout_text_output(self, data_dir):
        result = _invoke(data_dir, "log-workout", "-e", BENCH, "--date", "2025-03-01")
        assert result.exit_code == 0
        assert "Logged workout" in result.output

    def test_log_workout_requires_exercise(self, data_dir):
        result = _invoke(data_dir, "log-workout")
        assert result.exit_code == 1

    def test_log_workout_bad_set_notation(self, data_dir):
        result = _invoke(data_dir, "log-workout", "-e", "ex02:ten@105")
        assert result.exit_code == 1
        assert "Invalid set" in result.output

    def test_unknown_exercise_fails(self, data_dir):
        result = _invoke(data_dir, "log-workout", "-e", "nope:10@100", "--date", "2025-03-01")
        assert result.exit_code == 1
        assert "Calculation failed" in result.output
        # nothing was saved
        assert (data_dir / "default" / "workouts.jsonl").read_text() == ""

    def test_uninitialized_user(self, data_dir):
        result = _invoke(data_dir, "status", "--user", "bob")
        assert result.exit_code == 1
        assert "No data for user" in result.output

    def test_status_before_any_workout(self, data_dir):
        result = _invoke(data_dir, "status")
        assert result.exit_code == 0
        assert "No workouts logged yet" in result.output

    def test_status(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "status", "--at", "2025-03-02", "--json")
        assert result.exit_code == 0
        muscles = {m["muscle"]: m for m in json.loads(result.stdout)["muscles"]}
        assert len(muscles) == 13
        # one day of recovery at 15 points per day
        assert muscles["Pectoralis"]["current_fatigue"] == pytest.approx(11.78, abs=0.01)
        assert muscles["Quadriceps"]["last_trained"] is None

    def test_status_before_last_workout_fails(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "status", "--at", "2025-02-01")
        assert result.exit_code == 1
        assert "Calculation failed" in result.output

    def test_recovery(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "recovery", "Pectoralis", "--at", "2025-03-01T12:00:00Z", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["status"]["muscle"] == "Pectoralis"
        assert [p["hours_after"] for p in data["timeline"]["projections"]] == [24, 48, 72]

    def test_recovery_text_output(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "recovery", "chest", "--at", "2025-03-02")
        assert result.exit_code == 0
        assert "Pectoralis" in result.output

    def test_recovery_never_trained(self, data_dir):
        result = _invoke(data_dir, "recovery", "Calves", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["timeline"] is None

    def test_recovery_unknown_muscle(self, data_dir):
        result = _invoke(data_dir, "recovery", "Wings")
        assert result.exit_code == 1

    def test_forecast(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "forecast", "-e", BENCH, "--at", "2025-03-02", "--json")
        assert result.exit_code == 0
        muscles = {m["muscle"]: m for m in json.loads(result.stdout)["muscles"]}
        pecs = muscles["Pectoralis"]
        assert pecs["planned_fatigue"] == pytest.approx(26.78, abs=0.01)
        assert pecs["projected_fatigue"] == pytest.approx(
            pecs["current_fatigue"] + pecs["planned_fatigue"], abs=0.02
        )
        # forecasting saves nothing
        assert len((data_dir / "default" / "workouts.jsonl").read_text().splitlines()) == 1

    def test_baselines_and_override(self, data_dir):
        result = _invoke(data_dir, "set-baseline", "Pectoralis", "20000", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["Pectoralis"]["effective"] == 20000.0

        result = _invoke(data_dir, "baselines", "--json")
        data = json.loads(result.stdout)
        assert data["Pectoralis"]["user_override"] == 20000.0
        assert data["Lats"]["effective"] == 10000.0

        result = _invoke(data_dir, "set-baseline", "Pectoralis", "--clear")
        assert result.exit_code == 0
        assert "Cleared" in result.output

    def test_set_baseline_needs_value_or_clear(self, data_dir):
        result = _invoke(data_dir, "set-baseline", "Pectoralis")
        assert result.exit_code == 1

    def test_set_baseline_rejects_non_positive(self, data_dir):
        result = _invoke(data_dir, "set-baseline", "Pectoralis", "0")
        assert result.exit_code == 1

    def test_records(self, data_dir):
        result = _invoke(data_dir, "records")
        assert result.exit_code == 0
        assert "No personal bests yet" in result.output

        _log_bench(data_dir)
        result = _invoke(data_dir, "records", "--json")
        bests = json.loads(result.stdout)
        assert bests["ex02"]["best_single_set"] == 1050.0
        assert bests["ex02"]["best_session_volume"] == 3150.0

    def test_rebuild(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "rebuild", "--force", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["workouts"] == 1
        assert data["personal_bests"]["ex02"]["best_session_volume"] == 3150.0

    def test_rebuild_cancelled(self, data_dir):
        result = runner.invoke(app, ["rebuild", "--data-dir", str(data_dir)], input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.output

    def test_exercises(self, data_dir):
        result = _invoke(data_dir, "exercises", "--json")
        assert result.exit_code == 0
        catalog = {ex["id"]: ex for ex in json.loads(result.stdout)}
        assert catalog["ex02"]["muscles"]["Pectoralis"] == 85
        assert catalog["ex04"]["muscles"]["Lats"] == 55

    def test_recommend(self, data_dir):
        _log_bench(data_dir)
        result = _invoke(data_dir, "recommend", "Pectoralis", "--at", "2025-03-02", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["target"] == "Pectoralis"
        assert data["total_eligible"] >= len(data["safe"]) > 0
        assert "ex02" in {r["exercise_id"] for r in data["safe"]}
        assert all(r["target_engagement"] >= 5 for r in data["safe"])
        scores = [r["score"] for r in data["safe"]]
        assert scores == sorted(scores, reverse=True)

    def test_recommend_heavy_estimate_is_unsafe(self, data_dir):
        result = _invoke(data_dir, "recommend", "Lats", "--weight", "1000", "--avoid", "ex04", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["unsafe"]
        assert all(r["score"] == 0 and r["warnings"] for r in data["unsafe"])
        assert "ex04" not in {r["exercise_id"] for r in data["safe"] + data["unsafe"]}

    def test_recommend_text_output(self, data_dir):
        result = _invoke(data_dir, "recommend", "chest")
        assert result.exit_code == 0
        assert "Exercises for Pectoralis" in result.output

    def test_recommend_unknown_muscle(self, data_dir):
        result = _invoke(data_dir, "recommend", "Wings")
        assert result.exit_code == 1
