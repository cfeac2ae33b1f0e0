"""
Integration tests for workout processing against a real file-backed store.

Covers the write ordering (fatigue against pre-ratchet baselines), atomicity
of failed processing, idempotency per workout id, per-user isolation and the
read-only recovery queries.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from fatigue_tracker.core.config import EngineConfig
from fatigue_tracker.core.errors import (
    BaselineMissingError,
    InvalidWorkoutError,
    RecoveryQueryError,
    UnknownExerciseError,
    UnknownUserError,
)
from fatigue_tracker.core.exercises import Exercise, ExerciseCatalog, Muscle, MuscleEngagement
from fatigue_tracker.core.models import LoggedExercise, LoggedSet, ReadinessStatus, Workout
from fatigue_tracker.core.processor import WorkoutProcessor
from fatigue_tracker.core.recovery import RecoveryModel
from fatigue_tracker.io.state_store import StateStore

T0 = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def _exercise(ex_id: str, category: str, **muscles: float) -> Exercise:
    return Exercise(
        exercise_id=ex_id,
        name=ex_id.title(),
        category=category,
        engagements=tuple(MuscleEngagement(Muscle[m], p) for m, p in muscles.items()),
    )


CATALOG = ExerciseCatalog([
    _exercise("ex02", "Push", PECTORALIS=85, TRICEPS=35, DELTOIDS=35, CORE=10),
    _exercise("ex04", "Pull", LATS=55, BICEPS=40, RHOMBOIDS=30, FOREARMS=20),
    _exercise("quad", "Legs", QUADRICEPS=100),
])


def _sets(n: int, reps: float, weight: float) -> tuple[LoggedSet, ...]:
    return tuple(LoggedSet(weight=weight, reps=reps) for _ in range(n))


def _workout(wid: str, *exercises: LoggedExercise, at: datetime = T0) -> Workout:
    return Workout(workout_id=wid, performed_at=at, exercises=exercises)


def _quad_workout(wid: str = "q1", at: datetime = T0, weight: float = 377) -> Workout:
    """3 × 10 @ 377 = 11,310 on Quadriceps."""
    return _workout(wid, LoggedExercise("quad", _sets(3, 10, weight)), at=at)


def _bench_workout(wid: str = "b1", at: datetime = T0) -> Workout:
    """3 × 10 @ 105 + 3 × 10 @ 90 = 5,850 session volume."""
    return _workout(
        wid, LoggedExercise("ex02", _sets(3, 10, 105) + _sets(3, 10, 90)), at=at
    )


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "data")


@pytest.fixture
def processor(store):
    p = WorkoutProcessor(store, catalog=CATALOG, config=EngineConfig())
    p.init_user("alice")
    return p


def _state_bytes(store: StateStore, user_id: str = "alice") -> bytes:
    return store.state_path(user_id).read_bytes()


class TestWorkoutProcessing:
    def test_exceeding_workout_reports_and_ratchets(self, processor, store):
        report = processor.complete_workout("alice", _quad_workout())

        quad = report.fatigue_for(Muscle.QUADRICEPS)
        assert quad.fatigue_percent == pytest.approx(113.1)
        assert quad.exceeds_baseline
        assert quad.baseline == 10_000
        (update,) = report.baseline_updates
        assert update.muscle is Muscle.QUADRICEPS
        assert update.new_value == pytest.approx(11_310)

        ledger = store.load("alice")
        assert ledger.baselines[Muscle.QUADRICEPS].system_learned_max == pytest.approx(11_310)
        state = ledger.states[Muscle.QUADRICEPS]
        assert state.fatigue_percent == pytest.approx(113.1)
        assert state.volume_today == pytest.approx(11_310)
        assert state.last_trained == T0
        expected_ready = RecoveryModel().ready_at(state.fatigue_percent, T0)
        assert abs((state.recovered_at - expected_ready).total_seconds()) < 1
        assert ledger.is_processed("q1")

    def test_recovery_after_one_and_five_days(self, processor):
        processor.complete_workout("alice", _quad_workout())

        day1 = processor.muscle_status("alice", Muscle.QUADRICEPS, T0 + timedelta(days=1))
        assert day1.current_fatigue == pytest.approx(98.1)
        assert day1.status is ReadinessStatus.DONT_TRAIN

        day5 = processor.muscle_status("alice", Muscle.QUADRICEPS, T0 + timedelta(days=5))
        assert day5.current_fatigue == pytest.approx(38.1)
        assert day5.status is ReadinessStatus.READY
        assert day5.days_until_ready == 0

    def test_first_time_personal_best(self, processor, store):
        report = processor.complete_workout("alice", _bench_workout())

        events = {e.field: e for e in report.personal_records}
        assert events["best_single_set"].new_value == 1050
        assert events["best_session_volume"].new_value == 5850
        assert all(e.is_first_time and e.percent_increase is None for e in events.values())

        pb = store.load("alice").personal_bests["ex02"]
        assert (pb.best_single_set, pb.best_session_volume) == (1050, 5850)

    def test_unknown_exercise_changes_nothing(self, processor, store):
        before = _state_bytes(store)
        bad = _workout(
            "bad",
            LoggedExercise("ex02", _sets(3, 10, 105)),
            LoggedExercise("ex999", _sets(1, 10, 10)),
        )
        with pytest.raises(UnknownExerciseError):
            processor.complete_workout("alice", bad)

        assert _state_bytes(store) == before
        assert store.load_workouts("alice") == []

    def test_failure_mid_processing_rolls_back_and_is_rerunnable(self, processor, store):
        with store.transaction("alice") as ledger:
            del ledger.baselines[Muscle.CORE]
        before = _state_bytes(store)

        with pytest.raises(BaselineMissingError):
            processor.complete_workout("alice", _bench_workout())

        # Saved but not processed; nothing else moved.
        assert _state_bytes(store) == before
        assert store.get_workout("alice", "b1") is not None
        assert not store.load("alice").is_processed("b1")

        processor.set_baseline_override("alice", Muscle.CORE, None)
        report = processor.process_workout("alice", "b1")
        assert not report.already_processed
        assert store.load("alice").is_processed("b1")

    def test_reprocessing_is_a_no_op(self, processor, store):
        processor.complete_workout("alice", _bench_workout())
        before = _state_bytes(store)

        again = processor.complete_workout("alice", _bench_workout())
        assert again.already_processed
        assert again.personal_records == ()
        assert again.baseline_updates == ()
        assert _state_bytes(store) == before

        assert processor.process_workout("alice", "b1").already_processed
        assert _state_bytes(store) == before
        assert len(store.load_workouts("alice")) == 1

    def test_same_id_different_content_rejected(self, processor):
        processor.complete_workout("alice", _bench_workout())
        with pytest.raises(InvalidWorkoutError):
            processor.complete_workout("alice", _quad_workout(wid="b1"))

    def test_process_unsaved_workout_rejected(self, processor):
        with pytest.raises(InvalidWorkoutError):
            processor.process_workout("alice", "missing")

    def test_uninitialized_user(self, store):
        p = WorkoutProcessor(store, catalog=CATALOG, config=EngineConfig())
        with pytest.raises(UnknownUserError):
            p.complete_workout("nobody", _bench_workout())

    def test_same_day_volume_accumulates(self, processor, store):
        processor.complete_workout("alice", _quad_workout("am", weight=100))
        processor.complete_workout("alice", _quad_workout("pm", T0 + timedelta(hours=6), weight=100))

        state = store.load("alice").states[Muscle.QUADRICEPS]
        assert state.volume_today == pytest.approx(6_000)
        # 30% decayed for 6 h (30 − 3.75) plus the second 30%
        assert state.fatigue_percent == pytest.approx(56.25)
        assert state.last_trained == T0 + timedelta(hours=6)

    def test_next_day_workout_adds_to_residual_fatigue(self, processor, store):
        processor.complete_workout("alice", _quad_workout("d1", weight=100))
        processor.complete_workout("alice", _quad_workout("d2", T0 + timedelta(days=1), weight=50))

        state = store.load("alice").states[Muscle.QUADRICEPS]
        assert state.volume_today == pytest.approx(1_500)
        # 30% − 15 points of recovery, plus 15%
        assert state.fatigue_percent == pytest.approx(30.0)

    def test_workout_after_midnight_keeps_residual_fatigue(self, processor, store):
        late = datetime(2025, 3, 1, 23, 0, tzinfo=timezone.utc)
        early = late + timedelta(hours=2)
        processor.complete_workout("alice", _quad_workout("late", late, weight=300))  # 90%

        plan = _quad_workout("early", early, weight=50)  # 15%
        (forecast,) = processor.forecast_workout("alice", plan, early)
        processor.complete_workout("alice", plan)

        state = store.load("alice").states[Muscle.QUADRICEPS]
        assert state.fatigue_percent == pytest.approx(90 - 15 / 12 + 15)
        assert state.fatigue_percent == pytest.approx(forecast.projected_fatigue)
        assert state.volume_today == pytest.approx(10_500)
        status = processor.muscle_status("alice", Muscle.QUADRICEPS, early)
        assert status.status is ReadinessStatus.DONT_TRAIN

    def test_older_workout_keeps_newer_state_but_updates_bests(self, processor, store):
        processor.complete_workout("alice", _quad_workout("new", T0, weight=100))
        processor.complete_workout(
            "alice", _quad_workout("old", T0 - timedelta(days=3), weight=500)
        )

        ledger = store.load("alice")
        assert ledger.states[Muscle.QUADRICEPS].last_trained == T0
        assert ledger.states[Muscle.QUADRICEPS].volume_today == pytest.approx(3_000)
        assert ledger.baselines[Muscle.QUADRICEPS].system_learned_max == pytest.approx(15_000)
        assert ledger.personal_bests["quad"].best_single_set == 5_000

    def test_fatigue_uses_pre_ratchet_baseline(self, processor):
        first = processor.complete_workout("alice", _quad_workout("a", weight=500))
        assert first.fatigue_for(Muscle.QUADRICEPS).fatigue_percent == pytest.approx(150.0)
        second = processor.complete_workout(
            "alice", _quad_workout("b", T0 + timedelta(days=2), weight=500)
        )
        assert second.fatigue_for(Muscle.QUADRICEPS).fatigue_percent == pytest.approx(100.0)
        assert second.baseline_updates == ()

    def test_large_jump_warned(self, processor):
        report = processor.complete_workout("alice", _quad_workout(weight=600))
        assert any("exceeds maximum" in w for w in report.warnings)

    def test_baseline_monotonic_across_workouts(self, processor, store):
        learned = []
        for i, weight in enumerate([377, 200, 400, 100, 399]):
            processor.complete_workout(
                "alice", _quad_workout(f"w{i}", T0 + timedelta(days=i), weight=weight)
            )
            learned.append(store.load("alice").baselines[Muscle.QUADRICEPS].system_learned_max)
        assert learned == sorted(learned)
        assert learned[-1] == pytest.approx(12_000)


class TestUsersAndOverrides:
    def test_users_are_isolated(self, processor, store):
        processor.init_user("bob", experience="Advanced")
        processor.complete_workout("alice", _quad_workout())

        bob = store.load("bob")
        assert bob.baselines[Muscle.QUADRICEPS].system_learned_max == 15_000
        assert bob.states[Muscle.QUADRICEPS].never_trained
        assert bob.personal_bests == {}

    def test_init_seeds_by_experience(self, processor, store):
        processor.init_user("carol", experience="Beginner")
        ledger = store.load("carol")
        assert set(ledger.baselines) == set(Muscle)
        assert all(b.system_learned_max == 5_000 for b in ledger.baselines.values())

    def test_init_twice_keeps_existing(self, processor, store):
        processor.complete_workout("alice", _bench_workout())
        ledger = processor.init_user("alice", experience="Beginner")
        assert ledger.experience == "Intermediate"
        assert "ex02" in ledger.personal_bests

    def test_unknown_experience(self, processor):
        with pytest.raises(ValueError):
            processor.init_user("dave", experience="Olympian")

    def test_override_used_for_fatigue_and_kept_by_ratchet(self, processor, store):
        processor.set_baseline_override("alice", Muscle.QUADRICEPS, 5_000)
        report = processor.complete_workout("alice", _quad_workout())

        assert report.fatigue_for(Muscle.QUADRICEPS).fatigue_percent == pytest.approx(226.2)
        baseline = store.load("alice").baselines[Muscle.QUADRICEPS]
        assert baseline.user_override == 5_000
        assert baseline.system_learned_max == pytest.approx(11_310)

        cleared = processor.set_baseline_override("alice", Muscle.QUADRICEPS, None)
        assert cleared.user_override is None
        assert cleared.effective == pytest.approx(11_310)

    def test_invalid_override_rejected(self, processor, store):
        before = _state_bytes(store)
        with pytest.raises(ValueError):
            processor.set_baseline_override("alice", Muscle.BICEPS, -10)
        assert _state_bytes(store) == before

    def test_rebuild_recomputes_from_log(self, processor, store):
        processor.complete_workout("alice", _quad_workout("a", weight=500))
        processor.complete_workout("alice", _bench_workout("b", T0 + timedelta(days=1)))
        with store.transaction("alice") as ledger:
            ledger.baselines[Muscle.QUADRICEPS].system_learned_max = 99_999
            ledger.personal_bests.clear()
            ledger.processed_workout_ids.clear()

        rebuilt = processor.rebuild("alice")
        assert rebuilt.baselines[Muscle.QUADRICEPS].system_learned_max == pytest.approx(15_000)
        assert rebuilt.personal_bests["ex02"].best_session_volume == 5850
        assert sorted(rebuilt.processed_workout_ids) == ["a", "b"]
        assert store.load("alice").personal_bests["quad"].best_single_set == 5_000


class TestReadPath:
    def test_never_trained_is_ready_with_no_data(self, processor):
        status = processor.muscle_status("alice", Muscle.CALVES, T0)
        assert status.status is ReadinessStatus.READY
        assert status.current_fatigue == 0
        assert status.last_trained is None
        assert processor.recovery_timeline("alice", Muscle.CALVES, T0) is None

    def test_overview_covers_every_muscle(self, processor):
        processor.complete_workout("alice", _bench_workout())
        overview = processor.recovery_overview("alice", T0 + timedelta(hours=12))
        assert [s.muscle for s in overview] == list(Muscle)
        pecs = overview[0]
        assert pecs.initial_fatigue == pytest.approx(49.725)
        assert pecs.current_fatigue == pytest.approx(42.225)
        assert pecs.status is ReadinessStatus.CAUTION

    def test_queries_do_not_mutate(self, processor, store):
        processor.complete_workout("alice", _quad_workout())
        before = _state_bytes(store)
        processor.muscle_status("alice", Muscle.QUADRICEPS, T0 + timedelta(days=2))
        processor.recovery_overview("alice", T0 + timedelta(days=3))
        processor.recovery_timeline("alice", Muscle.QUADRICEPS, T0 + timedelta(days=1))
        processor.forecast_workout("alice", _bench_workout("plan"), T0 + timedelta(days=1))
        processor.recommend_exercises("alice", Muscle.QUADRICEPS, T0 + timedelta(days=1))
        assert _state_bytes(store) == before
        assert len(store.load_workouts("alice")) == 1

    def test_query_before_last_training_rejected(self, processor):
        processor.complete_workout("alice", _quad_workout())
        with pytest.raises(RecoveryQueryError):
            processor.muscle_status("alice", Muscle.QUADRICEPS, T0 - timedelta(hours=1))

    def test_timeline(self, processor):
        processor.complete_workout("alice", _quad_workout(weight=200))  # 6,000 → 60%
        tl = processor.recovery_timeline("alice", Muscle.QUADRICEPS, T0 + timedelta(days=1))
        assert tl.current.fatigue == pytest.approx(45.0)
        assert [p.fatigue for p in tl.projections] == pytest.approx([45.0, 30.0, 15.0])
        assert tl.days_until_ready == pytest.approx(20 / 15)

    def test_forecast_adds_to_decayed_fatigue(self, processor):
        processor.complete_workout("alice", _quad_workout(weight=200))  # 60%
        plan = _quad_workout("plan", weight=100)  # 3,000 → 30% of 10,000
        (f,) = processor.forecast_workout("alice", plan, T0 + timedelta(days=2))
        assert f.current_fatigue == pytest.approx(30.0)
        assert f.planned_fatigue == pytest.approx(30.0)
        assert f.projected_fatigue == pytest.approx(60.0)
        assert f.status is ReadinessStatus.CAUTION
        assert not f.exceeds_baseline

    def test_forecast_unknown_exercise(self, processor):
        plan = _workout("plan", LoggedExercise("ex999", _sets(1, 1, 1)))
        with pytest.raises(UnknownExerciseError):
            processor.forecast_workout("alice", plan, T0)

    def test_recommend_flags_overloaded_muscle(self, processor):
        processor.complete_workout("alice", _quad_workout())  # 113.1%, baseline ratchets to 11,310
        recs = processor.recommend_exercises("alice", Muscle.QUADRICEPS, T0 + timedelta(hours=1))
        assert recs.total_eligible == 1
        assert recs.safe == ()
        (quad,) = recs.unsafe
        assert quad.score == 0
        (b,) = quad.bottlenecks
        assert b.current_fatigue == pytest.approx(113.1 - 0.625)
        assert b.projected_fatigue == pytest.approx(113.1 - 0.625 + 3000 / 11310 * 100)
        # the quad session an hour ago counts against variety
        assert quad.factors.variety == pytest.approx(12.0)

    def test_recommend_after_recovery_ignores_old_history(self, processor):
        processor.complete_workout("alice", _quad_workout())
        recs = processor.recommend_exercises("alice", Muscle.QUADRICEPS, T0 + timedelta(days=8))
        (quad,) = recs.safe
        assert quad.exercise_id == "quad"
        assert quad.factors.variety == pytest.approx(15.0)
        assert quad.score == pytest.approx(90.0)
        assert recs.unsafe == ()


class TestConcurrency:
    def test_concurrent_submissions_are_serialized(self, processor, store):
        weights = [100, 350, 200, 410, 50, 300, 390, 120]
        errors: list[BaseException] = []

        def submit(i: int, weight: float) -> None:
            try:
                processor.complete_workout(
                    "alice", _quad_workout(f"c{i}", T0 + timedelta(days=i), weight=weight)
                )
            except BaseException as e:  # collected and asserted below
                errors.append(e)

        threads = [threading.Thread(target=submit, args=(i, w)) for i, w in enumerate(weights)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        ledger = store.load("alice")
        assert sorted(ledger.processed_workout_ids) == sorted(f"c{i}" for i in range(len(weights)))
        assert ledger.baselines[Muscle.QUADRICEPS].system_learned_max == pytest.approx(12_300)
        assert ledger.personal_bests["quad"].best_single_set == 4_100
        assert len(store.load_workouts("alice")) == len(weights)
