"""
Workout processing: the single write path of the engine.

Processing one workout runs, inside one store transaction:

    (a) per-muscle and per-exercise volumes
    (b) MuscleState (fatigue, volume today, last trained, ready time)
    (c) MuscleBaseline ratchet
    (d) PersonalBest updates
    then the workout id is marked processed.

Fatigue is evaluated against the baselines as they were before this
workout's ratchet, so a workout above capacity reports more than 100%.
Any exception leaves the stored state untouched.  The workout itself is
saved to the log before processing and may stay there unprocessed; running
process_workout again is safe.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timedelta

from .baselines import (
    learn_baselines,
    rebuild_baselines,
    seed_baselines,
    summarize_updates,
    validate_baseline_update,
)
from .config import RECENT_HISTORY_DAYS, EngineConfig, load_engine_config
from .errors import InvalidWorkoutError
from .exercises.base import Exercise
from .exercises.muscles import ALL_MUSCLES, Muscle
from .exercises.registry import get_default_catalog
from .fatigue import classify, evaluate_muscle_fatigue, fatigue_percent, fatigue_warnings
from .models import (
    MuscleBaseline,
    MuscleForecast,
    MuscleState,
    PersonalBest,
    ReadinessStatus,
    RecommendationSet,
    RecoveryStatus,
    RecoveryTimeline,
    UserLedger,
    Workout,
    WorkoutReport,
    WorkoutVolume,
    as_utc,
    utc_now,
)
from .records import detect_personal_records, rebuild_personal_bests
from .recommender import RecommendOptions, recommend_exercises
from .recovery import RecoveryModel, days_between
from .volume import calculate_workout_volume

logger = logging.getLogger(__name__)


class WorkoutProcessor:
    """
    Entry point for every engine operation, keyed by an explicit user id.

    Args:
        store: Persistence boundary (see io.state_store.StateStore)
        catalog: Exercise id → Exercise (bundled catalog by default)
        config: Engine configuration (merged YAML by default)
    """

    def __init__(
        self,
        store,
        catalog: Mapping[str, Exercise] | None = None,
        config: EngineConfig | None = None,
    ):
        self.store = store
        self.config = config or load_engine_config()
        self.catalog = catalog if catalog is not None else get_default_catalog(
            self.config.muscle_name_policy
        )

    def _model(self, muscle: Muscle) -> RecoveryModel:
        return RecoveryModel.from_config(self.config, muscle.value)

    # =========================================================================
    # Setup
    # =========================================================================

    def init_user(
        self,
        user_id: str,
        experience: str = "Intermediate",
        overwrite: bool = False,
    ) -> UserLedger:
        """
        Seed baselines and never-trained states for a new user.

        Every tracked muscle gets a baseline row, so fatigue can always be
        computed for a muscle that receives volume.

        Returns:
            The stored ledger (the existing one if already initialized)
        """
        seed = self.config.baseline_for_experience(experience)
        ledger = UserLedger(
            user_id=user_id,
            experience=experience,
            baselines=seed_baselines(seed),
            states={m: MuscleState() for m in ALL_MUSCLES},
        )
        if not self.store.init_user(ledger, overwrite=overwrite):
            return self.store.load(user_id)
        return ledger

    # =========================================================================
    # Write path
    # =========================================================================

    def complete_workout(self, user_id: str, workout: Workout) -> WorkoutReport:
        """
        Save a completed workout and process it.

        Exercise ids are checked against the catalog before anything is
        saved.  Submitting an already-saved workout again (same id, same
        content) just re-runs processing, which is a no-op once it has
        succeeded.

        Raises:
            UnknownExerciseError: If an exercise id is not in the catalog
            InvalidWorkoutError: If a different workout with this id exists
            BaselineMissingError: If a trained muscle has no baseline row
        """
        calculate_workout_volume(workout, self.catalog)

        existing = self.store.get_workout(user_id, workout.workout_id)
        if existing is None:
            self.store.append_workout(user_id, workout)
        elif existing != workout:
            raise InvalidWorkoutError(
                f"Workout {workout.workout_id} is already saved with different content"
            )
        return self.process_workout(user_id, workout.workout_id)

    def process_workout(self, user_id: str, workout_id: str) -> WorkoutReport:
        """
        Apply a saved workout to the user's state.

        Idempotent per workout id: a workout that has already been processed
        returns a report with ``already_processed=True`` and changes nothing.

        Raises:
            InvalidWorkoutError: If no workout with this id is saved
        """
        workout = self.store.get_workout(user_id, workout_id)
        if workout is None:
            raise InvalidWorkoutError(f"Workout {workout_id} is not saved for user {user_id}")

        if self.store.load(user_id).is_processed(workout_id):
            logger.info("Workout %s already processed for user %s", workout_id, user_id)
            return self._replay_report(user_id, workout)

        with self.store.transaction(user_id) as ledger:
            if ledger.is_processed(workout_id):
                report = None
            else:
                report = self._apply(ledger, workout)

        if report is None:
            return self._replay_report(user_id, workout)
        logger.info(
            "Processed workout %s for user %s: %d muscles, %d baseline updates, %d PRs",
            workout_id,
            user_id,
            len(report.muscles),
            len(report.baseline_updates),
            len(report.personal_records),
        )
        return report

    def _apply(self, ledger: UserLedger, workout: Workout) -> WorkoutReport:
        # (a) volumes
        volume = calculate_workout_volume(workout, self.catalog)
        results = evaluate_muscle_fatigue(volume.muscle_volumes, ledger.baselines, self.config)

        # (b) muscle states, against pre-ratchet baselines
        for result in results:
            self._update_state(ledger, result.muscle, result.volume, result.baseline, workout)

        # (c) baselines
        updates = learn_baselines(volume.muscle_volumes, ledger.baselines)
        for u in updates:
            logger.debug("Baseline %s: %.1f -> %.1f", u.muscle, u.old_value, u.new_value)

        # (d) personal bests
        records = detect_personal_records(
            volume.exercises, ledger.personal_bests, self.config.pb_rolling_window
        )

        ledger.processed_workout_ids.append(workout.workout_id)

        warnings = fatigue_warnings(results, self.config.thresholds)
        for u in updates:
            ok, reason = validate_baseline_update(
                u.old_value, u.new_value, self.config.max_baseline_increase_percent
            )
            if not ok:
                warnings.append(f"{u.muscle}: {reason}")
        if updates:
            logger.debug(summarize_updates(updates))

        return WorkoutReport(
            user_id=ledger.user_id,
            workout_id=workout.workout_id,
            performed_at=workout.performed_at,
            muscles=tuple(results),
            exercises=volume.exercises,
            baseline_updates=tuple(updates),
            personal_records=tuple(records),
            warnings=tuple(warnings),
        )

    def _update_state(
        self,
        ledger: UserLedger,
        muscle: Muscle,
        volume: float,
        baseline: float,
        workout: Workout,
    ) -> None:
        """
        Fold this workout into a muscle's cached state.

        New fatigue is the residual fatigue decayed to the workout time plus
        this workout's own fatigue, the same sum forecast_workout projects.
        volume_today keeps adding up while workouts are less than a day
        apart.  A workout older than the stored last_trained leaves the
        state alone.
        """
        previous = ledger.state_for(muscle)
        performed_at = workout.performed_at
        model = self._model(muscle)
        added = fatigue_percent(volume, baseline, str(muscle))
        residual = 0.0

        if previous.last_trained is not None:
            if performed_at < previous.last_trained:
                logger.debug(
                    "Workout %s predates last training of %s; state kept",
                    workout.workout_id,
                    muscle,
                )
                return
            gap = days_between(previous.last_trained, performed_at)
            residual = model.fatigue_after(previous.fatigue_percent, gap)
            if gap < 1:
                volume += previous.volume_today

        pct = residual + added
        ledger.states[muscle] = MuscleState(
            fatigue_percent=pct,
            volume_today=volume,
            last_trained=performed_at,
            recovered_at=model.ready_at(pct, performed_at),
        )

    def _replay_report(self, user_id: str, workout: Workout) -> WorkoutReport:
        """Report for a workout that was processed earlier (no state change)."""
        ledger = self.store.load(user_id)
        volume = calculate_workout_volume(workout, self.catalog)
        results = evaluate_muscle_fatigue(volume.muscle_volumes, ledger.baselines, self.config)
        return WorkoutReport(
            user_id=user_id,
            workout_id=workout.workout_id,
            performed_at=workout.performed_at,
            muscles=tuple(results),
            exercises=volume.exercises,
            already_processed=True,
        )

    def set_baseline_override(
        self,
        user_id: str,
        muscle: Muscle,
        value: float | None,
    ) -> MuscleBaseline:
        """
        Set or clear a user override of a muscle's baseline.

        The learned value is left as it is.

        Raises:
            ValueError: If value is not a positive number
        """
        with self.store.transaction(user_id) as ledger:
            current = ledger.baselines.get(muscle) or MuscleBaseline(
                system_learned_max=self.config.default_baseline
            )
            updated = MuscleBaseline(
                system_learned_max=current.system_learned_max,
                user_override=value,
            )
            ledger.baselines[muscle] = updated
        logger.info("User %s set %s baseline override to %s", user_id, muscle, value)
        return updated

    def rebuild(self, user_id: str) -> UserLedger:
        """
        Recalculate learned baselines and personal bests from the workout log.

        Corrective operation.  Learned baselines are recomputed from the
        experience seed, so they can go down if the log no longer contains
        the workout that raised them.  Overrides and muscle states are kept.
        Every workout in the log is marked processed.
        """
        workouts = self.store.load_workouts(user_id)
        with self.store.transaction(user_id) as ledger:
            seed = self.config.experience_baselines.get(
                ledger.experience, self.config.default_baseline
            )
            ledger.baselines = rebuild_baselines(workouts, self.catalog, ledger.baselines, seed)
            ledger.personal_bests = rebuild_personal_bests(
                workouts, self.catalog, self.config.pb_rolling_window
            )
            ledger.processed_workout_ids = [w.workout_id for w in workouts]
        logger.info(
            "Rebuilt baselines and personal bests for user %s from %d workouts",
            user_id,
            len(workouts),
        )
        return ledger

    # =========================================================================
    # Read path (never mutates stored state)
    # =========================================================================

    def _status(self, muscle: Muscle, state: MuscleState, at: datetime) -> RecoveryStatus:
        model = self._model(muscle)
        if state.never_trained:
            return RecoveryStatus(
                muscle=muscle,
                at=at,
                initial_fatigue=0.0,
                current_fatigue=0.0,
                status=ReadinessStatus.READY,
                last_trained=None,
                days_elapsed=None,
                days_until_ready=0.0,
                ready_at=None,
            )
        days = days_between(state.last_trained, at)
        current = model.fatigue_after(state.fatigue_percent, days)
        return RecoveryStatus(
            muscle=muscle,
            at=at,
            initial_fatigue=state.fatigue_percent,
            current_fatigue=current,
            status=classify(current, self.config.thresholds),
            last_trained=state.last_trained,
            days_elapsed=days,
            days_until_ready=model.days_until_ready(current),
            ready_at=model.ready_at(state.fatigue_percent, state.last_trained),
        )

    def muscle_status(
        self,
        user_id: str,
        muscle: Muscle,
        at: datetime | None = None,
    ) -> RecoveryStatus:
        """
        Current fatigue and readiness of one muscle at a point in time.

        Raises:
            UnknownUserError: If the user has not been initialized
            RecoveryQueryError: If at is earlier than the muscle's last training
        """
        at = as_utc(at) if at is not None else utc_now()
        ledger = self.store.load(user_id)
        return self._status(muscle, ledger.state_for(muscle), at)

    def recovery_overview(self, user_id: str, at: datetime | None = None) -> list[RecoveryStatus]:
        """Status of every tracked muscle at a point in time."""
        at = as_utc(at) if at is not None else utc_now()
        ledger = self.store.load(user_id)
        return [self._status(m, ledger.state_for(m), at) for m in ALL_MUSCLES]

    def recovery_timeline(
        self,
        user_id: str,
        muscle: Muscle,
        at: datetime | None = None,
    ) -> RecoveryTimeline | None:
        """Recovery timeline since last training, or None if never trained."""
        at = as_utc(at) if at is not None else utc_now()
        state = self.store.load(user_id).state_for(muscle)
        if state.never_trained:
            return None
        return self._model(muscle).timeline(state.fatigue_percent, state.last_trained, at)

    def forecast_workout(
        self,
        user_id: str,
        workout: Workout,
        at: datetime | None = None,
    ) -> list[MuscleForecast]:
        """
        Fatigue a planned workout would cause, beside current fatigue.

        Nothing is saved.  Muscles are returned in Muscle declaration order.
        """
        at = as_utc(at) if at is not None else utc_now()
        ledger = self.store.load(user_id)
        volume: WorkoutVolume = calculate_workout_volume(workout, self.catalog)
        results = evaluate_muscle_fatigue(volume.muscle_volumes, ledger.baselines, self.config)

        forecasts: list[MuscleForecast] = []
        for r in results:
            current = self._status(r.muscle, ledger.state_for(r.muscle), at).current_fatigue
            projected = current + r.fatigue_percent
            forecasts.append(
                MuscleForecast(
                    muscle=r.muscle,
                    current_fatigue=current,
                    planned_volume=r.volume,
                    planned_fatigue=r.fatigue_percent,
                    projected_fatigue=projected,
                    status=classify(projected, self.config.thresholds),
                    exceeds_baseline=r.exceeds_baseline,
                )
            )
        return forecasts

    def recommend_exercises(
        self,
        user_id: str,
        target: Muscle,
        at: datetime | None = None,
        options: RecommendOptions | None = None,
    ) -> RecommendationSet:
        """
        Rank catalog exercises for a target muscle at a point in time.

        Uses the decayed fatigue of every muscle from recovery_overview.
        When ``options.recent_exercises`` is None, the exercises logged in
        the RECENT_HISTORY_DAYS before ``at`` feed the variety factor.
        Nothing is saved.
        """
        at = as_utc(at) if at is not None else utc_now()
        options = options or RecommendOptions()
        current = {s.muscle: s.current_fatigue for s in self.recovery_overview(user_id, at)}

        if options.recent_exercises is None:
            since = at - timedelta(days=RECENT_HISTORY_DAYS)
            recent = tuple(
                e.exercise_id
                for w in self.store.load_workouts(user_id)
                if since <= w.performed_at <= at
                for e in w.exercises
            )
            options = replace(options, recent_exercises=recent)

        return recommend_exercises(
            self.catalog, target, current, self.baselines(user_id), options
        )

    def personal_bests(self, user_id: str) -> dict[str, PersonalBest]:
        """Stored personal bests, by exercise id."""
        return self.store.load(user_id).personal_bests

    def baselines(self, user_id: str) -> dict[Muscle, MuscleBaseline]:
        return self.store.load(user_id).baselines
