"""
JSON serialization for fatigue-tracker data models.

Handles conversion between dataclasses and JSON-compatible dicts, plus the
compact set notation accepted on the command line.
"""

import json
import math
import re
from datetime import date, datetime, time, timezone
from typing import Any

from ..core.errors import InvalidSetError, InvalidWorkoutError, UnknownMuscleError
from ..core.exercises.muscles import Muscle, parse_muscle
from ..core.models import (
    BaselineUpdate,
    ExerciseVolume,
    LoggedExercise,
    LoggedSet,
    MuscleBaseline,
    MuscleFatigue,
    MuscleForecast,
    MuscleState,
    PersonalBest,
    PersonalRecordEvent,
    Recommendation,
    RecommendationSet,
    RecoveryPoint,
    RecoveryStatus,
    RecoveryTimeline,
    UserLedger,
    Workout,
    WorkoutReport,
    as_utc,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


# reps@weight, optionally prefixed by "<count>x" and suffixed by "!" (to failure)
_SET_RE = re.compile(
    r"^\s*(?:(?P<count>\d+)\s*[xX]\s*)?(?P<reps>\d+(?:\.\d+)?)\s*@\s*(?P<weight>\d+(?:\.\d+)?)\s*(?P<fail>!)?\s*$"
)


def validate_non_negative(value: int | float, name: str) -> float:
    """
    Validate that a value is a finite, non-negative number.

    Raises:
        ValidationError: If value is missing, non-numeric, non-finite or negative
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{name} must be finite and non-negative, got {value}")
    return float(value)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO timestamp or a plain YYYY-MM-DD date.

    A bare date is taken as midnight UTC.  Naive timestamps are taken as UTC.

    Raises:
        ValidationError: If the string is not a recognizable date/time
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    try:
        if re.match(r"^\d{4}-\d{2}-\d{2}$", text):
            return datetime.combine(date.fromisoformat(text), time(), tzinfo=timezone.utc)
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value}. Expected ISO 8601") from e


def format_timestamp(ts: datetime | None) -> str | None:
    return as_utc(ts).isoformat() if ts is not None else None


def _muscle(name: str) -> Muscle:
    try:
        return parse_muscle(name)
    except UnknownMuscleError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# Workouts
# =============================================================================


def logged_set_to_dict(s: LoggedSet) -> dict[str, Any]:
    d: dict[str, Any] = {"weight": s.weight, "reps": s.reps}
    if s.to_failure:
        d["to_failure"] = True
    return d


def dict_to_logged_set(data: dict[str, Any]) -> LoggedSet:
    """
    Convert dict to LoggedSet.

    Raises:
        ValidationError: If weight or reps are missing or invalid
    """
    try:
        return LoggedSet(
            weight=validate_non_negative(data.get("weight"), "weight"),
            reps=validate_non_negative(data.get("reps"), "reps"),
            to_failure=bool(data.get("to_failure", False)),
        )
    except InvalidSetError as e:
        raise ValidationError(str(e)) from e


def workout_to_dict(workout: Workout) -> dict[str, Any]:
    d: dict[str, Any] = {
        "workout_id": workout.workout_id,
        "performed_at": format_timestamp(workout.performed_at),
        "exercises": [
            {
                "exercise_id": e.exercise_id,
                "sets": [logged_set_to_dict(s) for s in e.sets],
            }
            for e in workout.exercises
        ],
    }
    if workout.notes:
        d["notes"] = workout.notes
    return d


def dict_to_workout(data: dict[str, Any]) -> Workout:
    """
    Convert dict to Workout.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        exercises = [
            LoggedExercise(
                exercise_id=e["exercise_id"],
                sets=tuple(dict_to_logged_set(s) for s in e.get("sets", [])),
            )
            for e in data.get("exercises", [])
        ]
        return Workout(
            workout_id=data["workout_id"],
            performed_at=parse_timestamp(data["performed_at"]),
            exercises=tuple(exercises),
            notes=data.get("notes"),
        )
    except KeyError as e:
        raise ValidationError(f"Missing field in workout record: {e}") from e
    except (InvalidSetError, InvalidWorkoutError) as e:
        raise ValidationError(str(e)) from e


def workout_to_json_line(workout: Workout) -> str:
    """Serialize a workout to a single JSON line (no trailing newline)."""
    return json.dumps(workout_to_dict(workout), separators=(",", ":"))


def json_line_to_workout(line: str) -> Workout:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e
    return dict_to_workout(data)


def parse_sets(text: str) -> list[LoggedSet]:
    """
    Parse compact set notation.

    ``"10@105,10@90!"`` → two sets, the second to failure.
    ``"3x10@105"``     → three identical sets of 10 reps at 105.

    Raises:
        ValidationError: If any item does not match ``[Nx]REPS@WEIGHT[!]``
    """
    sets: list[LoggedSet] = []
    for item in text.split(","):
        m = _SET_RE.match(item)
        if m is None:
            raise ValidationError(
                f"Invalid set '{item.strip()}'. Expected REPS@WEIGHT, e.g. 10@105 or 3x10@105!"
            )
        count = int(m.group("count") or 1)
        if count < 1:
            raise ValidationError(f"Set count must be at least 1 in '{item.strip()}'")
        logged = LoggedSet(
            weight=float(m.group("weight")),
            reps=float(m.group("reps")),
            to_failure=m.group("fail") is not None,
        )
        sets.extend([logged] * count)
    return sets


def parse_exercise_spec(text: str) -> LoggedExercise:
    """
    Parse ``EXERCISE_ID:SETS`` as given to ``log-workout --exercise``.

    Raises:
        ValidationError: If the id or the set list is missing or malformed
    """
    exercise_id, sep, sets_text = text.partition(":")
    if not sep or not exercise_id.strip() or not sets_text.strip():
        raise ValidationError(
            f"Invalid exercise '{text}'. Expected ID:SETS, e.g. ex02:10@105,10@90"
        )
    return LoggedExercise(exercise_id=exercise_id.strip(), sets=tuple(parse_sets(sets_text)))


# =============================================================================
# Ledger
# =============================================================================


def baseline_to_dict(b: MuscleBaseline) -> dict[str, Any]:
    return {"system_learned_max": b.system_learned_max, "user_override": b.user_override}


def dict_to_baseline(data: dict[str, Any]) -> MuscleBaseline:
    try:
        return MuscleBaseline(
            system_learned_max=float(data["system_learned_max"]),
            user_override=(
                float(data["user_override"]) if data.get("user_override") is not None else None
            ),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid baseline record: {data!r}") from e


def state_to_dict(s: MuscleState) -> dict[str, Any]:
    return {
        "fatigue_percent": s.fatigue_percent,
        "volume_today": s.volume_today,
        "last_trained": format_timestamp(s.last_trained),
        "recovered_at": format_timestamp(s.recovered_at),
    }


def dict_to_state(data: dict[str, Any]) -> MuscleState:
    try:
        return MuscleState(
            fatigue_percent=float(data.get("fatigue_percent", 0.0)),
            volume_today=float(data.get("volume_today", 0.0)),
            last_trained=(
                parse_timestamp(data["last_trained"]) if data.get("last_trained") else None
            ),
            recovered_at=(
                parse_timestamp(data["recovered_at"]) if data.get("recovered_at") else None
            ),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid muscle state record: {data!r}") from e


def personal_best_to_dict(pb: PersonalBest) -> dict[str, Any]:
    return {
        "best_single_set": pb.best_single_set,
        "best_session_volume": pb.best_session_volume,
        "rolling_average_max": pb.rolling_average_max,
        "recent_session_bests": list(pb.recent_session_bests),
    }


def dict_to_personal_best(data: dict[str, Any]) -> PersonalBest:
    try:
        return PersonalBest(
            best_single_set=float(data["best_single_set"]),
            best_session_volume=float(data["best_session_volume"]),
            rolling_average_max=(
                float(data["rolling_average_max"])
                if data.get("rolling_average_max") is not None
                else None
            ),
            recent_session_bests=[float(v) for v in data.get("recent_session_bests", [])],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid personal best record: {data!r}") from e


def ledger_to_dict(ledger: UserLedger) -> dict[str, Any]:
    return {
        "user_id": ledger.user_id,
        "experience": ledger.experience,
        "baselines": {m.value: baseline_to_dict(b) for m, b in ledger.baselines.items()},
        "states": {m.value: state_to_dict(s) for m, s in ledger.states.items()},
        "personal_bests": {
            ex_id: personal_best_to_dict(pb) for ex_id, pb in ledger.personal_bests.items()
        },
        "processed_workout_ids": list(ledger.processed_workout_ids),
    }


def dict_to_ledger(data: dict[str, Any]) -> UserLedger:
    """
    Convert dict to UserLedger.

    Raises:
        ValidationError: If data is invalid
    """
    if "user_id" not in data:
        raise ValidationError("Ledger record has no user_id")
    return UserLedger(
        user_id=str(data["user_id"]),
        experience=str(data.get("experience", "Intermediate")),
        baselines={
            _muscle(name): dict_to_baseline(b) for name, b in data.get("baselines", {}).items()
        },
        states={_muscle(name): dict_to_state(s) for name, s in data.get("states", {}).items()},
        personal_bests={
            str(ex_id): dict_to_personal_best(pb)
            for ex_id, pb in data.get("personal_bests", {}).items()
        },
        processed_workout_ids=[str(w) for w in data.get("processed_workout_ids", [])],
    )


# =============================================================================
# Results (presentation)
# =============================================================================


def muscle_fatigue_to_dict(m: MuscleFatigue) -> dict[str, Any]:
    return {
        "muscle": m.muscle.value,
        "volume": round(m.volume, 2),
        "baseline": m.baseline,
        "fatigue_percent": round(m.fatigue_percent, 2),
        "display_fatigue": round(m.display_fatigue, 2),
        "status": m.status.value,
        "exceeds_baseline": m.exceeds_baseline,
        "exceedance": round(m.exceedance, 2) if m.exceedance is not None else None,
    }


def exercise_volume_to_dict(e: ExerciseVolume) -> dict[str, Any]:
    return {
        "exercise_id": e.exercise_id,
        "total_volume": e.total_volume,
        "best_set_volume": e.best_set_volume,
        "set_volumes": list(e.set_volumes),
    }


def baseline_update_to_dict(u: BaselineUpdate) -> dict[str, Any]:
    return {
        "muscle": u.muscle.value,
        "old_value": u.old_value,
        "new_value": u.new_value,
        "exceedance_percent": round(u.exceedance_percent, 2),
    }


def record_event_to_dict(e: PersonalRecordEvent) -> dict[str, Any]:
    d: dict[str, Any] = {
        "exercise_id": e.exercise_id,
        "field": e.field,
        "old_value": e.old_value,
        "new_value": e.new_value,
        "improvement": e.improvement,
        "is_first_time": e.is_first_time,
    }
    if e.percent_increase is not None:
        d["percent_increase"] = round(e.percent_increase, 2)
    return d


def workout_report_to_dict(report: WorkoutReport) -> dict[str, Any]:
    return {
        "user_id": report.user_id,
        "workout_id": report.workout_id,
        "performed_at": format_timestamp(report.performed_at),
        "already_processed": report.already_processed,
        "muscles": [muscle_fatigue_to_dict(m) for m in report.muscles],
        "exercises": [exercise_volume_to_dict(e) for e in report.exercises],
        "baseline_updates": [baseline_update_to_dict(u) for u in report.baseline_updates],
        "personal_records": [record_event_to_dict(e) for e in report.personal_records],
        "warnings": list(report.warnings),
    }


def recovery_status_to_dict(s: RecoveryStatus) -> dict[str, Any]:
    return {
        "muscle": s.muscle.value,
        "at": format_timestamp(s.at),
        "initial_fatigue": round(s.initial_fatigue, 2),
        "current_fatigue": round(s.current_fatigue, 2),
        "display_fatigue": round(s.display_fatigue, 2),
        "status": s.status.value,
        "last_trained": format_timestamp(s.last_trained),
        "days_elapsed": round(s.days_elapsed, 3) if s.days_elapsed is not None else None,
        "days_until_ready": round(s.days_until_ready, 3),
        "ready_at": format_timestamp(s.ready_at),
    }


def recovery_point_to_dict(p: RecoveryPoint) -> dict[str, Any]:
    return {
        "hours_after": p.hours_after,
        "fatigue": round(p.fatigue, 2),
        "status": p.status.value,
    }


def recovery_timeline_to_dict(t: RecoveryTimeline) -> dict[str, Any]:
    return {
        "initial_fatigue": round(t.initial_fatigue, 2),
        "started_at": format_timestamp(t.started_at),
        "current": recovery_point_to_dict(t.current),
        "projections": [recovery_point_to_dict(p) for p in t.projections],
        "days_until_ready": round(t.days_until_ready, 3),
        "days_until_recovered": round(t.days_until_recovered, 3),
        "ready_at": format_timestamp(t.ready_at),
        "recovered_at": format_timestamp(t.recovered_at),
    }


def forecast_to_dict(f: MuscleForecast) -> dict[str, Any]:
    return {
        "muscle": f.muscle.value,
        "current_fatigue": round(f.current_fatigue, 2),
        "planned_volume": round(f.planned_volume, 2),
        "planned_fatigue": round(f.planned_fatigue, 2),
        "projected_fatigue": round(f.projected_fatigue, 2),
        "status": f.status.value,
        "exceeds_baseline": f.exceeds_baseline,
    }


def recommendation_to_dict(r: Recommendation) -> dict[str, Any]:
    return {
        "exercise_id": r.exercise_id,
        "name": r.name,
        "category": r.category,
        "target_engagement": r.target_engagement,
        "score": r.score,
        "is_safe": r.is_safe,
        "factors": {
            "target_match": round(r.factors.target_match, 2),
            "freshness": round(r.factors.freshness, 2),
            "variety": round(r.factors.variety, 2),
            "preference": round(r.factors.preference, 2),
            "primary": round(r.factors.primary, 2),
        },
        "warnings": [b.message for b in r.bottlenecks],
    }


def recommendation_set_to_dict(rs: RecommendationSet) -> dict[str, Any]:
    return {
        "target": rs.target.value,
        "total_eligible": rs.total_eligible,
        "safe": [recommendation_to_dict(r) for r in rs.safe],
        "unsafe": [recommendation_to_dict(r) for r in rs.unsafe],
    }
