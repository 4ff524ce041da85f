"""
FitMetrics — Read-Path Loaders

Load a user's raw rows from the store, run them through the scorer,
aggregator and insights engine, and hand back an explicit result:

    {"status": "ok", "data": {...}}
    {"status": "error", "message": "..."}

Only StoreError is turned into an error result. Anything else is a bug and
propagates.
"""
import logging
from datetime import date

import pandas as pd

from fitmetrics.aggregation import (
    aggregate_by_date,
    build_progress_datasets,
    build_muscle_group_datasets,
    exercise_names_by_category,
)
from fitmetrics.config import TABLES, DEFAULT_MAX_EXERCISES_PER_GROUP
from fitmetrics.daily_energy import latest_snapshot
from fitmetrics.energy import bodyweight_kg, calories_in
from fitmetrics.insights import ROLLING, METRIC_COLUMNS, build_insights_view
from fitmetrics.store import StoreError
from fitmetrics.strength import session_strength_scores
from fitmetrics.utils import as_float, clean_record, days_ago

log = logging.getLogger(__name__)

SET_LOG_COLUMNS = ["date", "exercise", "muscle_group", "set_number", "weight", "reps"]


# ═══════════════════════════════════════════════════════════════════════
# 1. RAW ROWS → ENGINE INPUTS
# ═══════════════════════════════════════════════════════════════════════

def load_set_logs(store, user_id: str) -> pd.DataFrame:
    """Workout sets joined to their session date and exercise name/muscle group."""
    sets = store.select(TABLES["workout_sets"], user_id, date_column=None)
    sessions = store.select(TABLES["workout_sessions"], user_id, date_column="session_date")
    exercises = store.select(TABLES["exercises"], user_id, date_column=None)
    if sets.empty or sessions.empty or exercises.empty:
        return pd.DataFrame(columns=SET_LOG_COLUMNS)

    sets = sets.dropna(subset=["reps", "weight_input"])
    df = sets.merge(
        sessions[["id", "session_date"]].rename(columns={"id": "session_id", "session_date": "date"}),
        on="session_id", how="inner",
    ).merge(
        exercises[["id", "name", "muscle_group"]].rename(columns={"id": "exercise_id", "name": "exercise"}),
        on="exercise_id", how="inner",
    )
    df = df.rename(columns={"weight_input": "weight"})
    df["date"] = df["date"].astype(str)
    return df[SET_LOG_COLUMNS].reset_index(drop=True)


def _records(store, table: str, user_id: str, start: str | None) -> list[dict]:
    df = store.select(TABLES[table], user_id, start=start)
    return [clean_record(row) for row in df.to_dict("records")]


def _series(rows: list[dict]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=METRIC_COLUMNS)
    df = df[df["value"].notna()].reset_index(drop=True)
    df["value"] = df["value"].astype(float)
    return df


def load_metric_series(store, user_id: str, start: str | None = None) -> dict:
    """
    The five insight series for one user, optionally from `start` on.

    net is intake − estimated burn on days that have both.
    """
    bodyweight = _series([
        {"date": row["log_date"], "value": bodyweight_kg(row)}
        for row in _records(store, "bodyweight_logs", user_id, start)
    ])
    calories = _series([
        {"date": row["log_date"], "value": calories_in(row.get("pre_workout_kcal"), row.get("post_workout_kcal"))}
        for row in _records(store, "calories_logs", user_id, start)
    ])
    burn = _series([
        {"date": row["log_date"], "value": as_float(row.get("estimated_kcal_spent"))}
        for row in _records(store, "metabolic_activity_logs", user_id, start)
    ])

    spend_by_date = dict(zip(burn["date"], burn["value"]))
    net = _series([
        {"date": d, "value": intake - spend_by_date[d]}
        for d, intake in zip(calories["date"], calories["value"])
        if d in spend_by_date
    ])

    scores = session_strength_scores(load_set_logs(store, user_id))
    if start is not None and not scores.empty:
        scores = scores[scores["date"] >= start]
    strength = aggregate_by_date(scores, "sum").rename(columns={"score": "value"})[METRIC_COLUMNS]

    return {
        "bodyweight": bodyweight,
        "calories": calories,
        "burn": burn,
        "net": net,
        "strength": strength.reset_index(drop=True),
    }


def _latest_record(df: pd.DataFrame, columns: list[str]) -> dict | None:
    if df.empty:
        return None
    row = clean_record(df.iloc[-1].to_dict())
    return {col: row.get(col) for col in columns}


# ═══════════════════════════════════════════════════════════════════════
# 2. LOADERS
# ═══════════════════════════════════════════════════════════════════════

def load_dashboard_data(store, user_id: str, mode: str = "sum",
                        max_exercises_per_group: int = DEFAULT_MAX_EXERCISES_PER_GROUP) -> dict:
    try:
        latest_workout = _latest_record(
            store.select(TABLES["workout_sessions"], user_id, date_column="session_date"),
            ["session_date", "split"],
        )
        latest_bodyweight = _latest_record(
            store.select(TABLES["bodyweight_logs"], user_id),
            ["log_date", "weight_input", "unit_input"],
        )
        latest_calories = _latest_record(
            store.select(TABLES["calories_logs"], user_id),
            ["log_date", "pre_workout_kcal", "post_workout_kcal"],
        )
        energy = latest_snapshot(store, user_id)
        scores = session_strength_scores(load_set_logs(store, user_id))
    except StoreError as e:
        log.error("Dashboard load failed for user=%s: %s", user_id, e)
        return {"status": "error", "message": str(e) or "Failed to load dashboard."}

    progress = build_progress_datasets(scores, mode)
    muscle_groups = build_muscle_group_datasets(scores, mode, max_exercises_per_group)

    return {
        "status": "ok",
        "data": {
            "latest_workout": latest_workout,
            "latest_bodyweight": latest_bodyweight,
            "latest_calories": latest_calories,
            "latest_energy_snapshot": energy,
            "strength_aggregation_mode": mode,
            "overall_strength_series": progress["overall"],
            "group_strength_series": {g: progress[g] for g in ("push", "pull", "legs")},
            "tracked_muscle_groups": muscle_groups["muscle_groups"],
            "muscle_group_strength_series": muscle_groups["series_by_group"],
            "selected_exercises_by_muscle_group": muscle_groups["selected_exercises_by_group"],
            "exercise_strength_series": progress["by_exercise"],
            "exercise_names": progress["exercise_names"],
            "exercise_names_by_category": exercise_names_by_category(scores, progress["exercise_names"]),
        },
    }


def load_insights_data(store, user_id: str, range_days=ROLLING, range_label: str | None = None,
                       today: date | None = None) -> dict:
    """
    Insights for one user. An int `range_days` cuts every series to the
    last `range_days` days (today included) before the rules run.
    """
    today = today or date.today()
    start = days_ago(range_days - 1, today) if isinstance(range_days, int) and range_days > 0 else None

    try:
        series = load_metric_series(store, user_id, start=start)
    except StoreError as e:
        log.error("Insights load failed for user=%s: %s", user_id, e)
        return {"status": "error", "message": str(e) or "Failed to load insights."}

    view = build_insights_view(series, range_days=range_days, range_label=range_label, today=today)
    return {"status": "ok", "data": {**view, "series": series}}
