"""
FitMetrics — Time-Series Aggregator

Buckets session strength scores into date-ordered series. Every derived
series (overall, push/pull/legs, per exercise, per tracked muscle group)
goes through aggregate_by_date() so ordering and tie-breaks match.
"""
import pandas as pd

from fitmetrics.classifier import (
    tracked_muscle_group,
    exercise_trend_category,
    is_excluded_exercise,
)
from fitmetrics.config import (
    TRACKED_MUSCLE_GROUPS,
    TREND_CATEGORIES,
    DEFAULT_MAX_EXERCISES_PER_GROUP,
    DEFAULT_SUMMARY_LIMIT,
    SET_DETAILS_UNAVAILABLE,
)
from fitmetrics.utils import as_frame

SERIES_COLUMNS = ["date", "score", "summary_lines"]
AGGREGATION_MODES = ("sum", "average")


def _check_mode(mode: str):
    if mode not in AGGREGATION_MODES:
        raise ValueError(f"Unknown aggregation mode {mode!r} (expected one of {AGGREGATION_MODES})")


def _split_summary(set_summary: str | None) -> list[str]:
    if not set_summary:
        return []
    return [part.strip() for part in set_summary.split(",") if part.strip()]


def empty_series() -> pd.DataFrame:
    return pd.DataFrame(columns=SERIES_COLUMNS)


# ═══════════════════════════════════════════════════════════════════════
# 1. THE GROUPING PRIMITIVE
# ═══════════════════════════════════════════════════════════════════════

def aggregate_by_date(
    scores,
    mode: str = "sum",
    summary_exercises: list[str] | None = None,
    summary_limit: int = DEFAULT_SUMMARY_LIMIT,
) -> pd.DataFrame:
    """
    Reduce session scores to one point per date.

    `mode` is "sum" or "average". Each point carries summary lines for the
    top `summary_limit` exercises of that date: in `summary_exercises` order
    when given, otherwise by contribution (largest first, ties by name).
    """
    _check_mode(mode)
    df = as_frame(scores)
    if df.empty:
        return empty_series()

    points = []
    for date, grp in df.groupby("date", sort=True):
        total = float(grp["session_strength"].astype(float).sum())
        score = total / len(grp) if mode == "average" else total

        by_exercise: dict[str, dict] = {}
        for row in grp.to_dict("records"):
            name = row.get("exercise")
            if not name:
                continue
            entry = by_exercise.setdefault(name, {"total": 0.0, "set_summary": None})
            entry["total"] += float(row["session_strength"])
            if entry["set_summary"] is None and row.get("set_summary"):
                entry["set_summary"] = row["set_summary"]

        if summary_exercises:
            ordered = [(n, by_exercise[n]) for n in summary_exercises if n in by_exercise]
        else:
            ordered = sorted(by_exercise.items(), key=lambda kv: (-kv[1]["total"], kv[0]))

        lines = []
        for name, entry in ordered[:summary_limit]:
            set_lines = _split_summary(entry["set_summary"]) or [SET_DETAILS_UNAVAILABLE]
            lines.extend(f"{name} {line}" for line in set_lines)

        points.append({"date": date, "score": score, "summary_lines": lines or None})

    return pd.DataFrame(points, columns=SERIES_COLUMNS)


def exercise_series(scores, exercise: str, mode: str = "sum") -> pd.DataFrame:
    df = as_frame(scores)
    if df.empty:
        return aggregate_by_date(df, mode)
    return aggregate_by_date(
        df[df["exercise"] == exercise],
        mode,
        summary_exercises=[exercise],
        summary_limit=1,
    )


# ═══════════════════════════════════════════════════════════════════════
# 2. DASHBOARD DATASETS
# ═══════════════════════════════════════════════════════════════════════

def build_progress_datasets(scores, mode: str = "sum") -> dict:
    """Overall + push/pull/legs series and one series per exercise."""
    _check_mode(mode)
    df = as_frame(scores)
    if df.empty:
        return {
            "overall": empty_series(), "push": empty_series(),
            "pull": empty_series(), "legs": empty_series(),
            "by_exercise": {}, "exercise_names": [],
        }

    datasets = {"overall": aggregate_by_date(df, mode)}
    for group in ("push", "pull", "legs"):
        datasets[group] = aggregate_by_date(df[df["progress_group"] == group], mode)

    exercise_names = sorted(df["exercise"].dropna().unique().tolist())
    datasets["by_exercise"] = {
        name: exercise_series(df, name, mode) for name in exercise_names
    }
    datasets["exercise_names"] = exercise_names
    return datasets


def select_top_exercises(group_rows: pd.DataFrame, limit: int) -> list[str]:
    """Most frequently logged exercises first; ties alphabetical."""
    if group_rows.empty or limit <= 0:
        return []
    counts = group_rows["exercise"].value_counts()
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [name for name, _ in ranked[:limit]]


def build_muscle_group_datasets(
    scores,
    mode: str = "sum",
    max_exercises_per_group: int = DEFAULT_MAX_EXERCISES_PER_GROUP,
) -> dict:
    """
    One series per tracked muscle group built from its top-N exercises only.

    Rows whose label maps to no tracked group are left out, as are
    exercises on the group's denylist, however often they were logged.
    """
    _check_mode(mode)
    df = as_frame(scores)
    series_by_group, selected_by_group = {}, {}

    if df.empty:
        for group in TRACKED_MUSCLE_GROUPS:
            series_by_group[group] = empty_series()
            selected_by_group[group] = []
        return {
            "muscle_groups": list(TRACKED_MUSCLE_GROUPS),
            "series_by_group": series_by_group,
            "selected_exercises_by_group": selected_by_group,
        }

    df = df.copy()
    df["tracked_group"] = df["muscle_group"].map(tracked_muscle_group)

    for group in TRACKED_MUSCLE_GROUPS:
        group_rows = df[df["tracked_group"] == group]
        if not group_rows.empty:
            keep = ~group_rows["exercise"].map(lambda name: is_excluded_exercise(group, name))
            group_rows = group_rows[keep]

        selected = select_top_exercises(group_rows, max_exercises_per_group)
        chosen = group_rows[group_rows["exercise"].isin(selected)] if selected else group_rows.iloc[0:0]

        series_by_group[group] = aggregate_by_date(
            chosen, mode,
            summary_exercises=selected,
            summary_limit=len(selected),
        )
        selected_by_group[group] = selected

    return {
        "muscle_groups": list(TRACKED_MUSCLE_GROUPS),
        "series_by_group": series_by_group,
        "selected_exercises_by_group": selected_by_group,
    }


def exercise_names_by_category(scores, exercise_names: list[str] | None = None) -> dict:
    """Group exercise names into push / pull / legs / core for the picker."""
    df = as_frame(scores)
    buckets = {category: [] for category in TREND_CATEGORIES}
    if df.empty:
        return buckets

    category_by_name = {}
    for row in df.to_dict("records"):
        name = row.get("exercise")
        if name and name not in category_by_name:
            category_by_name[name] = exercise_trend_category(row.get("muscle_group"))

    names = exercise_names if exercise_names is not None else sorted(category_by_name)
    for name in names:
        buckets[category_by_name.get(name, "core")].append(name)
    return buckets
