"""
FitMetrics — Strength Scorer

Turns raw logged sets into per-session strength scores.

    set score      = weight × reps × rep_multiplier(reps)
    session score  = 0.4 × set 1 + 0.6 × set 2   (set 2 is usually the heavier one)

Bad inputs never raise: a set that cannot be scored is worth 0.
"""
import pandas as pd

from fitmetrics.classifier import progress_group
from fitmetrics.config import (
    REP_MULTIPLIERS,
    DEFAULT_REP_MULTIPLIER,
    SET1_WEIGHT,
    SET2_WEIGHT,
    PROGRESS_DELTA_BANDS,
    PROGRESS_DELTA_NEUTRAL,
    PROGRESS_DELTA_DOWN_BANDS,
    SET_DETAILS_UNAVAILABLE,
)
from fitmetrics.utils import as_float, as_frame, format_number

SCORE_COLUMNS = [
    "date", "exercise", "muscle_group", "progress_group",
    "session_strength", "set_summary", "set_summary_lines",
]


# ═══════════════════════════════════════════════════════════════════════
# 1. SET & SESSION SCORES
# ═══════════════════════════════════════════════════════════════════════

def rep_multiplier(reps) -> float:
    """1–3 → 0.80, 4–6 → 1.00, 7–9 → 1.15, 10–12 → 1.05, anything else → 1.00."""
    num = as_float(reps)
    if num is None:
        return DEFAULT_REP_MULTIPLIER
    for low, high, multiplier in REP_MULTIPLIERS:
        if low <= num <= high:
            return multiplier
    return DEFAULT_REP_MULTIPLIER


def set_score(weight, reps) -> float:
    w = as_float(weight)
    r = as_float(reps)
    if w is None or r is None or w < 0 or r < 0:
        return 0.0
    return w * r * rep_multiplier(r)


def _set_input_score(set_input: dict | None) -> float | None:
    if not set_input:
        return None
    weight = as_float(set_input.get("weight"))
    reps = as_float(set_input.get("reps"))
    if weight is None or reps is None:
        return None
    return set_score(weight, reps)


def combine_slots(set1: float | None, set2: float | None) -> float | None:
    """Weighted set-1/set-2 blend; a lone slot stands on its own."""
    if set1 is not None and set2 is not None:
        return set1 * SET1_WEIGHT + set2 * SET2_WEIGHT
    if set1 is not None:
        return set1
    return set2


def session_strength(set1: dict | None = None, set2: dict | None = None) -> float:
    """Score one session from two optional {"weight", "reps"} inputs."""
    combined = combine_slots(_set_input_score(set1), _set_input_score(set2))
    return combined if combined is not None else 0.0


# ═══════════════════════════════════════════════════════════════════════
# 2. SESSION SCORES FROM RAW SET LOGS
# ═══════════════════════════════════════════════════════════════════════

def _slot(set_number) -> int | None:
    num = as_float(set_number)
    if num == 1:
        return 1
    if num == 2:
        return 2
    return None


def _row_label(row: dict) -> str | None:
    for key in ("muscle_group", "primary_muscle"):
        value = row.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def session_strength_scores(sets) -> pd.DataFrame:
    """
    One row per (date, exercise) with its session strength score.

    Input rows: date, exercise, muscle_group (or primary_muscle),
    set_number, weight, reps. Output sorted by date, then exercise.
    """
    df = as_frame(sets)
    if df.empty:
        return pd.DataFrame(columns=SCORE_COLUMNS)

    rows = []
    for (date, exercise), grp in df.groupby(["date", "exercise"], sort=True):
        label = None
        slots = {1: None, 2: None}
        extra_scores = []

        for row in grp.to_dict("records"):
            if label is None:
                label = _row_label(row)
            score = set_score(row.get("weight"), row.get("reps"))
            slot = _slot(row.get("set_number"))
            if slot is None:
                extra_scores.append(score)
            else:
                slots[slot] = (score, row.get("weight"), row.get("reps"))

        s1 = slots[1][0] if slots[1] else None
        s2 = slots[2][0] if slots[2] else None
        strength = combine_slots(s1, s2)
        if strength is None:
            # Sets beyond slot 2 with no canonical slot: mean of raw scores.
            # Likely incidental upstream behavior, kept as-is.
            strength = sum(extra_scores) / len(extra_scores) if extra_scores else 0.0

        parts, lines = [], []
        for n in (1, 2):
            if slots[n] is None:
                continue
            _, weight, reps = slots[n]
            parts.append(f"S{n} {format_number(weight)}×{format_number(reps)}")
            lines.append(f"S{n}: {format_number(weight)}×{format_number(reps)}")

        rows.append({
            "date": date,
            "exercise": exercise,
            "muscle_group": label,
            "progress_group": progress_group(label),
            "session_strength": strength,
            "set_summary": ", ".join(parts) if parts else SET_DETAILS_UNAVAILABLE,
            "set_summary_lines": lines,
        })

    return pd.DataFrame(rows, columns=SCORE_COLUMNS)


# ═══════════════════════════════════════════════════════════════════════
# 3. SESSION-OVER-SESSION PROGRESS
# ═══════════════════════════════════════════════════════════════════════

def progress_delta(previous, current) -> float:
    """Relative change from the previous session's score."""
    prev = as_float(previous)
    curr = as_float(current)
    if prev is None or curr is None:
        return 0.0
    if prev == 0:
        if curr == 0:
            return 0.0
        return 1.0 if curr > 0 else -1.0
    return (curr - prev) / prev


def progress_delta_score(delta) -> int:
    """Map a relative delta onto a 1–7 rating (4 = flat)."""
    value = as_float(delta)
    if value is None:
        return 4
    for threshold, score in PROGRESS_DELTA_BANDS:
        if value >= threshold:
            return score
    if value > -PROGRESS_DELTA_NEUTRAL:
        return 4
    for threshold, score in PROGRESS_DELTA_DOWN_BANDS:
        if value > threshold:
            return score
    return 1
