"""
FitMetrics — Insights / Correlation Engine

Turns five daily metric series into the insights page:

    bodyweight  kg per day
    calories    intake kcal per day
    burn        estimated active kcal per day
    net         intake − burn on days that have both
    strength    summed session strength per training day

Each series is a frame (or list) of {date, value}. Everything here is
rule-based: Pearson correlations on exact-date overlap, fixed adherence
targets and a handful of threshold rules. Nothing is predicted.

Window modes (range_days):
    ROLLING (default)  fixed 7/14/30-day windows ending today
    an int             caller already cut the series to that many days
    None               all-time history
"""
import math
from datetime import date, timedelta

import numpy as np
import pandas as pd

from fitmetrics.config import (
    MIN_CORRELATION_OVERLAP,
    STRONG_CORRELATION,
    MODERATE_CORRELATION,
    EXPECTED_LOG_RATES,
    ROLLING_14D_TARGETS,
    LOW_ADHERENCE_RATIO,
    TREND_DIP_RATIO,
    MIN_POINTS_FOR_DIP_IMPROVEMENT,
    MIN_POINTS_FOR_DOWNTREND_RULE,
    BODYWEIGHT_VOLATILITY_KG,
    DEFICIT_KCAL,
    DEFICIT_STREAK_DAYS,
    SURPLUS_KCAL,
    SURPLUS_STREAK_DAYS,
    SURPLUS_WEIGHT_RISE_KG,
    MAX_SUGGESTIONS,
    NET_LAG_DAYS,
)
from fitmetrics.utils import as_float, as_frame, parse_date, last_n_dates, span_days

SERIES_KEYS = ("bodyweight", "calories", "burn", "net", "strength")
METRIC_COLUMNS = ["date", "value"]
NOT_ENOUGH_OVERLAP = "Not enough overlapping days yet (need at least 3 overlapping days)."
NO_VALUE = "—"


class _Rolling:
    def __repr__(self):
        return "ROLLING"


ROLLING = _Rolling()


# ═══════════════════════════════════════════════════════════════════════
# 1. SERIES HELPERS
# ═══════════════════════════════════════════════════════════════════════

def metric_frame(points) -> pd.DataFrame:
    """{date, value} rows as a date-sorted frame; unusable values are dropped."""
    df = as_frame(points)
    if df.empty or "date" not in df.columns or "value" not in df.columns:
        return pd.DataFrame(columns=METRIC_COLUMNS)
    df = df[METRIC_COLUMNS].copy()
    df["value"] = df["value"].map(as_float)
    df = df[df["value"].notna() & df["date"].notna()]
    df["date"] = df["date"].astype(str)
    df["value"] = df["value"].astype(float)
    return df.sort_values("date", kind="stable").reset_index(drop=True)


def _by_date(points) -> pd.Series:
    """value indexed by date; a repeated date keeps its last value."""
    df = metric_frame(points)
    s = pd.Series(df["value"].to_numpy(dtype=float), index=df["date"].to_numpy())
    return s[~s.index.duplicated(keep="last")]


def _values(points) -> list[float]:
    return metric_frame(points)["value"].tolist()


def _mean(values) -> float | None:
    return float(np.mean(values)) if len(values) else None


def _sample_std(values) -> float | None:
    if len(values) < 2:
        return None
    return float(np.std(values, ddof=1))


def _max_point(points) -> dict | None:
    """Highest value; the earliest date wins a tie."""
    best = None
    for row in metric_frame(points).to_dict("records"):
        if best is None or row["value"] > best["value"]:
            best = row
    return best


def _latest(points) -> dict | None:
    df = metric_frame(points)
    return None if df.empty else df.iloc[-1].to_dict()


def _within(points, dates: set[str]) -> pd.DataFrame:
    df = metric_frame(points)
    return df[df["date"].isin(dates)]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _halves_dipped(values: list[float]) -> bool:
    """Recent half averages below 95% of the earlier half."""
    split = len(values) // 2
    prior, recent = _mean(values[:split]), _mean(values[split:])
    return prior is not None and recent is not None and recent < prior * TREND_DIP_RATIO


def expected_logs(kind: str, days: int) -> int:
    minimum, per_day = EXPECTED_LOG_RATES[kind]
    return max(minimum, math.ceil(days * per_day))


# ═══════════════════════════════════════════════════════════════════════
# 2. CORRELATION
# ═══════════════════════════════════════════════════════════════════════

def pearson(left, right) -> tuple[float | None, int]:
    """
    Pearson r over dates present in both series.

    Returns (r, overlap_days). r is None below 3 overlapping days or when
    either side is constant over the overlap.
    """
    joined = pd.concat(
        [_by_date(left).rename("left"), _by_date(right).rename("right")],
        axis=1, join="inner",
    )
    overlap = len(joined)
    if overlap < MIN_CORRELATION_OVERLAP:
        return None, overlap
    if joined["left"].nunique() < 2 or joined["right"].nunique() < 2:
        return None, overlap

    r = joined["left"].corr(joined["right"], method="pearson")
    if pd.isna(r):
        return None, overlap
    return float(r), overlap


def pearson_with_lag(left, right, lag_days: int) -> tuple[float | None, int]:
    """Pair left on day D with right on day D + lag_days."""
    shifted = metric_frame(right)
    shifted["date"] = [
        (parse_date(d) - timedelta(days=lag_days)).isoformat() for d in shifted["date"]
    ]
    return pearson(left, shifted)


def presence_series(points, start: str, end: str) -> pd.DataFrame:
    """1 for every calendar day in [start, end] that has a point, else 0."""
    logged = set(metric_frame(points)["date"])
    days = [d.date().isoformat() for d in pd.date_range(start, end, freq="D")]
    return pd.DataFrame(
        {"date": days, "value": [1.0 if d in logged else 0.0 for d in days]},
        columns=METRIC_COLUMNS,
    )


def interpret(r: float | None) -> str:
    if r is None:
        return NOT_ENOUGH_OVERLAP
    magnitude = abs(r)
    if magnitude >= STRONG_CORRELATION:
        return "Strong positive relationship" if r > 0 else "Strong inverse relationship"
    if magnitude >= MODERATE_CORRELATION:
        return "Moderate positive relationship" if r > 0 else "Moderate inverse relationship"
    return "Weak relationship so far"


def _correlation(label: str, result: tuple[float | None, int]) -> dict:
    value, overlap = result
    return {
        "label": label,
        "value": value,
        "overlap_days": overlap,
        "interpretation": interpret(value),
    }


def build_correlations(series: dict) -> list[dict]:
    correlations = [
        _correlation("Calories ↔ Strength", pearson(series["calories"], series["strength"])),
    ]
    for lag in NET_LAG_DAYS:
        correlations.append(_correlation(
            f"Net Energy (lag {lag}d) ↔ Bodyweight",
            pearson_with_lag(series["net"], series["bodyweight"], lag),
        ))
    correlations.append(
        _correlation("Strength ↔ Bodyweight", pearson(series["strength"], series["bodyweight"]))
    )

    all_dates = sorted(
        metric_frame(series["burn"])["date"].tolist() + metric_frame(series["strength"])["date"].tolist()
    )
    if all_dates:
        spend = presence_series(series["burn"], all_dates[0], all_dates[-1])
        workouts = presence_series(series["strength"], all_dates[0], all_dates[-1])
    else:
        spend = workouts = pd.DataFrame(columns=METRIC_COLUMNS)
    correlations.append(
        _correlation("Spend Consistency ↔ Workout Consistency", pearson(spend, workouts))
    )
    return correlations


# ═══════════════════════════════════════════════════════════════════════
# 3. FACTS
# ═══════════════════════════════════════════════════════════════════════

def _latest_values(series: dict) -> dict:
    out = {}
    for key in SERIES_KEYS:
        point = _latest(series[key])
        out[key] = point["value"] if point else None
    return out


def build_facts(series: dict, range_days=ROLLING, range_label: str | None = None,
                today: date | None = None) -> list[dict]:
    latest = _latest_values(series)
    weight = f"{latest['bodyweight']:.1f} kg" if latest["bodyweight"] is not None else NO_VALUE
    calories = f"{_round_half_up(latest['calories'])} kcal" if latest["calories"] is not None else NO_VALUE
    burn = f"{_round_half_up(latest['burn'])} kcal" if latest["burn"] is not None else NO_VALUE
    net = f"{_round_half_up(latest['net'])} kcal" if latest["net"] is not None else NO_VALUE
    strength = f"{latest['strength']:.1f}" if latest["strength"] is not None else NO_VALUE

    if range_days is not ROLLING:
        label = range_label or "selected range"
        counts = {key: len(metric_frame(series[key])) for key in SERIES_KEYS}
        return [
            {"label": "Latest Weight", "value": weight,
             "detail": f"{counts['bodyweight']} bodyweight logs in {label}"},
            {"label": "Latest Calories", "value": calories,
             "detail": f"{counts['calories']} calories logs in {label}"},
            {"label": "Latest Burn", "value": burn,
             "detail": f"{counts['burn']} burn logs in {label}"},
            {"label": "Latest Net Energy", "value": net,
             "detail": f"net intake - burn in {label}"},
            {"label": "Latest Strength", "value": strength,
             "detail": f"{counts['strength']} strength days in {label}"},
        ]

    last14 = last_n_dates(14, today)
    counts = {key: len(_within(series[key], last14)) for key in SERIES_KEYS}
    return [
        {"label": "Latest Weight", "value": weight,
         "detail": f"{counts['bodyweight']} bodyweight logs in last 14 days"},
        {"label": "Latest Calories", "value": calories,
         "detail": f"{counts['calories']} calories logs in last 14 days"},
        {"label": "Latest Burn", "value": burn,
         "detail": f"{counts['burn']} burn logs in last 14 days"},
        {"label": "Latest Net Energy", "value": net,
         "detail": "Net intake - burn on overlap days"},
        {"label": "Latest Strength", "value": strength,
         "detail": f"{counts['strength']} strength days in last 14 days"},
    ]


# ═══════════════════════════════════════════════════════════════════════
# 4. IMPROVEMENTS
# ═══════════════════════════════════════════════════════════════════════

def _ranged_improvements(series: dict, range_days: int | None, label: str) -> list[str]:
    counts = {key: len(metric_frame(series[key])) for key in SERIES_KEYS}
    items = []

    if range_days is None:
        if counts["bodyweight"] == 0:
            items.append("No bodyweight logs yet. Start logging to unlock body composition insights.")
        if counts["calories"] == 0:
            items.append("No calories logs yet. Add fuel data to explain strength fluctuations.")
        if counts["strength"] == 0:
            items.append("No workout strength logs yet. Log sessions to unlock training trend analysis.")
    else:
        expected = {key: expected_logs(key, range_days) for key in EXPECTED_LOG_RATES}
        if counts["bodyweight"] < expected["bodyweight"]:
            items.append(f"Log bodyweight more consistently (target: {expected['bodyweight']}+ logs in {label}).")
        if counts["calories"] < expected["calories"]:
            items.append(f"Track calories on more days (target: {expected['calories']}+ logs in {label}).")
        if counts["burn"] < expected["burn"]:
            items.append(f"Track estimated burn on more days (target: {expected['burn']}+ logs in {label}).")
        if counts["strength"] < expected["strength"]:
            items.append(f"Log more workout sessions (target: {expected['strength']}+ strength days in {label}).")
        if counts["net"] < MIN_CORRELATION_OVERLAP:
            items.append(f"Not enough overlap days for net-energy insights (need at least 3 days in {label}).")

    strength_values = _values(series["strength"])
    if len(strength_values) >= MIN_POINTS_FOR_DIP_IMPROVEMENT and _halves_dipped(strength_values):
        items.append("Strength trend dipped in this range. Review recovery, sleep, and pre/post workout fueling.")

    if not items:
        items.append(f"Consistency is solid in {label}. Keep current logging cadence and progressive overload.")
    return items


def _rolling_improvements(series: dict, today: date) -> list[str]:
    last14 = last_n_dates(14, today)
    counts = {key: len(_within(series[key], last14)) for key in SERIES_KEYS}
    items = []

    if counts["bodyweight"] < ROLLING_14D_TARGETS["bodyweight"]:
        items.append("Log bodyweight more consistently (target: 6+ logs per 14 days).")
    if counts["calories"] < ROLLING_14D_TARGETS["calories"]:
        items.append("Track calories on more training days (target: 8+ logs per 14 days).")
    if counts["burn"] < ROLLING_14D_TARGETS["burn"]:
        items.append("Track estimated burn on more days (target: 8+ logs per 14 days).")
    if counts["strength"] < ROLLING_14D_TARGETS["strength"]:
        items.append("Add more workout logging sessions to improve strength trend reliability.")
    if counts["net"] < MIN_CORRELATION_OVERLAP:
        items.append("Not enough overlap days for net-energy insights (need at least 3 in 14 days).")

    strength = metric_frame(series["strength"])
    recent = strength[strength["date"].isin(last_n_dates(7, today))]["value"].tolist()
    age = strength["date"].map(lambda d: (today - parse_date(d)).days)
    prior = strength[(age >= 8) & (age <= 14)]["value"].tolist()
    recent_avg, prior_avg = _mean(recent), _mean(prior)
    if recent_avg is not None and prior_avg is not None and recent_avg < prior_avg * TREND_DIP_RATIO:
        items.append("Strength dipped vs prior week—review sleep, recovery, and pre-workout fueling.")

    if not items:
        items.append("Consistency is solid—keep current logging cadence and progressive overload strategy.")
    return items


def build_improvements(series: dict, range_days=ROLLING, range_label: str | None = None,
                       today: date | None = None) -> list[str]:
    if range_days is not ROLLING:
        return _ranged_improvements(series, range_days, range_label or "selected range")
    return _rolling_improvements(series, today or date.today())


# ═══════════════════════════════════════════════════════════════════════
# 5. SUGGESTIONS — "Rule: <finding>. <action>."
# ═══════════════════════════════════════════════════════════════════════

def _trailing_streaks(net_values: list[float]) -> tuple[int, int]:
    """(deficit, surplus) streak lengths ending at the last point."""
    deficit = surplus = 0
    for value in net_values:
        if value <= DEFICIT_KCAL:
            deficit, surplus = deficit + 1, 0
        elif value >= SURPLUS_KCAL:
            deficit, surplus = 0, surplus + 1
        else:
            deficit = surplus = 0
    return deficit, surplus


def build_suggestions(series: dict, correlations: list[dict], range_days=ROLLING,
                      range_label: str | None = None) -> list[str]:
    label = range_label or "the selected range"
    if range_days is ROLLING or range_days is None:
        window = max(span_days(metric_frame(series[key])["date"])
                     for key in ("bodyweight", "calories", "burn", "strength"))
    else:
        window = range_days

    suggestions = []
    adherence_rules = (
        ("bodyweight", "bodyweight",
         "Use a fixed morning weigh-in routine at least 4 days/week."),
        ("calories", "calories",
         "Log pre/post-workout fuel on every training day for a cleaner performance signal."),
        ("burn", "burn",
         "Log estimated daily burn from a consistent source."),
        ("strength", "strength",
         "Capture at least one top set and one back-off set each session."),
    )
    for key, name, action in adherence_rules:
        logged = len(metric_frame(series[key]))
        expected = expected_logs(key, window)
        if logged / expected < LOW_ADHERENCE_RATIO:
            suggestions.append(
                f"Rule: Low {name} adherence detected ({logged}/{expected} logs in {label}). {action}"
            )

    calories_strength = next((c for c in correlations if c["label"] == "Calories ↔ Strength"), None)
    r = calories_strength["value"] if calories_strength else None
    overlap = calories_strength["overlap_days"] if calories_strength else 0
    if r is None or overlap < MIN_CORRELATION_OVERLAP:
        suggestions.append(
            f"Rule: Correlation sample too small (n={overlap}; need >=3). "
            "Increase same-day calories + strength logs before acting on correlation."
        )
    elif r >= MODERATE_CORRELATION:
        suggestions.append(
            f"Rule: Positive calories-strength link detected (r={r:.2f}). "
            "Keep fueling timing stable around sessions and avoid large day-to-day calorie swings."
        )
    elif r <= -MODERATE_CORRELATION:
        suggestions.append(
            f"Rule: Negative calories-strength link detected (r={r:.2f}). "
            "Shift more calories toward the 3-4 hours around training and reduce low-fuel sessions."
        )
    else:
        suggestions.append(
            f"Rule: Weak calories-strength link detected (r={r:.2f}). "
            "Standardize pre-workout nutrition and session logging before changing training volume."
        )

    strength_values = _values(series["strength"])
    if len(strength_values) >= MIN_POINTS_FOR_DOWNTREND_RULE and _halves_dipped(strength_values):
        suggestions.append(
            "Rule: Strength downtrend detected (>5% drop in recent half). "
            "Run a 5-7 day deload and prioritize sleep plus recovery before increasing load again."
        )

    weights = _values(series["bodyweight"])
    volatility = _sample_std(weights)
    if volatility is not None and volatility >= BODYWEIGHT_VOLATILITY_KG:
        suggestions.append(
            f"Rule: High bodyweight volatility detected (std dev {volatility:.2f} kg). "
            "Keep sodium/hydration and weigh-in timing consistent to reduce noise."
        )

    deficit, surplus = _trailing_streaks(_values(series["net"]))
    if deficit >= DEFICIT_STREAK_DAYS:
        suggestions.append(
            f"Rule: Sustained large deficit ({deficit} days <= -700 kcal). "
            "Add recovery calories to reduce fatigue and preserve performance."
        )
    if surplus >= SURPLUS_STREAK_DAYS and len(weights) >= 4:
        split = len(weights) // 2
        rise = _mean(weights[split:]) - _mean(weights[:split])
        if rise >= SURPLUS_WEIGHT_RISE_KG:
            suggestions.append(
                f"Rule: Surplus + bodyweight rise detected ({surplus} day surplus streak and "
                f"+{rise:.1f} kg trend). Trim intake or increase activity slightly."
            )

    if not suggestions:
        suggestions.append(
            "Rule: No adverse patterns detected. Keep current training and logging cadence, "
            "then reassess after one more week of data."
        )
    return suggestions[:MAX_SUGGESTIONS]


# ═══════════════════════════════════════════════════════════════════════
# 6. ACHIEVEMENTS — always four entries
# ═══════════════════════════════════════════════════════════════════════

def build_achievements(series: dict, range_days=ROLLING, range_label: str | None = None,
                       today: date | None = None) -> list[dict]:
    if range_days is not ROLLING:
        label = range_label or "selected range"
        best_strength = _max_point(series["strength"])
        highest_fuel = _max_point(series["calories"])
        stability = _sample_std(_values(series["bodyweight"]))
        latest_strength = _latest(series["strength"])
        return [
            {
                "period": "week",
                "title": "Best Strength Day",
                "detail": (f"{best_strength['date']} · score {best_strength['value']:.1f} ({label})"
                           if best_strength else f"No strength data in {label}."),
            },
            {
                "period": "month",
                "title": "Highest Fuel Day",
                "detail": (f"{highest_fuel['date']} · {_round_half_up(highest_fuel['value'])} kcal ({label})"
                           if highest_fuel else f"No calories data in {label}."),
            },
            {
                "period": "month",
                "title": "Bodyweight Stability",
                "detail": (f"Std dev {stability:.2f} kg in {label} (lower is steadier)"
                           if stability is not None else f"Not enough bodyweight logs in {label}."),
            },
            {
                "period": "week",
                "title": "Latest Strength Checkpoint",
                "detail": (f"{latest_strength['date']} · score {latest_strength['value']:.1f}"
                           if latest_strength else f"No strength checkpoint in {label}."),
            },
        ]

    today = today or date.today()
    last7, last30 = last_n_dates(7, today), last_n_dates(30, today)
    best_week = _max_point(_within(series["strength"], last7))
    best_month = _max_point(_within(series["strength"], last30))
    fuel_week = _max_point(_within(series["calories"], last7))
    stability = _sample_std(_within(series["bodyweight"], last30)["value"].tolist())
    return [
        {
            "period": "week",
            "title": "Best Strength Day (7d)",
            "detail": (f"{best_week['date']} · score {best_week['value']:.1f}"
                       if best_week else "No strength data in last 7 days."),
        },
        {
            "period": "month",
            "title": "Best Strength Day (30d)",
            "detail": (f"{best_month['date']} · score {best_month['value']:.1f}"
                       if best_month else "No strength data in last 30 days."),
        },
        {
            "period": "week",
            "title": "Highest Fuel Day (7d)",
            "detail": (f"{fuel_week['date']} · {_round_half_up(fuel_week['value'])} kcal"
                       if fuel_week else "No calories data in last 7 days."),
        },
        {
            "period": "month",
            "title": "Bodyweight Stability (30d)",
            "detail": (f"Std dev {stability:.2f} kg (lower is steadier)"
                       if stability is not None else "Not enough bodyweight logs in last 30 days."),
        },
    ]


# ═══════════════════════════════════════════════════════════════════════
# 7. FULL VIEW
# ═══════════════════════════════════════════════════════════════════════

def build_insights_view(series: dict, range_days=ROLLING, range_label: str | None = None,
                        today: date | None = None) -> dict:
    """
    Facts, correlations, improvements, achievements and suggestions.

    `series` maps bodyweight / calories / burn / net / strength to {date, value}
    points; a missing key counts as an empty series.
    """
    normalized = {key: metric_frame(series.get(key)) for key in SERIES_KEYS}
    today = today or date.today()

    correlations = build_correlations(normalized)
    return {
        "facts": build_facts(normalized, range_days, range_label, today),
        "correlations": correlations,
        "improvements": build_improvements(normalized, range_days, range_label, today),
        "achievements": build_achievements(normalized, range_days, range_label, today),
        "suggestions": build_suggestions(normalized, correlations, range_days, range_label),
    }
