"""
FitMetrics — Configuration

Single source of truth for every scoring table the engine uses:
rep multipliers, activity multipliers, muscle-group rule tables,
per-group exercise exclusions and insight thresholds.

Rule tables are ORDERED tuples. Classification walks them top to bottom
and the first matching keyword wins, so order is part of the contract.
"""
import os

# ── Store connection (PostgREST / Supabase-compatible) ───────────────
FITMETRICS_API_URL = os.environ.get("FITMETRICS_API_URL", "")
FITMETRICS_API_KEY = os.environ.get("FITMETRICS_API_KEY", "")
FITMETRICS_LOG_LEVEL = os.environ.get("FITMETRICS_LOG_LEVEL", "INFO")

TABLES = {
    "bodyweight_logs": "bodyweight_logs",
    "calories_logs": "calories_logs",
    "metabolic_activity_logs": "metabolic_activity_logs",
    "daily_energy_metrics": "daily_energy_metrics",
    "exercises": "exercises",
    "profiles": "profiles",
    "workout_sessions": "workout_sessions",
    "workout_sets": "workout_sets",
}

# Tables whose rows are unique per (user_id, log_date)
DATE_KEYED_TABLES = (
    TABLES["bodyweight_logs"],
    TABLES["calories_logs"],
    TABLES["metabolic_activity_logs"],
    TABLES["daily_energy_metrics"],
)

LB_PER_KG = 2.2046226218
WEIGHT_UNITS = ("kg", "lb")


# ═════════════════════════════════════════════════════════════════════
# STRENGTH SCORING
# ═════════════════════════════════════════════════════════════════════

# (min_reps, max_reps, multiplier). Mid/high rep ranges are valued most.
REP_MULTIPLIERS = (
    (1, 3, 0.80),
    (4, 6, 1.00),
    (7, 9, 1.15),
    (10, 12, 1.05),
)
DEFAULT_REP_MULTIPLIER = 1.00

SET1_WEIGHT = 0.4
SET2_WEIGHT = 0.6

# (min_delta, score) checked top-down; anything below the last band scores 1
PROGRESS_DELTA_BANDS = (
    (0.18, 7),
    (0.08, 6),
    (0.02, 5),
)
PROGRESS_DELTA_NEUTRAL = 0.02
PROGRESS_DELTA_DOWN_BANDS = (
    (-0.08, 3),
    (-0.18, 2),
)


# ═════════════════════════════════════════════════════════════════════
# MUSCLE-GROUP CLASSIFIER — ordered rule tables
# ═════════════════════════════════════════════════════════════════════

PROGRESS_GROUP_RULES = (
    ("push", ("chest", "shoulder", "delt", "tricep")),
    ("pull", ("back", "lat", "bicep")),
    ("legs", ("leg", "quad", "hamstring", "glute", "calf", "calves")),
)
DEFAULT_PROGRESS_GROUP = "other"

TRACKED_MUSCLE_GROUP_RULES = (
    ("back", ("back", "lat")),
    ("bicep", ("bicep",)),
    ("tricep", ("tricep",)),
    ("chest", ("chest", "pec")),
    ("quad", ("quad",)),
    ("hamstring", ("hamstring",)),
    ("shoulder", ("shoulder", "delt")),
    ("abs", ("abs", "abdom", "core")),
)

# Display order of the tracked groups on the dashboard
TRACKED_MUSCLE_GROUPS = [
    "chest",
    "back",
    "tricep",
    "quad",
    "shoulder",
    "abs",
    "bicep",
    "hamstring",
]

TREND_CATEGORY_BY_TRACKED_GROUP = {
    "chest": "push",
    "tricep": "push",
    "shoulder": "push",
    "back": "pull",
    "bicep": "pull",
    "quad": "legs",
    "hamstring": "legs",
    "abs": "core",
}
TREND_CATEGORIES = ("push", "pull", "legs", "core")

# Per-group denylist: {group: (compact_name_fragment, ...)}.
# A fragment matches the normalized exercise name with all spaces removed.
EXERCISE_EXCLUSIONS = {
    "back": ("pullup",),
}

DEFAULT_MAX_EXERCISES_PER_GROUP = 2
DEFAULT_SUMMARY_LIMIT = 3
SET_DETAILS_UNAVAILABLE = "Set details unavailable"


# ═════════════════════════════════════════════════════════════════════
# ENERGY BALANCE
# ═════════════════════════════════════════════════════════════════════

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "very_active": 1.725,
    "extra_active": 1.9,
}

SEX_ADJUSTMENT = {
    "male": 5,
    "female": -161,
}

MAINTENANCE_METHOD = "mifflin_st_jeor_activity_multiplier"

# (upper_bound_exclusive, category); anything above the last bound is obese
BMI_CATEGORIES = (
    (18.5, "underweight"),
    (25.0, "normal"),
    (30.0, "overweight"),
)

LATEST_SNAPSHOT_LOOKBACK = 120

WRITE_SOURCES = ("bodyweight", "calories_intake", "calories_burn", "profile")


# ═════════════════════════════════════════════════════════════════════
# INSIGHTS
# ═════════════════════════════════════════════════════════════════════

MIN_CORRELATION_OVERLAP = 3
STRONG_CORRELATION = 0.7
MODERATE_CORRELATION = 0.35

# {series: (minimum_expected, logs_per_day)} for ranged adherence targets
EXPECTED_LOG_RATES = {
    "bodyweight": (3, 0.4),
    "calories": (4, 0.55),
    "burn": (4, 0.55),
    "strength": (2, 0.25),
}

# Fixed rolling-window targets (logs per 14 days) when no range is given
ROLLING_14D_TARGETS = {
    "bodyweight": 6,
    "calories": 8,
    "burn": 8,
    "strength": 4,
}

LOW_ADHERENCE_RATIO = 0.65
TREND_DIP_RATIO = 0.95
MIN_POINTS_FOR_DIP_IMPROVEMENT = 4
MIN_POINTS_FOR_DOWNTREND_RULE = 6
BODYWEIGHT_VOLATILITY_KG = 1.0
DEFICIT_KCAL = -700
DEFICIT_STREAK_DAYS = 4
SURPLUS_KCAL = 500
SURPLUS_STREAK_DAYS = 5
SURPLUS_WEIGHT_RISE_KG = 0.6
MAX_SUGGESTIONS = 6

NET_LAG_DAYS = (3, 7)
