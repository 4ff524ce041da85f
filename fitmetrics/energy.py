"""
FitMetrics — Energy Balance formulas

Pure functions only; the store-backed recompute lives in daily_energy.py.

    BMR (Mifflin–St Jeor) = 10·kg + 6.25·cm − 5·age + (5 male | −161 female)
    maintenance           = BMR × activity multiplier
    total burn            = maintenance + active calories
    net                   = calories in − total burn

Anything that cannot be computed is None. Nothing here guesses a default.
"""
from dataclasses import dataclass
from datetime import date

from fitmetrics.config import (
    ACTIVITY_MULTIPLIERS,
    SEX_ADJUSTMENT,
    BMI_CATEGORIES,
    LB_PER_KG,
    WEIGHT_UNITS,
)
from fitmetrics.utils import as_float, parse_date


# ═══════════════════════════════════════════════════════════════════════
# 1. ENERGY PROFILE — complete or not, decided once
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CompleteProfile:
    sex: str
    birth_date: date
    height_cm: float
    activity_level: str


@dataclass(frozen=True)
class IncompleteProfile:
    missing: tuple[str, ...]


EnergyProfile = CompleteProfile | IncompleteProfile


def normalize_sex(value) -> str | None:
    return value if value in SEX_ADJUSTMENT else None


def normalize_activity_level(value) -> str | None:
    return value if value in ACTIVITY_MULTIPLIERS else None


def energy_profile(row: dict | None) -> EnergyProfile:
    """Build the profile sum type from a raw profile row (any field may be None)."""
    row = row or {}
    sex = normalize_sex(row.get("sex"))
    birth_date = parse_date(row.get("birth_date"))
    height_cm = as_float(row.get("height_cm"))
    activity_level = normalize_activity_level(row.get("activity_level"))

    missing = []
    if sex is None:
        missing.append("sex")
    if birth_date is None:
        missing.append("birth_date")
    if height_cm is None or height_cm <= 0:
        missing.append("height_cm")
    if activity_level is None:
        missing.append("activity_level")

    if missing:
        return IncompleteProfile(missing=tuple(missing))
    return CompleteProfile(
        sex=sex, birth_date=birth_date,
        height_cm=height_cm, activity_level=activity_level,
    )


# ═══════════════════════════════════════════════════════════════════════
# 2. BMR & MAINTENANCE
# ═══════════════════════════════════════════════════════════════════════

def age_years(birth_date, reference_date=None) -> int | None:
    """Whole years on `reference_date` (today by default); None if unknowable."""
    born = parse_date(birth_date)
    ref = parse_date(reference_date) if reference_date is not None else date.today()
    if born is None or ref is None:
        return None
    had_birthday = (ref.month, ref.day) >= (born.month, born.day)
    age = ref.year - born.year - (0 if had_birthday else 1)
    return age if age >= 0 else None


def bmr_mifflin_st_jeor(sex: str, weight_kg: float, height_cm: float, age: int) -> float:
    return 10 * weight_kg + 6.25 * height_cm - 5 * age + SEX_ADJUSTMENT[sex]


def maintenance_calories(bmr: float, activity_level: str) -> float:
    return bmr * ACTIVITY_MULTIPLIERS[activity_level]


def maintenance_for_weight(profile: EnergyProfile, weight_kg, reference_date=None) -> float | None:
    """Maintenance (TDEE) for a given bodyweight, or None when it can't be known."""
    weight = as_float(weight_kg)
    if weight is None or weight <= 0:
        return None
    if isinstance(profile, IncompleteProfile):
        return None
    age = age_years(profile.birth_date, reference_date)
    if age is None:
        return None
    bmr = bmr_mifflin_st_jeor(profile.sex, weight, profile.height_cm, age)
    return maintenance_calories(bmr, profile.activity_level)


def maintenance_from_profile(
    sex, weight_kg, height_cm, birth_date, activity_level, reference_date=None,
) -> float | None:
    """Field-by-field entry point; any missing/invalid input gives None."""
    profile = energy_profile({
        "sex": sex,
        "birth_date": birth_date,
        "height_cm": height_cm,
        "activity_level": activity_level,
    })
    return maintenance_for_weight(profile, weight_kg, reference_date)


# ═══════════════════════════════════════════════════════════════════════
# 3. BMI & DAILY BALANCE
# ═══════════════════════════════════════════════════════════════════════

def bmi(weight_kg, height_cm) -> float | None:
    weight = as_float(weight_kg)
    height = as_float(height_cm)
    if weight is None or height is None or weight <= 0 or height <= 0:
        return None
    height_m = height / 100
    return weight / (height_m * height_m)


def bmi_category(value) -> str | None:
    num = as_float(value)
    if num is None or num <= 0:
        return None
    for upper, category in BMI_CATEGORIES:
        if num < upper:
            return category
    return "obese"


def calories_in(pre_workout_kcal, post_workout_kcal, has_row: bool = True) -> float | None:
    """Daily intake from the pre/post split; a missing half counts as 0."""
    if not has_row:
        return None
    return (as_float(pre_workout_kcal) or 0.0) + (as_float(post_workout_kcal) or 0.0)


def total_burn(maintenance_kcal, active_kcal) -> float | None:
    maintenance = as_float(maintenance_kcal)
    active = as_float(active_kcal)
    if maintenance is None or active is None:
        return None
    return maintenance + active


def net_calories(calories_in_kcal, total_burn_kcal) -> float | None:
    intake = as_float(calories_in_kcal)
    burn = as_float(total_burn_kcal)
    if intake is None or burn is None:
        return None
    return intake - burn


# ═══════════════════════════════════════════════════════════════════════
# 4. BODYWEIGHT UNITS
# ═══════════════════════════════════════════════════════════════════════

def to_kg(value, unit: str = "kg") -> float | None:
    num = as_float(value)
    if num is None:
        return None
    return num if unit == "kg" else num / LB_PER_KG


def bodyweight_kg(row: dict | None) -> float | None:
    """Stored weight_kg when present, else the raw input converted from its unit."""
    if not row:
        return None
    stored = as_float(row.get("weight_kg"))
    if stored is not None:
        return stored
    unit = row.get("unit_input")
    return to_kg(row.get("weight_input"), unit if unit in WEIGHT_UNITS else "kg")
