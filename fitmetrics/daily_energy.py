"""
FitMetrics — Daily Energy Snapshots

Store-backed side of the energy calculator:

  1. recompute_for_date()             one (user, date) snapshot, upsert or delete
  2. refresh_after_write()            the write hook; never raises
  3. recompute_current_maintenance()  "as of today" TDEE on the profile
  4. EnergyLogWriter                  every date-scoped write goes through here

Snapshots are derived data. A date with no weight, intake or burn signal has
no snapshot row at all.
"""
import logging
from datetime import date, datetime, timezone

from fitmetrics.config import (
    TABLES,
    ACTIVITY_MULTIPLIERS,
    SEX_ADJUSTMENT,
    WEIGHT_UNITS,
    MAINTENANCE_METHOD,
    LATEST_SNAPSHOT_LOOKBACK,
    WRITE_SOURCES,
)
from fitmetrics.energy import (
    energy_profile,
    maintenance_for_weight,
    bmi,
    calories_in,
    total_burn,
    net_calories,
    to_kg,
    bodyweight_kg,
)
from fitmetrics.utils import as_float, clean_record, iso_date

log = logging.getLogger(__name__)

SNAPSHOT_TABLE = TABLES["daily_energy_metrics"]
SNAPSHOT_CONFLICT = ("user_id", "log_date")
PROFILE_CONFLICT = ("user_id",)

SNAPSHOT_FIELDS = (
    "weight_kg",
    "calories_in_kcal",
    "active_calories_kcal",
    "bmi",
    "maintenance_kcal_for_day",
    "total_burn_kcal",
    "net_calories_kcal",
)
COMPLETE_SNAPSHOT_FIELDS = (
    "maintenance_kcal_for_day",
    "active_calories_kcal",
    "total_burn_kcal",
    "net_calories_kcal",
)


def _first_row(df) -> dict | None:
    if df is None or df.empty:
        return None
    return clean_record(df.iloc[0].to_dict())


def _last_row(df) -> dict | None:
    if df is None or df.empty:
        return None
    return clean_record(df.iloc[-1].to_dict())


def load_profile(store, user_id: str) -> dict | None:
    return _first_row(store.select(TABLES["profiles"], user_id, date_column=None))


def _row_for_date(store, table: str, user_id: str, log_date: str) -> dict | None:
    return _first_row(store.select(table, user_id, start=log_date, end=log_date))


# ═══════════════════════════════════════════════════════════════════════
# 1. PER-DATE SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════

def compute_snapshot(user_id, log_date, weight_row, calories_row, burn_row, profile_row) -> dict:
    """Pure snapshot for one date. Age is taken as of `log_date`."""
    weight_kg = bodyweight_kg(weight_row)
    intake = calories_in(
        (calories_row or {}).get("pre_workout_kcal"),
        (calories_row or {}).get("post_workout_kcal"),
        has_row=calories_row is not None,
    )
    active = as_float((burn_row or {}).get("estimated_kcal_spent"))

    maintenance = maintenance_for_weight(energy_profile(profile_row), weight_kg, log_date)
    height_cm = as_float((profile_row or {}).get("height_cm"))
    body_mass_index = bmi(weight_kg, height_cm) if weight_kg is not None and height_cm is not None else None
    burn = total_burn(maintenance, active)

    return {
        "user_id": user_id,
        "log_date": log_date,
        "weight_kg": weight_kg,
        "calories_in_kcal": intake,
        "active_calories_kcal": active,
        "bmi": body_mass_index,
        "maintenance_kcal_for_day": maintenance,
        "total_burn_kcal": burn,
        "net_calories_kcal": net_calories(intake, burn),
    }


def has_signal(snapshot: dict) -> bool:
    return any(snapshot.get(field) is not None for field in SNAPSHOT_FIELDS)


def recompute_for_date(store, user_id: str, log_date: str) -> dict | None:
    """
    Rebuild the snapshot for (user_id, log_date) from same-date raw rows.

    Returns the persisted snapshot, or None when the date has no signal
    left and its snapshot (if any) was deleted. StoreError propagates.
    """
    snapshot = compute_snapshot(
        user_id,
        log_date,
        weight_row=_row_for_date(store, TABLES["bodyweight_logs"], user_id, log_date),
        calories_row=_row_for_date(store, TABLES["calories_logs"], user_id, log_date),
        burn_row=_row_for_date(store, TABLES["metabolic_activity_logs"], user_id, log_date),
        profile_row=load_profile(store, user_id),
    )

    if not has_signal(snapshot):
        store.delete(SNAPSHOT_TABLE, user_id, log_date)
        return None

    store.upsert(SNAPSHOT_TABLE, snapshot, on_conflict=SNAPSHOT_CONFLICT)
    return snapshot


def logged_dates_from(store, user_id: str, from_date: str) -> list[str]:
    """Every date >= from_date with a bodyweight, calories or burn row."""
    dates = set()
    for table in ("bodyweight_logs", "calories_logs", "metabolic_activity_logs"):
        df = store.select(TABLES[table], user_id, start=from_date)
        if not df.empty:
            dates.update(df["log_date"].dropna().astype(str))
    return sorted(dates)


def recompute_from_date_forward(store, user_id: str, from_date: str) -> list[str]:
    """Recompute every logged date from `from_date` on, oldest first. Returns the dates."""
    dates = logged_dates_from(store, user_id, from_date)
    for log_date in dates:
        recompute_for_date(store, user_id, log_date)
    return dates


def latest_snapshot(store, user_id: str) -> dict | None:
    """Newest complete snapshot among the latest 120, else the newest of any kind."""
    df = store.select(SNAPSHOT_TABLE, user_id)
    if df.empty:
        return None
    recent = df.iloc[::-1].head(LATEST_SNAPSHOT_LOOKBACK)
    for row in recent.to_dict("records"):
        row = clean_record(row)
        if all(as_float(row.get(field)) is not None for field in COMPLETE_SNAPSHOT_FIELDS):
            return row
    return clean_record(recent.iloc[0].to_dict())


# ═══════════════════════════════════════════════════════════════════════
# 2. CURRENT MAINTENANCE
# ═══════════════════════════════════════════════════════════════════════

def recompute_current_maintenance(store, user_id: str, today=None) -> float | None:
    """Profile × most recently logged weight, stored on the profile row."""
    latest_weight = _last_row(store.select(TABLES["bodyweight_logs"], user_id))
    maintenance = maintenance_for_weight(
        energy_profile(load_profile(store, user_id)),
        bodyweight_kg(latest_weight),
        today or date.today(),
    )
    store.upsert(
        TABLES["profiles"],
        {
            "user_id": user_id,
            "maintenance_kcal_current": maintenance,
            "maintenance_method": MAINTENANCE_METHOD,
            "maintenance_updated_at": datetime.now(timezone.utc).isoformat(),
        },
        on_conflict=PROFILE_CONFLICT,
    )
    return maintenance


# ═══════════════════════════════════════════════════════════════════════
# 3. WRITE HOOK
# ═══════════════════════════════════════════════════════════════════════

def refresh_after_write(store, source: str, user_id: str, touched_dates=None,
                        refresh_current_maintenance: bool = False, today=None):
    """
    Recompute every touched date after a raw write.

    Failures are logged and swallowed: the raw write already happened and
    must not be undone by a derived-data refresh.
    """
    if source not in WRITE_SOURCES:
        raise ValueError(f"Unknown write source {source!r} (expected one of {WRITE_SOURCES})")

    dates = [iso_date(d) for d in (touched_dates or [])]
    for log_date in dict.fromkeys(d for d in dates if d):
        try:
            recompute_for_date(store, user_id, log_date)
        except Exception as e:
            log.warning("[%s] daily energy refresh failed for user=%s log_date=%s: %s",
                        source, user_id, log_date, e)

    if refresh_current_maintenance:
        try:
            recompute_current_maintenance(store, user_id, today)
        except Exception as e:
            log.warning("[%s] maintenance refresh failed for user=%s: %s", source, user_id, e)


# ═══════════════════════════════════════════════════════════════════════
# 4. WRITER — the only mutation path for date-scoped energy data
# ═══════════════════════════════════════════════════════════════════════

def _require_date(value, field: str = "log_date") -> str:
    iso = iso_date(value)
    if iso is None:
        raise ValueError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}")
    return iso


def _touched(log_date: str, previous_date: str | None) -> list[str]:
    if previous_date and previous_date != log_date:
        return [previous_date, log_date]
    return [log_date]


def _non_negative(value, field: str) -> float:
    num = as_float(value)
    if num is None or num < 0:
        raise ValueError(f"{field} must be 0 or greater")
    return num


class EnergyLogWriter:
    """
    Writes raw bodyweight / calories / burn / profile rows and refreshes the
    derived snapshots for exactly the dates each write touched.

    Validation errors are ValueError and happen before anything is written.
    StoreError from the raw write itself propagates; refresh failures don't.
    """

    def __init__(self, store, today=None):
        self.store = store
        self.today = today

    def _write(self, table: str, source: str, row: dict, previous_date: str | None,
               refresh_current_maintenance: bool = False) -> dict:
        """
        Upsert `row`, then drop the row on `previous_date` when the date moved.

        The old row is only deleted once the new one is stored. Both dates are
        refreshed even when a store call fails, so snapshots always match
        whatever raw rows survived.
        """
        user_id, log_date = row["user_id"], row["log_date"]
        try:
            saved = self.store.upsert(table, row)
            if previous_date and previous_date != log_date:
                self.store.delete(table, user_id, previous_date)
        finally:
            refresh_after_write(
                self.store, source, user_id, _touched(log_date, previous_date),
                refresh_current_maintenance=refresh_current_maintenance, today=self.today,
            )
        return saved

    # ── Bodyweight ──────────────────────────────────────────────────
    def log_bodyweight(self, user_id: str, log_date, weight, unit: str = "kg",
                       previous_date=None) -> dict:
        log_date = _require_date(log_date)
        previous_date = _require_date(previous_date, "previous_date") if previous_date else None
        if unit not in WEIGHT_UNITS:
            raise ValueError(f"unit must be one of {WEIGHT_UNITS}, got {unit!r}")
        weight_num = as_float(weight)
        if weight_num is None or weight_num <= 0:
            raise ValueError("weight must be greater than 0")

        return self._write(
            TABLES["bodyweight_logs"], "bodyweight",
            {
                "user_id": user_id,
                "log_date": log_date,
                "weight_input": weight_num,
                "unit_input": unit,
                "weight_kg": to_kg(weight_num, unit),
            },
            previous_date,
            refresh_current_maintenance=True,
        )

    def delete_bodyweight(self, user_id: str, log_date) -> int:
        log_date = _require_date(log_date)
        removed = self.store.delete(TABLES["bodyweight_logs"], user_id, log_date)
        refresh_after_write(
            self.store, "bodyweight", user_id, [log_date],
            refresh_current_maintenance=True, today=self.today,
        )
        return removed

    # ── Calorie intake ──────────────────────────────────────────────
    def log_calories(self, user_id: str, log_date, pre_workout_kcal=None,
                     post_workout_kcal=None, previous_date=None) -> dict:
        log_date = _require_date(log_date)
        previous_date = _require_date(previous_date, "previous_date") if previous_date else None
        if pre_workout_kcal is None and post_workout_kcal is None:
            raise ValueError("At least one calorie value is required.")
        pre = _non_negative(pre_workout_kcal, "pre_workout_kcal") if pre_workout_kcal is not None else None
        post = _non_negative(post_workout_kcal, "post_workout_kcal") if post_workout_kcal is not None else None

        return self._write(
            TABLES["calories_logs"], "calories_intake",
            {
                "user_id": user_id,
                "log_date": log_date,
                "pre_workout_kcal": pre,
                "post_workout_kcal": post,
            },
            previous_date,
        )

    def delete_calories(self, user_id: str, log_date) -> int:
        log_date = _require_date(log_date)
        removed = self.store.delete(TABLES["calories_logs"], user_id, log_date)
        refresh_after_write(self.store, "calories_intake", user_id, [log_date])
        return removed

    # ── Calorie burn ────────────────────────────────────────────────
    def log_burn(self, user_id: str, log_date, estimated_kcal_spent, source: str | None = None,
                 previous_date=None) -> dict:
        log_date = _require_date(log_date)
        previous_date = _require_date(previous_date, "previous_date") if previous_date else None
        spent = _non_negative(estimated_kcal_spent, "estimated_kcal_spent")

        return self._write(
            TABLES["metabolic_activity_logs"], "calories_burn",
            {
                "user_id": user_id,
                "log_date": log_date,
                "estimated_kcal_spent": spent,
                "source": source,
            },
            previous_date,
        )

    def delete_burn(self, user_id: str, log_date) -> int:
        log_date = _require_date(log_date)
        removed = self.store.delete(TABLES["metabolic_activity_logs"], user_id, log_date)
        refresh_after_write(self.store, "calories_burn", user_id, [log_date])
        return removed

    # ── Profile ─────────────────────────────────────────────────────
    def update_profile(self, user_id: str, sex=None, birth_date=None, height_cm=None,
                       activity_level=None, refresh_dates=None) -> dict:
        """
        Upsert profile energy inputs (only the fields given).

        Refreshes current maintenance plus `refresh_dates` (default: today).
        Older snapshots are brought up to date with the backfill CLI.
        """
        fields = {}
        if sex is not None:
            if sex not in SEX_ADJUSTMENT:
                raise ValueError(f"sex must be one of {tuple(SEX_ADJUSTMENT)}, got {sex!r}")
            fields["sex"] = sex
        if activity_level is not None:
            if activity_level not in ACTIVITY_MULTIPLIERS:
                raise ValueError(f"activity_level must be one of {tuple(ACTIVITY_MULTIPLIERS)}, "
                                 f"got {activity_level!r}")
            fields["activity_level"] = activity_level
        if birth_date is not None:
            fields["birth_date"] = _require_date(birth_date, "birth_date")
        if height_cm is not None:
            height = as_float(height_cm)
            if height is None or height <= 0:
                raise ValueError("height_cm must be greater than 0")
            fields["height_cm"] = height

        row = self.store.upsert(
            TABLES["profiles"], {"user_id": user_id, **fields}, on_conflict=PROFILE_CONFLICT,
        )

        if refresh_dates is None:
            refresh_dates = [iso_date(self.today or date.today())]
        refresh_after_write(
            self.store, "profile", user_id,
            [_require_date(d, "refresh_dates") for d in refresh_dates],
            refresh_current_maintenance=True, today=self.today,
        )
        return row
