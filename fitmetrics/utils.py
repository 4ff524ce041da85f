"""
FitMetrics — shared helpers for numbers, dates and row frames.
"""
import math
from datetime import date, datetime, timedelta

import pandas as pd


def as_float(value) -> float | None:
    """Finite float or None. Strings, bools and other junk become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def format_number(value) -> str:
    """100.0 → "100", 102.5 → "102.5"."""
    num = as_float(value)
    if num is None:
        return str(value)
    if num.is_integer():
        return str(int(num))
    return f"{round(num, 3):g}"


def as_frame(rows) -> pd.DataFrame:
    """Accept a DataFrame or any iterable of row dicts."""
    if isinstance(rows, pd.DataFrame):
        return rows
    return pd.DataFrame(list(rows or []))


def clean_record(row: dict) -> dict:
    """Row dict from a DataFrame with NaN/NaT turned back into None."""
    return {key: (None if _is_missing(value) else value) for key, value in row.items()}


def _is_missing(value) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, pd.Timestamp):
        return value.date()
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def iso_date(value) -> str | None:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def shift_iso_date(value: str, days: int) -> str:
    return (parse_date(value) + timedelta(days=days)).isoformat()


def days_ago(days: int, today: date | None = None) -> str:
    today = today or date.today()
    return (today - timedelta(days=days)).isoformat()


def last_n_dates(days: int, today: date | None = None) -> set[str]:
    """ISO dates of today and the `days - 1` days before it."""
    return {days_ago(i, today) for i in range(days)}


def span_days(dates) -> int:
    """Inclusive calendar span of a collection of ISO dates (0 when empty)."""
    parsed = [parse_date(d) for d in dates]
    parsed = [d for d in parsed if d is not None]
    if not parsed:
        return 0
    return max(1, (max(parsed) - min(parsed)).days + 1)
