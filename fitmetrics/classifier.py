"""
FitMetrics — Muscle-Group Classifier

Maps free-text muscle/exercise labels onto fixed taxonomies. All matching
goes through normalize_text() and the ordered rule tables in config.py;
nothing here knows about scores.
"""
import re

from fitmetrics.config import (
    PROGRESS_GROUP_RULES,
    DEFAULT_PROGRESS_GROUP,
    TRACKED_MUSCLE_GROUP_RULES,
    TREND_CATEGORY_BY_TRACKED_GROUP,
    EXERCISE_EXCLUSIONS,
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str | None) -> str:
    """Lowercase, turn punctuation into spaces, collapse whitespace. Non-strings → ""."""
    if not isinstance(value, str):
        return ""
    text = _NON_ALNUM.sub(" ", value.lower())
    return _WHITESPACE.sub(" ", text).strip()


def _match_rules(label: str | None, rules: tuple) -> str | None:
    normalized = normalize_text(label)
    if not normalized:
        return None
    for category, keywords in rules:
        if any(kw in normalized for kw in keywords):
            return category
    return None


def progress_group(label: str | None) -> str:
    """push / pull / legs, or "other" when nothing matches. Never None."""
    return _match_rules(label, PROGRESS_GROUP_RULES) or DEFAULT_PROGRESS_GROUP


def tracked_muscle_group(label: str | None) -> str | None:
    """One of the 8 tracked groups, or None for unclassifiable labels."""
    return _match_rules(label, TRACKED_MUSCLE_GROUP_RULES)


def exercise_trend_category(label: str | None) -> str:
    """Bucket for the per-exercise picker: push / pull / legs / core."""
    tracked = tracked_muscle_group(label)
    if tracked is not None:
        return TREND_CATEGORY_BY_TRACKED_GROUP[tracked]
    group = progress_group(label)
    if group in ("push", "pull", "legs"):
        return group
    return "core"


def is_excluded_exercise(group: str, exercise: str | None) -> bool:
    """True when `exercise` is on `group`'s denylist."""
    fragments = EXERCISE_EXCLUSIONS.get(group)
    if not fragments:
        return False
    compact = normalize_text(exercise).replace(" ", "")
    return any(fragment in compact for fragment in fragments)
