"""
Tests for the classifier, strength scorer and time-series aggregator.
Run: pytest tests/ -v
"""
import math

import pandas as pd
import pytest


# ═══════════════════════════════════════════════════════════════════════
# CLASSIFIER TESTS
# ═══════════════════════════════════════════════════════════════════════

class TestNormalizeText:

    def test_punctuation_and_case(self):
        from fitmetrics.classifier import normalize_text
        assert normalize_text("  Upper-Chest!!  ") == "upper chest"

    def test_collapses_whitespace(self):
        from fitmetrics.classifier import normalize_text
        assert normalize_text("Rear   Delts\t/ Traps") == "rear delts traps"

    def test_none_and_nan(self):
        from fitmetrics.classifier import normalize_text
        assert normalize_text(None) == ""
        assert normalize_text(float("nan")) == ""


class TestProgressGroup:
    """push / pull / legs with an explicit "other" default."""

    @pytest.mark.parametrize("label,expected", [
        ("Chest", "push"),
        ("Front Delts", "push"),
        ("Triceps", "push"),
        ("Lats", "pull"),
        ("Biceps", "pull"),
        ("Quads", "legs"),
        ("Glutes", "legs"),
        ("Calves", "legs"),
        ("Forearms", "other"),
        ("", "other"),
        (None, "other"),
    ])
    def test_mapping(self, label, expected):
        from fitmetrics.classifier import progress_group
        assert progress_group(label) == expected

    def test_rule_order_wins(self):
        """A label hitting both push and pull keywords is push (push rule comes first)."""
        from fitmetrics.classifier import progress_group
        assert progress_group("Rear Delt / Upper Back") == "push"


class TestTrackedMuscleGroup:

    @pytest.mark.parametrize("label,expected", [
        ("Lats", "back"),
        ("Upper Back", "back"),
        ("Biceps", "bicep"),
        ("Triceps", "tricep"),
        ("Pecs", "chest"),
        ("Quadriceps", "quad"),
        ("Hamstrings", "hamstring"),
        ("Side Delts", "shoulder"),
        ("Abdominals", "abs"),
        ("Core", "abs"),
    ])
    def test_mapping(self, label, expected):
        from fitmetrics.classifier import tracked_muscle_group
        assert tracked_muscle_group(label) == expected

    def test_unclassifiable_is_none(self):
        from fitmetrics.classifier import tracked_muscle_group
        assert tracked_muscle_group("Calves") is None
        assert tracked_muscle_group(None) is None

    def test_back_checked_before_bicep(self):
        from fitmetrics.classifier import tracked_muscle_group
        assert tracked_muscle_group("Back / Biceps") == "back"


class TestTrendCategory:

    def test_tracked_groups(self):
        from fitmetrics.classifier import exercise_trend_category
        assert exercise_trend_category("Triceps") == "push"
        assert exercise_trend_category("Biceps") == "pull"
        assert exercise_trend_category("Hamstrings") == "legs"
        assert exercise_trend_category("Abs") == "core"

    def test_falls_back_to_progress_group(self):
        from fitmetrics.classifier import exercise_trend_category
        assert exercise_trend_category("Glutes") == "legs"

    def test_unknown_is_core(self):
        from fitmetrics.classifier import exercise_trend_category
        assert exercise_trend_category("Forearms") == "core"
        assert exercise_trend_category(None) == "core"


class TestExerciseExclusions:

    @pytest.mark.parametrize("name", ["Pull-Up", "Pull Ups", "Weighted Pullup"])
    def test_pullups_excluded_from_back(self, name):
        from fitmetrics.classifier import is_excluded_exercise
        assert is_excluded_exercise("back", name)

    def test_pulldown_kept(self):
        from fitmetrics.classifier import is_excluded_exercise
        assert not is_excluded_exercise("back", "Lat Pulldown")

    def test_other_groups_have_no_denylist(self):
        from fitmetrics.classifier import is_excluded_exercise
        assert not is_excluded_exercise("chest", "Pull-Up")


# ═══════════════════════════════════════════════════════════════════════
# STRENGTH SCORER TESTS
# ═══════════════════════════════════════════════════════════════════════

class TestRepMultiplier:
    """Non-monotonic on purpose: 7–9 reps is worth the most."""

    @pytest.mark.parametrize("reps,expected", [
        (1, 0.80), (3, 0.80),
        (4, 1.00), (6, 1.00),
        (7, 1.15), (9, 1.15),
        (10, 1.05), (12, 1.05),
        (13, 1.00), (0, 1.00),
        (None, 1.00),
    ])
    def test_bands(self, reps, expected):
        from fitmetrics.strength import rep_multiplier
        assert rep_multiplier(reps) == expected


class TestSetScore:

    def test_formula(self):
        from fitmetrics.strength import set_score
        assert set_score(100, 8) == pytest.approx(100 * 8 * 1.15)
        assert set_score(100, 5) == pytest.approx(500.0)

    @pytest.mark.parametrize("weight,reps", [
        (-10, 5), (100, -1), ("heavy", 5), (float("nan"), 5), (100, float("inf")), (None, 5),
    ])
    def test_bad_input_scores_zero(self, weight, reps):
        from fitmetrics.strength import set_score
        assert set_score(weight, reps) == 0.0


class TestSessionStrength:

    def test_both_sets_blended(self):
        from fitmetrics.strength import session_strength
        score = session_strength({"weight": 100, "reps": 8}, {"weight": 110, "reps": 7})
        expected = 0.4 * (100 * 8 * 1.15) + 0.6 * (110 * 7 * 1.15)
        assert score == pytest.approx(expected)

    def test_single_set_stands_alone(self):
        from fitmetrics.strength import session_strength
        assert session_strength({"weight": 100, "reps": 5}) == pytest.approx(500.0)
        assert session_strength(None, {"weight": 100, "reps": 5}) == pytest.approx(500.0)

    def test_no_sets_is_zero(self):
        from fitmetrics.strength import session_strength
        assert session_strength() == 0.0

    def test_incomplete_set_counts_as_absent(self):
        from fitmetrics.strength import session_strength
        score = session_strength({"weight": 100}, {"weight": 100, "reps": 5})
        assert score == pytest.approx(500.0)

    def test_deterministic(self):
        from fitmetrics.strength import session_strength
        a = session_strength({"weight": 82.5, "reps": 9}, {"weight": 90, "reps": 6})
        b = session_strength({"weight": 82.5, "reps": 9}, {"weight": 90, "reps": 6})
        assert a == b


def _make_sets(rows: list[dict]) -> pd.DataFrame:
    """Helper: build raw set logs from simplified rows."""
    defaults = {
        "date": "2025-01-06",
        "exercise": "Bench Press",
        "muscle_group": "Chest",
        "set_number": 1,
        "weight": 100,
        "reps": 8,
    }
    return pd.DataFrame([{**defaults, **r} for r in rows])


class TestSessionStrengthScores:

    def test_two_slot_session(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([
            {"set_number": 1, "weight": 100, "reps": 8},
            {"set_number": 2, "weight": 110, "reps": 7},
        ]))
        assert len(df) == 1
        row = df.iloc[0]
        assert row["session_strength"] == pytest.approx(0.4 * 920 + 0.6 * 885.5)
        assert row["progress_group"] == "push"
        assert row["set_summary"] == "S1 100×8, S2 110×7"
        assert row["set_summary_lines"] == ["S1: 100×8", "S2: 110×7"]

    def test_fractional_weights_formatted(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([{"weight": 102.5, "reps": 5}]))
        assert df.iloc[0]["set_summary"] == "S1 102.5×5"

    def test_only_extra_sets_are_averaged(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([
            {"set_number": 3, "weight": 100, "reps": 5},   # 500
            {"set_number": 4, "weight": 80, "reps": 10},   # 840
        ]))
        assert df.iloc[0]["session_strength"] == pytest.approx((500 + 840) / 2)
        assert df.iloc[0]["set_summary"] == "Set details unavailable"
        assert df.iloc[0]["set_summary_lines"] == []

    def test_extra_sets_ignored_when_slot_present(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([
            {"set_number": 1, "weight": 100, "reps": 5},
            {"set_number": 3, "weight": 200, "reps": 5},
        ]))
        assert df.iloc[0]["session_strength"] == pytest.approx(500.0)

    def test_sorted_by_date_then_exercise(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([
            {"date": "2025-01-08", "exercise": "Squat", "muscle_group": "Quads"},
            {"date": "2025-01-06", "exercise": "Row", "muscle_group": "Back"},
            {"date": "2025-01-06", "exercise": "Bench Press"},
        ]))
        assert list(zip(df["date"], df["exercise"])) == [
            ("2025-01-06", "Bench Press"),
            ("2025-01-06", "Row"),
            ("2025-01-08", "Squat"),
        ]

    def test_first_label_seen_wins(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([
            {"set_number": 1, "muscle_group": None},
            {"set_number": 2, "muscle_group": "Chest"},
        ]))
        assert df.iloc[0]["muscle_group"] == "Chest"

    def test_primary_muscle_fallback(self):
        from fitmetrics.strength import session_strength_scores
        sets = _make_sets([{}]).drop(columns=["muscle_group"])
        sets["primary_muscle"] = "Lats"
        df = session_strength_scores(sets)
        assert df.iloc[0]["progress_group"] == "pull"

    def test_bad_rows_score_zero(self):
        from fitmetrics.strength import session_strength_scores
        df = session_strength_scores(_make_sets([{"weight": "n/a", "reps": 5}]))
        assert df.iloc[0]["session_strength"] == 0.0

    def test_empty_input(self):
        from fitmetrics.strength import session_strength_scores, SCORE_COLUMNS
        df = session_strength_scores([])
        assert df.empty
        assert list(df.columns) == SCORE_COLUMNS


class TestProgressDelta:

    def test_relative_change(self):
        from fitmetrics.strength import progress_delta
        assert progress_delta(100, 110) == pytest.approx(0.1)

    def test_zero_baseline(self):
        from fitmetrics.strength import progress_delta
        assert progress_delta(0, 0) == 0.0
        assert progress_delta(0, 50) == 1.0
        assert progress_delta(0, -50) == -1.0

    def test_non_finite(self):
        from fitmetrics.strength import progress_delta
        assert progress_delta(None, 100) == 0.0
        assert progress_delta(100, math.nan) == 0.0

    @pytest.mark.parametrize("delta,expected", [
        (0.25, 7), (0.18, 7),
        (0.10, 6), (0.08, 6),
        (0.05, 5), (0.02, 5),
        (0.0, 4), (-0.01, 4),
        (-0.05, 3),
        (-0.10, 2),
        (-0.20, 1),
        (float("nan"), 4),
    ])
    def test_score_bands(self, delta, expected):
        from fitmetrics.strength import progress_delta_score
        assert progress_delta_score(delta) == expected


# ═══════════════════════════════════════════════════════════════════════
# AGGREGATOR TESTS
# ═══════════════════════════════════════════════════════════════════════

def _make_scores(rows: list[dict]) -> pd.DataFrame:
    """Helper: session-score rows as produced by session_strength_scores()."""
    defaults = {
        "date": "2025-01-06",
        "exercise": "Bench Press",
        "muscle_group": "Chest",
        "progress_group": "push",
        "session_strength": 100.0,
        "set_summary": "S1 100×8",
        "set_summary_lines": ["S1: 100×8"],
    }
    return pd.DataFrame([{**defaults, **r} for r in rows])


class TestAggregateByDate:

    def test_sum_and_average(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([
            {"exercise": "Bench Press", "session_strength": 100.0},
            {"exercise": "Row", "session_strength": 50.0, "progress_group": "pull"},
        ])
        assert aggregate_by_date(scores, "sum").iloc[0]["score"] == pytest.approx(150.0)
        assert aggregate_by_date(scores, "average").iloc[0]["score"] == pytest.approx(75.0)

    def test_sorted_by_date(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([
            {"date": "2025-01-09"}, {"date": "2025-01-02"}, {"date": "2025-01-05"},
        ])
        assert aggregate_by_date(scores)["date"].tolist() == ["2025-01-02", "2025-01-05", "2025-01-09"]

    def test_summary_by_contribution(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([
            {"exercise": "Row", "session_strength": 50.0, "set_summary": "S1 60×10"},
            {"exercise": "Bench Press", "session_strength": 100.0, "set_summary": "S1 100×8, S2 110×7"},
        ])
        lines = aggregate_by_date(scores).iloc[0]["summary_lines"]
        assert lines == ["Bench Press S1 100×8", "Bench Press S2 110×7", "Row S1 60×10"]

    def test_ties_broken_by_name(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([
            {"exercise": "Squat", "set_summary": "S1 140×5"},
            {"exercise": "Deadlift", "set_summary": "S1 180×5"},
        ])
        lines = aggregate_by_date(scores).iloc[0]["summary_lines"]
        assert lines == ["Deadlift S1 180×5", "Squat S1 140×5"]

    def test_summary_limit(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([
            {"exercise": name, "session_strength": float(i)}
            for i, name in enumerate(["A", "B", "C", "D"], start=1)
        ])
        lines = aggregate_by_date(scores, summary_limit=2).iloc[0]["summary_lines"]
        assert [line.split()[0] for line in lines] == ["D", "C"]

    def test_explicit_summary_order(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([
            {"exercise": "Bench Press", "session_strength": 500.0},
            {"exercise": "Fly", "session_strength": 10.0, "set_summary": "S1 20×12"},
        ])
        lines = aggregate_by_date(scores, summary_exercises=["Fly", "Bench Press"]).iloc[0]["summary_lines"]
        assert lines == ["Fly S1 20×12", "Bench Press S1 100×8"]

    def test_missing_set_details(self):
        from fitmetrics.aggregation import aggregate_by_date
        scores = _make_scores([{"set_summary": None}])
        assert aggregate_by_date(scores).iloc[0]["summary_lines"] == ["Bench Press Set details unavailable"]

    def test_unknown_mode_raises(self):
        from fitmetrics.aggregation import aggregate_by_date
        with pytest.raises(ValueError):
            aggregate_by_date(_make_scores([{}]), "median")

    def test_empty(self):
        from fitmetrics.aggregation import aggregate_by_date, SERIES_COLUMNS
        df = aggregate_by_date([])
        assert df.empty
        assert list(df.columns) == SERIES_COLUMNS


class TestProgressDatasets:

    def test_groups_and_exercises(self):
        from fitmetrics.aggregation import build_progress_datasets
        scores = _make_scores([
            {"exercise": "Bench Press", "progress_group": "push", "session_strength": 100.0},
            {"exercise": "Row", "progress_group": "pull", "session_strength": 80.0},
            {"exercise": "Wrist Curl", "progress_group": "other", "session_strength": 10.0},
            {"date": "2025-01-08", "exercise": "Squat", "progress_group": "legs", "session_strength": 200.0},
        ])
        ds = build_progress_datasets(scores, "sum")
        assert ds["overall"]["score"].tolist() == pytest.approx([190.0, 200.0])
        assert ds["push"]["score"].tolist() == pytest.approx([100.0])
        assert ds["pull"]["score"].tolist() == pytest.approx([80.0])
        assert ds["legs"]["date"].tolist() == ["2025-01-08"]
        assert ds["exercise_names"] == ["Bench Press", "Row", "Squat", "Wrist Curl"]
        assert ds["by_exercise"]["Row"]["summary_lines"].iloc[0] == ["Row S1 100×8"]

    def test_empty(self):
        from fitmetrics.aggregation import build_progress_datasets
        ds = build_progress_datasets([])
        assert ds["exercise_names"] == []
        assert ds["overall"].empty


class TestMuscleGroupDatasets:

    def _back_scores(self):
        rows = []
        for day in range(1, 6):
            rows.append({"date": f"2025-01-0{day}", "exercise": "Pull-Up",
                         "muscle_group": "Back", "session_strength": 300.0})
        for day in (2, 4):
            rows.append({"date": f"2025-01-0{day}", "exercise": "Barbell Row",
                         "muscle_group": "Back", "session_strength": 200.0})
        rows.append({"date": "2025-01-03", "exercise": "Lat Pulldown",
                     "muscle_group": "Lats", "session_strength": 150.0})
        rows.append({"date": "2025-01-03", "exercise": "Face Pull",
                     "muscle_group": "Upper Back", "session_strength": 50.0})
        return _make_scores(rows)

    def test_all_groups_present_in_display_order(self):
        from fitmetrics.aggregation import build_muscle_group_datasets
        from fitmetrics.config import TRACKED_MUSCLE_GROUPS
        ds = build_muscle_group_datasets(self._back_scores())
        assert ds["muscle_groups"] == TRACKED_MUSCLE_GROUPS
        assert set(ds["series_by_group"]) == set(TRACKED_MUSCLE_GROUPS)
        assert ds["series_by_group"]["chest"].empty
        assert ds["selected_exercises_by_group"]["chest"] == []

    def test_excluded_exercise_never_selected(self):
        """Pull-ups are the most logged back exercise but stay out of the back series."""
        from fitmetrics.aggregation import build_muscle_group_datasets
        ds = build_muscle_group_datasets(self._back_scores(), max_exercises_per_group=2)
        selected = ds["selected_exercises_by_group"]["back"]
        assert "Pull-Up" not in selected
        assert selected[0] == "Barbell Row"
        assert len(selected) == 2

    def test_ties_alphabetical(self):
        from fitmetrics.aggregation import build_muscle_group_datasets
        ds = build_muscle_group_datasets(self._back_scores(), max_exercises_per_group=2)
        # Lat Pulldown and Face Pull both logged once
        assert ds["selected_exercises_by_group"]["back"] == ["Barbell Row", "Face Pull"]

    def test_series_uses_selected_only(self):
        from fitmetrics.aggregation import build_muscle_group_datasets
        ds = build_muscle_group_datasets(self._back_scores(), max_exercises_per_group=1)
        series = ds["series_by_group"]["back"]
        assert series["date"].tolist() == ["2025-01-02", "2025-01-04"]
        assert series["score"].tolist() == pytest.approx([200.0, 200.0])
        assert series.iloc[0]["summary_lines"] == ["Barbell Row S1 100×8"]

    def test_unknown_mode_raises(self):
        from fitmetrics.aggregation import build_muscle_group_datasets
        with pytest.raises(ValueError):
            build_muscle_group_datasets(self._back_scores(), mode="max")


class TestExerciseNamesByCategory:

    def test_buckets(self):
        from fitmetrics.aggregation import exercise_names_by_category
        scores = _make_scores([
            {"exercise": "Bench Press", "muscle_group": "Chest"},
            {"exercise": "Curl", "muscle_group": "Biceps"},
            {"exercise": "Hip Thrust", "muscle_group": "Glutes"},
            {"exercise": "Plank", "muscle_group": "Core"},
            {"exercise": "Wrist Roller", "muscle_group": "Forearms"},
        ])
        buckets = exercise_names_by_category(scores)
        assert buckets == {
            "push": ["Bench Press"],
            "pull": ["Curl"],
            "legs": ["Hip Thrust"],
            "core": ["Plank", "Wrist Roller"],
        }
