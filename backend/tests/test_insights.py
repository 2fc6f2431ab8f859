"""
Unit tests for insight derivation.
"""
import math
import pytest
from datetime import date, timedelta
from insightforge.core.schemas import ColumnType
from insightforge.services.insights import (
    RECOMMEND_ENCODING,
    RECOMMEND_IMPUTATION,
    RECOMMEND_MULTICOLLINEARITY,
    RECOMMEND_NORMALIZATION,
    RECOMMEND_ROBUST_SCALING,
    derive_insights,
    detect_outliers,
    suggest_charts,
)
from insightforge.services.profiler import profile_data


def analyze(rows):
    profile = profile_data(rows)
    return profile, derive_insights(profile, rows)


@pytest.mark.unit
def test_outlier_value_is_flagged():
    rows = [{"Value": v} for v in [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]]
    profile, insights = analyze(rows)

    value = profile.column("Value")
    assert value.type == ColumnType.NUMERIC
    assert value.stats.median == pytest.approx(5.5)
    assert value.stats.q1 == pytest.approx(3.25)
    assert value.stats.q3 == pytest.approx(7.75)

    assert [o.name for o in insights.outlier_columns] == ["Value"]
    assert insights.outlier_columns[0].outlier_rate == pytest.approx(0.1)
    assert insights.recommendations == [RECOMMEND_ROBUST_SCALING]


@pytest.mark.unit
def test_perfectly_correlated_columns():
    rows = [{"A": a, "B": 2 * a} for a in range(1, 21)]
    _, insights = analyze(rows)

    assert len(insights.strong_correlations) == 1
    pair = insights.strong_correlations[0]
    assert (pair.a, pair.b) == ("A", "B")
    assert abs(pair.r - 1.0) < 1e-9
    assert RECOMMEND_MULTICOLLINEARITY in insights.recommendations


@pytest.mark.unit
def test_weekly_pattern_is_seasonal():
    start = date(2024, 1, 1)
    pattern = [10, 20, 30, 40, 50, 60, 70]
    rows = [
        {"Date": (start + timedelta(days=i)).isoformat(), "Sales": pattern[i % 7]}
        for i in range(35)
    ]
    profile, insights = analyze(rows)

    assert profile.datetime_columns == ["Date"]
    assert profile.numeric_columns == ["Sales"]
    weekly = [c for c in insights.seasonality_candidates if c.lag == 7]
    assert len(weekly) == 1
    assert weekly[0].column == "Sales"
    assert weekly[0].acf > 0.5


@pytest.mark.unit
def test_dominant_category_is_imbalanced():
    rows = [{"Segment": "A"} for _ in range(90)] + [{"Segment": s} for s in ["B", "C"] * 5]
    profile, insights = analyze(rows)

    assert profile.column("Segment").type == ColumnType.CATEGORICAL
    assert len(insights.category_imbalance) == 1
    imbalance = insights.category_imbalance[0]
    assert imbalance.name == "Segment"
    assert imbalance.top == "A"
    assert imbalance.share == pytest.approx(0.9)
    assert insights.recommendations == [RECOMMEND_ENCODING]


@pytest.mark.unit
def test_all_null_column_does_not_break_insights():
    rows = [{"id": i, "blank": None} for i in range(10)]
    profile, insights = analyze(rows)

    blank = profile.column("blank")
    assert blank.non_null_count == 0
    assert blank.null_count == profile.row_count
    assert blank.stats is None
    assert [m.name for m in insights.high_missing_columns] == ["blank"]
    assert insights.high_missing_columns[0].missing_rate == 1.0


@pytest.mark.unit
def test_high_missing_sorted_by_rate():
    rows = [
        {"a": None if i < 5 else i, "b": None if i < 3 else i, "c": None if i < 1 else i}
        for i in range(10)
    ]
    _, insights = analyze(rows)

    assert [(m.name, m.missing_rate) for m in insights.high_missing_columns] == [("a", 0.5), ("b", 0.3)]


@pytest.mark.unit
def test_recommendations_follow_fixed_order():
    rows = []
    for i in range(40):
        row = {f"n{k}": (i * (k + 1)) % 17 + k for k in range(6)}
        row["twin"] = row["n0"] * 3
        row["gappy"] = None if i % 2 else i
        row["spiky"] = 1000 if i in (0, 1, 2, 3) else i
        row["segment"] = "main" if i < 36 else "other"
        rows.append(row)

    _, insights = analyze(rows)

    assert insights.recommendations == [
        RECOMMEND_IMPUTATION,
        RECOMMEND_ROBUST_SCALING,
        RECOMMEND_ENCODING,
        RECOMMEND_NORMALIZATION,
        RECOMMEND_MULTICOLLINEARITY,
    ]


@pytest.mark.unit
def test_clean_data_has_no_recommendations():
    rows = [{"x": i, "label": f"item {chr(65 + i)}"} for i in range(20)]
    _, insights = analyze(rows)

    assert insights.recommendations == []
    assert insights.outlier_columns == []
    assert insights.strong_correlations == []


@pytest.mark.unit
def test_derive_insights_is_deterministic():
    rows = [{"x": i % 9, "y": (i * 7) % 11, "when": f"2024-03-{(i % 28) + 1:02d}"} for i in range(60)]
    profile = profile_data(rows)

    assert derive_insights(profile, rows) == derive_insights(profile, rows)


@pytest.mark.unit
def test_insight_rates_are_finite():
    rows = [{"flat": 1, "other": 1, "d": f"2024-01-{i + 1:02d}"} for i in range(20)]
    _, insights = analyze(rows)

    for correlation in insights.strong_correlations:
        assert math.isfinite(correlation.r)
    for candidate in insights.seasonality_candidates:
        assert math.isfinite(candidate.acf)


@pytest.mark.unit
def test_detect_outliers_needs_five_values():
    rows = [{"v": v} for v in [1, 2, 3, 400]]
    assert detect_outliers(rows, ["v"]) == []


@pytest.mark.unit
def test_suggest_charts():
    rows = [{"Date": f"2024-01-{i + 1:02d}", "A": i, "B": i * i, "Region": "N" if i % 2 else "S"} for i in range(20)]
    profile = profile_data(rows)

    assert suggest_charts(profile) == [
        "Histograms and box plots for numeric distributions",
        "Correlation heatmap and scatter plot matrix to explore relationships",
        "Time series trends for temporal patterns",
        "Bar and pie charts for categorical proportions",
    ]
    assert suggest_charts(profile_data([])) == []
