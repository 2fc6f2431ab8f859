"""
Unit tests for matrix, trend and distribution builders.
"""
import pytest
from datetime import datetime, timezone
from insightforge.services.aggregation import (
    box_summary,
    build_cross_tab,
    correlation_matrix,
    cross_tab_columns,
    histogram,
    missingness_grid,
    numeric_series,
    temporal_trends,
    value_counts,
)


@pytest.fixture
def daily_rows():
    return [
        {"Date": "2024-01-02", "Units": 4, "Price": 10},
        {"Date": "2024-01-01", "Units": 2, "Price": 20},
        {"Date": "2024-01-01", "Units": 6, "Price": None},
        {"Date": "not a date", "Units": 100, "Price": 1},
        {"Date": "2024-01-02T23:30:00Z", "Units": "n/a", "Price": 30},
    ]


@pytest.mark.unit
def test_numeric_series_skips_unparseable_cells(daily_rows):
    series = numeric_series(daily_rows, ["Units", "Price"])
    assert series == {"Units": [4.0, 2.0, 6.0, 100.0], "Price": [10.0, 20.0, 1.0, 30.0]}


@pytest.mark.unit
def test_correlation_matrix_is_symmetric_with_unit_diagonal():
    rows = [{"a": i, "b": 2 * i, "c": 10 - i, "flat": 3} for i in range(10)]
    corr = correlation_matrix(rows, ["a", "b", "c", "flat"])

    assert corr.columns == ["a", "b", "c", "flat"]
    for i in range(4):
        assert corr.values[i][i] == 1.0
        for j in range(4):
            assert corr.values[i][j] == corr.values[j][i]
            assert -1.0 <= corr.values[i][j] <= 1.0

    assert corr.values[0][1] == pytest.approx(1.0, abs=1e-9)
    assert corr.values[0][2] == pytest.approx(-1.0, abs=1e-9)
    # A constant column correlates with nothing
    assert corr.values[0][3] == 0.0


@pytest.mark.unit
def test_correlation_matrix_empty():
    corr = correlation_matrix([], [])
    assert corr.columns == []
    assert corr.values == []


@pytest.mark.unit
def test_temporal_trends_mean(daily_rows):
    trend = temporal_trends(daily_rows, "Date", ["Units", "Price"])

    assert trend.date_column == "Date"
    assert trend.aggregation == "mean"
    assert [p.date for p in trend.series] == [
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        datetime(2024, 1, 2, tzinfo=timezone.utc),
    ]
    assert trend.series[0].values == {"Units": 4.0, "Price": 20.0}
    assert trend.series[1].values == {"Units": 4.0, "Price": 20.0}


@pytest.mark.unit
def test_temporal_trends_sum_and_count(daily_rows):
    summed = temporal_trends(daily_rows, "Date", ["Units"], aggregation="sum")
    counted = temporal_trends(daily_rows, "Date", ["Units"], aggregation="count")

    assert [p.values["Units"] for p in summed.series] == [8.0, 4.0]
    assert [p.values["Units"] for p in counted.series] == [2.0, 1.0]


@pytest.mark.unit
def test_temporal_trends_day_without_values_reports_zero():
    rows = [{"Date": "2024-05-01", "Units": None}, {"Date": "2024-05-02", "Units": 3}]
    trend = temporal_trends(rows, "Date", ["Units"])
    assert [p.values["Units"] for p in trend.series] == [0.0, 3.0]


@pytest.mark.unit
def test_temporal_trends_rejects_unknown_aggregation(daily_rows):
    with pytest.raises(ValueError):
        temporal_trends(daily_rows, "Date", ["Units"], aggregation="median")


@pytest.mark.unit
def test_build_cross_tab_keeps_first_encounter_order():
    tab = build_cross_tab([("North", "A"), ("South", "B"), ("North", "B"), ("North", "A")])

    assert tab.rows == ["North", "South"]
    assert tab.cols == ["A", "B"]
    assert tab.matrix == [[2, 1], [0, 1]]


@pytest.mark.unit
def test_cross_tab_columns_renders_values():
    rows = [{"Region": "North", "Rating": 4.0}, {"Region": "North", "Rating": 4}, {"Region": None, "Rating": 5}]
    tab = cross_tab_columns(rows, "Region", "Rating")

    assert tab.rows == ["North", "null"]
    assert tab.cols == ["4", "5"]
    assert tab.matrix == [[2, 0], [0, 1]]


@pytest.mark.unit
def test_histogram_last_bucket_is_closed():
    buckets = histogram([float(v) for v in range(11)], bins=5)

    assert len(buckets) == 5
    assert [b.count for b in buckets] == [2, 2, 2, 2, 3]
    assert buckets[0].x0 == 0.0
    assert buckets[-1].x1 == pytest.approx(10.0)
    assert buckets[0].label == "0 - 2"


@pytest.mark.unit
def test_histogram_zero_range_and_empty():
    buckets = histogram([3.0, 3.0, 3.0], bins=4)
    assert [b.count for b in buckets] == [3, 0, 0, 0]
    assert buckets[0].x1 - buckets[0].x0 == 1.0

    assert histogram([], bins=4) == []


@pytest.mark.unit
def test_box_summary():
    assert box_summary([1.0, 2.0, 3.0, 4.0]) is None

    box = box_summary([5.0, 1.0, 4.0, 2.0, 3.0])
    assert (box.min, box.q1, box.median, box.q3, box.max) == (1.0, 2.0, 3.0, 4.0, 5.0)


@pytest.mark.unit
def test_value_counts_skips_missing():
    rows = [{"c": "a"}, {"c": "b"}, {"c": "a"}, {"c": None}, {"c": ""}, {"c": True}]
    assert value_counts(rows, "c") == {"a": 2, "b": 1, "true": 1}


@pytest.mark.unit
def test_missingness_grid():
    rows = [{"a": 1, "b": None}, {"a": "", "b": 2}, {"a": 3, "b": 4}]

    assert missingness_grid(rows) == [[False, True], [True, False], [False, False]]
    assert missingness_grid(rows, max_rows=1, max_cols=1) == [[False]]
    assert missingness_grid([]) == []


@pytest.mark.unit
def test_temporal_trends_without_numeric_columns(daily_rows):
    trend = temporal_trends(daily_rows, "Date", [])
    assert [p.date.day for p in trend.series] == [1, 2]
    assert all(p.values == {} for p in trend.series)


@pytest.mark.unit
def test_temporal_trends_no_parseable_dates():
    trend = temporal_trends([{"Date": "soon", "Units": 1}], "Date", ["Units"])
    assert trend.series == []


@pytest.mark.unit
def test_temporal_trends_column_named_like_a_day():
    rows = [{"day": "2024-02-01", "Date": 5}, {"day": "2024-02-01", "Date": 7}]
    trend = temporal_trends(rows, "day", ["Date"])
    assert trend.series[0].values == {"Date": 6.0}


@pytest.mark.unit
def test_build_cross_tab_empty():
    tab = build_cross_tab([])
    assert (tab.rows, tab.cols, tab.matrix) == ([], [], [])


@pytest.mark.unit
def test_histogram_ignores_non_finite_values():
    buckets = histogram([1.0, float("nan"), 2.0, float("inf"), 3.0], bins=2)
    assert [b.count for b in buckets] == [1, 2]
    assert (buckets[0].x0, buckets[-1].x1) == (1.0, 3.0)
