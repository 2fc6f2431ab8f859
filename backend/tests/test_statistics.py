"""
Unit tests for the statistical aggregators.
"""
import math
import pytest
from insightforge.services.statistics import (
    autocorrelation,
    iqr_fences,
    iqr_outlier_rate,
    mean_std,
    numeric_summary,
    pearson,
    quantile,
    skewness,
)


@pytest.mark.unit
def test_quantile_interpolates():
    values = [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]
    assert quantile(values, 0.25) == pytest.approx(3.25)
    assert quantile(values, 0.5) == pytest.approx(5.5)
    assert quantile(values, 0.75) == pytest.approx(7.75)
    assert quantile([1, 2, 3, 4], 0.5) == pytest.approx(2.5)


@pytest.mark.unit
def test_quantile_degenerate_input():
    assert quantile([], 0.5) == 0.0
    assert quantile([4.0], 0.9) == 4.0


@pytest.mark.unit
def test_mean_std_uses_sample_divisor():
    mean, std = mean_std([2, 4, 4, 4, 5, 5, 7, 9])
    assert mean == 5.0
    assert std == pytest.approx(math.sqrt(32 / 7))

    assert mean_std([5.0]) == (5.0, 0.0)
    assert mean_std([]) == (0.0, 0.0)


@pytest.mark.unit
def test_skewness():
    assert skewness([1, 2]) == 0.0
    assert skewness([1, 2, 3]) == pytest.approx(0.0)
    # mean 2.8, sample variance 16.2, third moment 349.92 / 5
    assert skewness([1, 1, 1, 1, 10]) == pytest.approx(69.984 / 16.2 ** 1.5)
    assert skewness([1, 1, 1, 1, 10]) == pytest.approx(1.0733, abs=1e-4)
    assert skewness([10, 10, 10, 10, 1]) == pytest.approx(-1.0733, abs=1e-4)
    assert skewness([3, 3, 3]) == 0.0


@pytest.mark.unit
def test_pearson():
    assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0, abs=1e-9)
    assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0, abs=1e-9)
    assert pearson([], []) == 0.0


@pytest.mark.unit
def test_pearson_constant_series_is_zero():
    assert pearson([5, 5, 5], [1, 2, 3]) == 0.0


@pytest.mark.unit
def test_pearson_truncates_to_shorter_series():
    assert pearson([1, 2, 3, 100], [2, 4, 6]) == pytest.approx(1.0, abs=1e-9)


@pytest.mark.unit
def test_autocorrelation():
    weekly = [10, 20, 30, 40, 50, 60, 70] * 5
    assert autocorrelation(weekly, 7) == pytest.approx(1.0)
    assert autocorrelation(weekly, 0) == 0.0
    assert autocorrelation(weekly, len(weekly)) == 0.0
    assert autocorrelation([], 7) == 0.0


@pytest.mark.unit
def test_numeric_summary():
    stats = numeric_summary([9, 1, 2, 3, 4, 5, 6, 7, 8, 100])

    assert stats.count == 10
    assert stats.min == 1.0
    assert stats.max == 100.0
    assert stats.median == pytest.approx(5.5)
    assert stats.q1 == pytest.approx(3.25)
    assert stats.q3 == pytest.approx(7.75)
    assert stats.iqr == pytest.approx(4.5)
    assert stats.mean == pytest.approx(14.5)
    assert stats.skewness > 0


@pytest.mark.unit
def test_numeric_summary_empty_is_all_zero():
    stats = numeric_summary([])
    assert stats.count == 0
    assert all(getattr(stats, f) == 0.0 for f in ("mean", "median", "std", "min", "max", "q1", "q3", "iqr", "skewness"))


@pytest.mark.unit
def test_iqr_outliers():
    values = [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]
    lower, upper = iqr_fences(sorted(values))
    assert lower == pytest.approx(-3.5)
    assert upper == pytest.approx(14.5)
    assert iqr_outlier_rate(values) == pytest.approx(0.1)
    assert iqr_outlier_rate([]) == 0.0


@pytest.mark.unit
@pytest.mark.parametrize("values", [
    [4, 1, 3, 2],
    [-5, 0, 0, 0, 12, 7],
    [1, 1, 1, 1],
    [0.5, 100, -100, 3.25, 8, 8, 9],
    list(range(37, 0, -3)),
])
def test_quartiles_are_ordered(values):
    stats = numeric_summary(values)
    assert stats.min <= stats.q1 <= stats.median <= stats.q3 <= stats.max
    assert stats.iqr >= 0


@pytest.mark.unit
@pytest.mark.parametrize("values", [
    [5.0] * 10,
    list(range(1, 101)),
])
def test_uniform_data_has_no_outliers(values):
    assert iqr_outlier_rate(values) == 0.0


@pytest.mark.unit
def test_outlier_rate_is_a_fraction():
    for values in ([1, 2, 3, 1000], [-1000, 0, 0, 0, 1000], [7]):
        assert 0.0 <= iqr_outlier_rate(values) <= 1.0
