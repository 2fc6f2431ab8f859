"""
Statistical aggregators.

Pure numeric functions over sequences of finite floats. Callers filter
out non-finite values first (see inference.to_number); every function
returns a defined default for empty or degenerate input instead of
NaN or infinity.
"""
import math
from typing import Sequence, Tuple

import numpy as np

from insightforge.core.schemas import NumericStats

IQR_FENCE = 1.5


def quantile(sorted_values: Sequence[float], p: float) -> float:
    """
    Linear-interpolation quantile of an already sorted sequence.

    Interpolates between the floor and ceil ranks of (n - 1) * p.
    """
    if len(sorted_values) == 0:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    return float(np.quantile(np.asarray(sorted_values, dtype=float), p))


def mean_std(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and sample standard deviation (n - 1 divisor, 1 when n <= 1)."""
    arr = np.asarray(values, dtype=float)
    n = arr.size
    if n == 0:
        return 0.0, 0.0
    mean = float(arr.mean())
    variance = float(((arr - mean) ** 2).sum()) / (n - 1 if n > 1 else 1)
    return mean, math.sqrt(variance)


def skewness(values: Sequence[float]) -> float:
    """Third central moment over std^3; 0 below three values."""
    arr = np.asarray(values, dtype=float)
    n = arr.size
    if n < 3:
        return 0.0
    mean, std = mean_std(arr)
    m3 = float(((arr - mean) ** 3).sum()) / n
    return m3 / (std or 1.0) ** 3


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson product-moment correlation over the first min(len(x), len(y))
    elements.

    A constant series has a zero denominator, which is guarded to 1 and
    so yields 0. The result is clamped into [-1, 1].
    """
    n = min(len(x), len(y))
    if n == 0:
        return 0.0
    xs = np.asarray(x[:n], dtype=float)
    ys = np.asarray(y[:n], dtype=float)
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    num = float((dx * dy).sum())
    den = math.sqrt(float((dx * dx).sum()) * float((dy * dy).sum())) or 1.0
    return max(-1.0, min(1.0, num / den))


def autocorrelation(series: Sequence[float], lag: int) -> float:
    """Correlation of a series with itself shifted by lag positions."""
    if lag <= 0 or lag >= len(series):
        return 0.0
    return pearson(series[:len(series) - lag], series[lag:])


def numeric_summary(values: Sequence[float]) -> NumericStats:
    """Descriptive statistics block for one numeric column."""
    if len(values) == 0:
        return NumericStats(
            count=0, mean=0.0, median=0.0, std=0.0, min=0.0, max=0.0,
            q1=0.0, q3=0.0, iqr=0.0, skewness=0.0
        )

    ordered = sorted(values)
    q1 = quantile(ordered, 0.25)
    q3 = quantile(ordered, 0.75)
    mean, std = mean_std(ordered)

    return NumericStats(
        count=len(ordered),
        mean=mean,
        median=quantile(ordered, 0.5),
        std=std,
        min=float(ordered[0]),
        max=float(ordered[-1]),
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
        skewness=skewness(ordered),
    )


def iqr_fences(sorted_values: Sequence[float]) -> Tuple[float, float]:
    q1 = quantile(sorted_values, 0.25)
    q3 = quantile(sorted_values, 0.75)
    iqr = q3 - q1
    return q1 - IQR_FENCE * iqr, q3 + IQR_FENCE * iqr


def iqr_outlier_rate(values: Sequence[float]) -> float:
    """Fraction of values outside the 1.5 x IQR fences."""
    if len(values) == 0:
        return 0.0
    lower, upper = iqr_fences(sorted(values))
    outliers = sum(1 for v in values if v < lower or v > upper)
    return outliers / len(values)
