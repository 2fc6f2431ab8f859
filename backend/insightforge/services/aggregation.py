"""
Matrix, trend and distribution builders.

Everything here turns a row sequence into plain structures for the
dashboard: the correlation matrix, daily trends, cross tabulations,
histograms and box summaries. Profiling uses the unfiltered rows;
the dashboard view calls these on the filtered rows.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from insightforge.core.schemas import (
    BoxSummary,
    CorrelationMatrix,
    CrossTab,
    HistogramBucket,
    Row,
    TemporalTrend,
    TrendPoint,
)
from insightforge.services.inference import is_missing, render_value, to_date, to_number
from insightforge.services.statistics import pearson, quantile

logger = logging.getLogger(__name__)

AGGREGATIONS = ("mean", "sum", "count")
MIN_BOX_VALUES = 5


def column_numbers(rows: Sequence[Row], column: str) -> List[float]:
    """Finite numeric values of one column, in row order."""
    return [n for n in (to_number(r.get(column)) for r in rows) if n is not None]


def numeric_series(rows: Sequence[Row], columns: Iterable[str]) -> Dict[str, List[float]]:
    return {c: column_numbers(rows, c) for c in columns}


def correlation_matrix(rows: Sequence[Row], numeric_columns: Sequence[str]) -> CorrelationMatrix:
    """
    Pearson correlation between every pair of numeric columns.

    Each column is coerced on its own, so a pair is correlated over the
    shorter of the two value lists rather than over aligned rows. The
    diagonal is 1.0 for every column, constant ones included.
    """
    cols = list(numeric_columns)
    series = [column_numbers(rows, c) for c in cols]
    size = len(cols)
    values = [[0.0] * size for _ in range(size)]

    for i in range(size):
        values[i][i] = 1.0
        for j in range(i + 1, size):
            r = pearson(series[i], series[j])
            values[i][j] = r
            values[j][i] = r

    return CorrelationMatrix(columns=cols, values=values)


def temporal_trends(
    rows: Sequence[Row],
    date_column: str,
    numeric_columns: Sequence[str],
    aggregation: str = "mean",
) -> TemporalTrend:
    """
    Aggregate numeric columns per UTC calendar day.

    Rows whose date does not parse are skipped. A day without valid
    values for a column reports 0 for it.
    """
    if aggregation not in AGGREGATIONS:
        raise ValueError(f"aggregation must be one of {AGGREGATIONS}, got '{aggregation}'")

    columns = list(dict.fromkeys(numeric_columns))
    days = []
    values: Dict[str, List[float]] = {c: [] for c in columns}
    for row in rows:
        moment = to_date(row.get(date_column))
        if moment is None:
            continue
        days.append(moment.date())
        for column in columns:
            number = to_number(row.get(column))
            values[column].append(np.nan if number is None else number)

    if columns:
        # The day lives in the index so it never collides with a column name
        df = pd.DataFrame(values, index=pd.Index(days, dtype=object))
        grouped = df.groupby(level=0, sort=True)[columns].agg(aggregation).fillna(0)
    else:
        grouped = pd.DataFrame(index=sorted(set(days)))

    series = [
        TrendPoint(
            date=datetime(day.year, day.month, day.day, tzinfo=timezone.utc),
            values={c: float(totals[c]) for c in columns},
        )
        for day, totals in grouped.iterrows()
    ]
    return TemporalTrend(date_column=date_column, aggregation=aggregation, series=series)


def build_cross_tab(pairs: Iterable[Tuple[str, str]]) -> CrossTab:
    """Count co-occurring (a, b) pairs; labels keep first-encounter order."""
    pairs = list(pairs)
    if not pairs:
        return CrossTab(rows=[], cols=[], matrix=[])

    first = pd.Series([a for a, _ in pairs], dtype=object)
    second = pd.Series([b for _, b in pairs], dtype=object)
    row_labels = list(dict.fromkeys(first))
    col_labels = list(dict.fromkeys(second))

    table = pd.crosstab(first, second).reindex(index=row_labels, columns=col_labels, fill_value=0)
    return CrossTab(rows=row_labels, cols=col_labels, matrix=table.astype(int).values.tolist())


def cross_tab_columns(rows: Sequence[Row], column_a: str, column_b: str) -> CrossTab:
    return build_cross_tab(
        (render_value(r.get(column_a)), render_value(r.get(column_b))) for r in rows
    )


def _fmt(number: float) -> str:
    return f"{round(number, 2):g}"


def histogram(values: Sequence[float], bins: int = 20) -> List[HistogramBucket]:
    """
    Equal-width histogram between the minimum and maximum value.

    A zero range falls back to a step of 1; the last bucket is closed.
    """
    arr = np.asarray(list(values), dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0 or bins < 1:
        return []

    low, high = float(arr.min()), float(arr.max())
    if high == low:
        high = low + bins
    counts, edges = np.histogram(arr, bins=bins, range=(low, high))

    return [
        HistogramBucket(
            x0=float(edges[i]),
            x1=float(edges[i + 1]),
            label=f"{_fmt(edges[i])} - {_fmt(edges[i + 1])}",
            count=int(count),
        )
        for i, count in enumerate(counts)
    ]


def box_summary(values: Sequence[float]) -> Optional[BoxSummary]:
    """Five-number summary, None below five values."""
    ordered = sorted(v for v in values if math.isfinite(v))
    if len(ordered) < MIN_BOX_VALUES:
        return None
    return BoxSummary(
        min=ordered[0],
        q1=quantile(ordered, 0.25),
        median=quantile(ordered, 0.5),
        q3=quantile(ordered, 0.75),
        max=ordered[-1],
    )


def value_counts(rows: Sequence[Row], column: str) -> Dict[str, int]:
    """Rendered value -> occurrences, missing cells skipped."""
    rendered = [render_value(v) for v in (r.get(column) for r in rows) if not is_missing(v)]
    if not rendered:
        return {}
    counts = pd.Series(rendered, dtype=object).value_counts(sort=False)
    return {label: int(count) for label, count in counts.items()}


def missingness_grid(rows: Sequence[Row], max_rows: int = 100, max_cols: int = 30) -> List[List[bool]]:
    """True marks a missing cell; feeds the data-quality heatmap."""
    if not rows:
        return []
    columns = list(rows[0].keys())[:max_cols]
    return [[is_missing(row.get(c)) for c in columns] for row in rows[:max_rows]]

