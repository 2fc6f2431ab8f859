import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from insightforge.core.schemas import (
    CategoryCount,
    ColumnProfile,
    ColumnType,
    DatasetProfile,
    DateCoverage,
    Row,
)
from insightforge.services.inference import (
    infer_column_type,
    is_missing,
    render_value,
    to_date,
    to_number,
)
from insightforge.services.statistics import numeric_summary

logger = logging.getLogger(__name__)

SAMPLE_VALUE_COUNT = 5
TOP_CATEGORY_COUNT = 10
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
SECONDS_PER_DAY = 86400

COUNTED_TYPES = (ColumnType.CATEGORICAL, ColumnType.TEXT, ColumnType.BOOLEAN)


def _top_categories(values: Sequence[Any]) -> List[CategoryCount]:
    # Counter keeps first-encounter order for equal counts
    counts = Counter(render_value(v) for v in values)
    return [
        CategoryCount(value=value, count=count)
        for value, count in counts.most_common(TOP_CATEGORY_COUNT)
    ]


def _date_coverage(values: Sequence[Any]) -> DateCoverage:
    dates = [d for d in (to_date(v) for v in values) if d is not None]
    start = min(dates) if dates else EPOCH
    end = max(dates) if dates else EPOCH
    span_days = (end - start).total_seconds() / SECONDS_PER_DAY
    # Round half up, never negative
    days = max(0, math.floor(span_days + 0.5))
    return DateCoverage(start=start, end=end, days=days)


def profile_column(name: str, values: Sequence[Any]) -> ColumnProfile:
    """Profile one column from its full value sequence."""
    non_null = [v for v in values if not is_missing(v)]
    column_type = infer_column_type(values)

    fields: Dict[str, Any] = dict(
        name=name,
        type=column_type,
        non_null_count=len(non_null),
        null_count=len(values) - len(non_null),
        unique_count=len({render_value(v) for v in non_null}),
        sample_values=non_null[:SAMPLE_VALUE_COUNT],
    )

    if column_type == ColumnType.NUMERIC:
        numbers = [n for n in (to_number(v) for v in non_null) if n is not None]
        fields['stats'] = numeric_summary(numbers)
    elif column_type in COUNTED_TYPES:
        fields['top_categories'] = _top_categories(non_null)
    elif column_type == ColumnType.DATETIME:
        fields['date_coverage'] = _date_coverage(non_null)

    return ColumnProfile(**fields)


def profile_data(rows: Sequence[Row]) -> DatasetProfile:
    """
    Profile a sheet of rows.

    The column set comes from the first row's keys; a row missing one of
    those keys counts as a null cell. Completeness is the share of
    non-missing cells, 1.0 for a sheet without cells.
    """
    row_count = len(rows)
    column_names = list(rows[0].keys()) if rows else []

    columns = [
        profile_column(name, [row.get(name) for row in rows])
        for name in column_names
    ]

    missing_total = sum(c.null_count for c in columns)
    total_cells = row_count * len(columns)
    completeness = 1 - missing_total / total_cells if total_cells else 1.0

    def names_of(column_type: ColumnType) -> List[str]:
        return [c.name for c in columns if c.type == column_type]

    logger.debug(
        f"Profiled {row_count} rows x {len(columns)} columns, "
        f"completeness {completeness:.3f}"
    )

    return DatasetProfile(
        row_count=row_count,
        column_count=len(columns),
        completeness=completeness,
        columns=columns,
        numeric_columns=names_of(ColumnType.NUMERIC),
        categorical_columns=names_of(ColumnType.CATEGORICAL),
        datetime_columns=names_of(ColumnType.DATETIME),
        boolean_columns=names_of(ColumnType.BOOLEAN),
    )
