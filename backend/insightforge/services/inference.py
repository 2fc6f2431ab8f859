"""
Type inference service.

Classifies raw cell values into semantic column types and holds the
coercion helpers every statistic goes through, so numbers, dates and
category labels are read the same way everywhere.
"""
import logging
import math
import re
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

import pandas as pd

from insightforge.core.schemas import ColumnType

logger = logging.getLogger(__name__)

# Column type is decided from a bounded sample, not the full column
TYPE_SAMPLE_SIZE = 200
TEXT_CATEGORICAL_RATIO = 0.2
NUMERIC_CATEGORICAL_RATIO = 0.05

THOUSANDS_PATTERN = re.compile(r'^[-+]?\d{1,3}(,\d{3})*(\.\d+)?$')
DECIMAL_PATTERN = re.compile(r'^[-+]?\d*(\.\d+)?$')
HAS_DIGIT = re.compile(r'\d')


def is_missing(value: Any) -> bool:
    """None, empty string and float NaN carry no signal."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite_float(value: Any) -> Optional[float]:
    # ints beyond float range raise instead of returning inf
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _looks_numeric(text: str) -> bool:
    if not HAS_DIGIT.search(text):
        return False
    return bool(THOUSANDS_PATTERN.match(text) or DECIMAL_PATTERN.match(text))


def _parse_date_string(text: str) -> Optional[pd.Timestamp]:
    # Free-form labels ("North", "Mon") never count as dates
    if not HAS_DIGIT.search(text):
        return None
    try:
        parsed = pd.to_datetime(text, errors='coerce', utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a raw cell to a finite float.

    Strings have thousands separators stripped. Anything that does not
    produce a finite number returns None.
    """
    if _is_number(value):
        return _finite_float(value)
    if isinstance(value, str):
        return _finite_float(value.strip().replace(',', ''))
    return None


def to_date(value: Any) -> Optional[datetime]:
    """
    Coerce a raw cell to a timezone-aware UTC datetime.

    Naive datetimes are read as UTC. Numbers and booleans are not dates.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        parsed = _parse_date_string(value.strip())
        return parsed.to_pydatetime() if parsed is not None else None
    return None


def render_value(value: Any) -> str:
    """String form used for uniqueness, frequency counts and filter matching."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def infer_type(value: Any) -> Optional[ColumnType]:
    """
    Classify a single raw value.

    Returns None for missing values so they never take part in a vote.
    """
    if is_missing(value):
        return None
    if isinstance(value, bool):
        return ColumnType.BOOLEAN
    if _is_number(value):
        return ColumnType.NUMERIC if _finite_float(value) is not None else ColumnType.TEXT
    if isinstance(value, (datetime, date)):
        return ColumnType.DATETIME
    if isinstance(value, str):
        text = value.strip()
        if text in ("true", "false"):
            return ColumnType.BOOLEAN
        if _looks_numeric(text):
            return ColumnType.NUMERIC
        if _parse_date_string(text) is not None:
            return ColumnType.DATETIME
    return ColumnType.TEXT


def infer_column_type(values: Iterable[Any]) -> ColumnType:
    """
    Decide a column's type from its first 200 non-missing values.

    The most voted type wins, ties going to the earlier declared type.
    Low-cardinality text and numeric codes (star ratings, status ids)
    are promoted to categorical. An empty column is text.
    """
    sample = []
    for value in values:
        if is_missing(value):
            continue
        sample.append(value)
        if len(sample) >= TYPE_SAMPLE_SIZE:
            break

    if not sample:
        return ColumnType.TEXT

    votes = Counter(t for t in (infer_type(v) for v in sample) if t is not None)
    max_type = max(ColumnType, key=lambda t: (votes[t], -list(ColumnType).index(t)))

    unique_ratio = len({render_value(v) for v in sample}) / len(sample)

    if max_type == ColumnType.TEXT and unique_ratio < TEXT_CATEGORICAL_RATIO:
        return ColumnType.CATEGORICAL
    if max_type == ColumnType.NUMERIC and unique_ratio < NUMERIC_CATEGORICAL_RATIO:
        return ColumnType.CATEGORICAL
    return max_type
