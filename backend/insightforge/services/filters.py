"""
Row filtering for the dashboard view.

Filters never mutate the rows they are given; they return new lists.
All value comparisons go through inference.render_value so that a
selection made from a profile's category labels matches the raw cells.
"""
import logging
from datetime import date, datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence

from insightforge.core.schemas import FiltersState, Row
from insightforge.services.inference import render_value, to_date

logger = logging.getLogger(__name__)

MEMBERSHIP_TYPES = (list, tuple, set, frozenset)


def _is_date_bound(value: Any) -> bool:
    return value is None or isinstance(value, (date, datetime))


def _is_date_range(value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return False
    start, end = value
    if start is None and end is None:
        return False
    return _is_date_bound(start) and _is_date_bound(end)


def _in_date_range(cell: Any, start: Optional[datetime], end: Optional[datetime]) -> bool:
    moment = to_date(cell)
    if moment is None:
        return False
    if start is not None and moment < start:
        return False
    if end is not None and moment > end:
        return False
    return True


def _make_predicate(value: Any) -> Callable[[Any], bool]:
    if _is_date_range(value):
        start, end = (to_date(bound) if bound is not None else None for bound in value)
        return lambda cell: _in_date_range(cell, start, end)
    if isinstance(value, MEMBERSHIP_TYPES):
        members = {render_value(v) for v in value}
        return lambda cell: render_value(cell) in members
    if callable(value):
        return lambda cell: bool(value(cell))
    expected = render_value(value)
    return lambda cell: render_value(cell) == expected


def filter_rows(rows: Sequence[Row], filters: Mapping[str, Any]) -> List[Row]:
    """
    Keep rows matching every filter.

    Per column, a filter value is one of:
    - None: no-op
    - a 2-item list/tuple of dates (either may be None): inclusive range;
      cells that are not dates are dropped
    - any other list/tuple/set: membership by string form
    - a callable: predicate on the raw cell
    - a scalar: equality by string form
    """
    predicates = [
        (column, _make_predicate(value))
        for column, value in filters.items()
        if value is not None
    ]
    if not predicates:
        return list(rows)
    return [
        row for row in rows
        if all(predicate(row.get(column)) for column, predicate in predicates)
    ]


def apply_filters(rows: Sequence[Row], state: Optional[FiltersState]) -> List[Row]:
    """
    Apply the dashboard's date-range and category selections.

    Bounds that do not parse as dates are ignored. An empty category
    selection leaves the column unfiltered.
    """
    if state is None:
        return list(rows)

    filtered = list(rows)

    if state.date_column and (state.date_from or state.date_to):
        start = to_date(state.date_from) if state.date_from else None
        end = to_date(state.date_to) if state.date_to else None
        if start is not None or end is not None:
            filtered = filter_rows(filtered, {state.date_column: (start, end)})

    if state.category_column and state.selected_categories:
        filtered = filter_rows(filtered, {state.category_column: list(state.selected_categories)})

    logger.debug(f"Filters kept {len(filtered)} of {len(rows)} rows")
    return filtered
