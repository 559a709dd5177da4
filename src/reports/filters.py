"""
Filter predicates.

A row survives a filter list iff every predicate is true.  Each operator
coerces the cell explicitly (see ``src.reports.cells``); a failed numeric or
date coercion makes ordering operators evaluate to False, which excludes
the row.
"""
from __future__ import annotations

import datetime
from typing import Any, Callable, Iterable, Mapping

from src.reports.cells import is_empty, to_bool, to_date, to_number, to_text
from src.reports.definition import NUMERIC_TYPES, ReportField, ReportFilter

Row = Mapping[str, Any]


def _equal(cell: Any, target: Any, field_type: str) -> bool:
    if is_empty(cell) or is_empty(target):
        return is_empty(cell) and is_empty(target)
    if field_type in NUMERIC_TYPES:
        a, b = to_number(cell), to_number(target)
        if a is not None and b is not None:
            return a == b
    elif field_type == "date":
        da, db = to_date(cell), to_date(target)
        if da is not None and db is not None:
            return da == db
    elif field_type == "boolean":
        ba, bb = to_bool(cell), to_bool(target)
        if ba is not None and bb is not None:
            return ba == bb
    return to_text(cell) == to_text(target)


def _orderable(value: Any, field_type: str) -> float | datetime.datetime | None:
    if field_type == "date":
        return to_date(value)
    return to_number(value)


def _folded(value: Any) -> str:
    return to_text(value).casefold()


def _compare(cell: Any, target: Any, field_type: str, test: Callable[[Any, Any], bool]) -> bool:
    a, b = _orderable(cell, field_type), _orderable(target, field_type)
    if a is None or b is None:
        return False
    return test(a, b)


def _between(cell: Any, bounds: list[Any], field_type: str) -> bool:
    low, high = (_orderable(b, field_type) for b in bounds[:2])
    value = _orderable(cell, field_type)
    if value is None or low is None or high is None:
        return False
    return low <= value <= high


def evaluate(report_filter: ReportFilter, row: Row, field: ReportField) -> bool:
    """Evaluate one filter predicate against one row."""
    cell = row.get(report_filter.field)
    op = report_filter.operator
    target = report_filter.value
    values = report_filter.values or []
    ftype = field.type

    if op == "is_null":
        return is_empty(cell)
    if op == "is_not_null":
        return not is_empty(cell)
    if op == "equals":
        return _equal(cell, target, ftype)
    if op == "not_equals":
        return not _equal(cell, target, ftype)
    if op == "contains":
        return _folded(target) in _folded(cell)
    if op == "not_contains":
        return _folded(target) not in _folded(cell)
    if op == "starts_with":
        return _folded(cell).startswith(_folded(target))
    if op == "ends_with":
        return _folded(cell).endswith(_folded(target))
    if op == "greater_than":
        return _compare(cell, target, ftype, lambda a, b: a > b)
    if op == "less_than":
        return _compare(cell, target, ftype, lambda a, b: a < b)
    if op == "between":
        return _between(cell, values, ftype)
    if op == "in":
        return any(_equal(cell, v, ftype) for v in values)
    if op == "not_in":
        return not any(_equal(cell, v, ftype) for v in values)
    raise ValueError(f"Unsupported filter operator '{op}'")


def apply_filters(
    rows: Iterable[Row],
    filters: list[ReportFilter],
    fields: Mapping[str, ReportField],
) -> list[Row]:
    """Keep the rows for which every filter holds.  Input order is preserved."""
    if not filters:
        return list(rows)
    bound = [(f, fields[f.field]) for f in filters]
    return [row for row in rows if all(evaluate(f, row, field) for f, field in bound)]
