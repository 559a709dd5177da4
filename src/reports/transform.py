"""
Query transform stage -- turns raw rows plus a ReportDefinition into ReportData.

Stages run in a fixed order:
  1. filter     every predicate must hold
  2. group      partition by (optionally date-bucketed) group values
  3. aggregate  one output row per partition, grand totals in ``aggregates``
  4. sort       stable multi-key sort, nulls last in both directions
  5. limit      truncate to ``definition.limit``; ``total_rows`` is pre-limit
"""
from __future__ import annotations

import datetime
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from src.core.logging import get_logger
from src.core.utils import timer
from src.reports.aggregations import compute
from src.reports.cells import CellKind, classify, is_empty, to_bool, to_date, to_number, to_text
from src.reports.definition import (
    NUMERIC_TYPES,
    GroupBy,
    ReportData,
    ReportDefinition,
    ReportField,
    ReportMetadata,
    SortSpec,
)
from src.reports.errors import DefinitionError
from src.reports.filters import apply_filters
from src.reports.validator import validate_definition

logger = get_logger(__name__)

_DIGITS_RE = re.compile(r"(\d+)")


@dataclass(frozen=True)
class _Column:
    key: str
    label: str
    field: str  # source field key
    type: str | None = None  # field type driving the sort key


# ── Grouping ────────────────────────────────────────────


def bucket_date(value: Any, date_format: str) -> datetime.date | None:
    """Truncate a date-ish cell to its day / week (Monday) / month / year."""
    moment = to_date(value)
    if moment is None:
        return None
    day = moment.date()
    if date_format == "week":
        return day - datetime.timedelta(days=day.weekday())
    if date_format == "month":
        return day.replace(day=1)
    if date_format == "year":
        return day.replace(month=1, day=1)
    return day


def _group_value(row: Mapping[str, Any], group: GroupBy) -> Any:
    cell = row.get(group.field)
    if group.date_format:
        return bucket_date(cell, group.date_format)
    return cell


def _partition(rows: Sequence[Mapping[str, Any]], groups: list[GroupBy]) -> dict[tuple, list]:
    partitions: dict[tuple, list] = {}
    for row in rows:
        key = tuple(_group_value(row, g) for g in groups)
        partitions.setdefault(key, []).append(row)
    return partitions


def _field_type(key: str, by_key: Mapping[str, ReportField]) -> str | None:
    field = by_key.get(key)
    return field.type if field is not None else None


def _group_type(group: GroupBy, by_key: Mapping[str, ReportField]) -> str | None:
    return "date" if group.date_format else _field_type(group.field, by_key)


def _shape(
    rows: Sequence[Mapping[str, Any]],
    definition: ReportDefinition,
    by_key: Mapping[str, ReportField],
) -> tuple[list[_Column], list[list[Any]]]:
    """Collapse filtered rows into the output table (columns + rows)."""
    agg_columns = [_Column(a.column_key, a.label, a.field, "number") for a in definition.aggregations]

    if definition.group_by:
        columns = [_Column(g.field, g.label, g.field, _group_type(g, by_key)) for g in definition.group_by]
        columns += agg_columns
        table = [
            list(key) + [compute(a, part) for a in definition.aggregations]
            for key, part in _partition(rows, definition.group_by).items()
        ]
        return columns, table

    if definition.fields:
        columns = [_Column(f.key, f.label, f.key, _field_type(f.key, by_key)) for f in definition.fields]
        table = [[row.get(f.key) for f in definition.fields] for row in rows]
        return columns, table

    # Only aggregations: the whole filtered set collapses to one summary row
    return agg_columns, [[compute(a, rows) for a in definition.aggregations]]


# ── Sorting ─────────────────────────────────────────────


def natural_key(text: str) -> tuple:
    """Case- and accent-insensitive key where digit runs compare numerically."""
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return tuple(
        (0, int(chunk)) if chunk.isdigit() else (1, chunk)
        for chunk in _DIGITS_RE.split(folded)
        if chunk
    )


def _runtime_key(value: Any) -> tuple:
    kind = classify(value)
    if kind in (CellKind.NUMBER, CellKind.BOOL):
        return (0, float(value))
    if kind is CellKind.DATE:
        return (1, to_date(value))
    return (2, natural_key(str(value)))


def sort_key(value: Any, field_type: str | None) -> tuple | None:
    """Sort key of a cell read as *field_type*; ``None`` means it sorts last.

    Without a field type the key falls back to the cell's runtime kind.
    """
    if is_empty(value):
        return None
    if field_type in NUMERIC_TYPES:
        number = to_number(value)
        return None if number is None else (number,)
    if field_type == "date":
        moment = to_date(value)
        return None if moment is None else (moment,)
    if field_type == "boolean":
        flag = to_bool(value)
        return None if flag is None else (flag,)
    if field_type == "text":
        return natural_key(to_text(value))
    if classify(value) is CellKind.NULL:
        return None
    return _runtime_key(value)


def _resolve_sort_column(sort: SortSpec, columns: list[_Column], definition: ReportDefinition) -> int:
    for i, col in enumerate(columns):
        if col.key == sort.field:
            return i
    for i, col in enumerate(columns):
        if col.field == sort.field:
            return i
    raise DefinitionError(
        [f"Sort field '{sort.field}' is not part of the result columns "
         f"({', '.join(c.key for c in columns)})."],
        definition.id,
    )


def sort_rows(
    table: list[list[Any]],
    columns: list[_Column],
    sorting: list[SortSpec],
    definition: ReportDefinition,
) -> list[list[Any]]:
    """Stable multi-key sort; the first SortSpec is the primary key."""
    ordered = list(table)
    for sort in reversed(sorting):
        idx = _resolve_sort_column(sort, columns, definition)
        field_type = columns[idx].type
        keyed = [(sort_key(r[idx], field_type), r) for r in ordered]
        present = [(k, r) for k, r in keyed if k is not None]
        missing = [r for k, r in keyed if k is None]
        present.sort(key=lambda pair: pair[0], reverse=sort.direction == "desc")
        ordered = [r for _, r in present] + missing
    return ordered


# ── Public API ──────────────────────────────────────────


def run_transform(
    rows: Iterable[Mapping[str, Any]],
    definition: ReportDefinition,
    available_fields: Iterable[ReportField] | None = None,
) -> ReportData:
    """Execute *definition* over *rows* and return the result table.

    Raises
    ------
    DefinitionError
        If the definition references unknown fields or has inconsistent
        filter / aggregation shapes.  Nothing partial is returned.
    """
    fields = list(available_fields) if available_fields is not None else list(definition.fields)
    errors = validate_definition(definition, fields if available_fields is not None else None)
    if errors:
        raise DefinitionError(errors, definition.id)

    with timer() as elapsed:
        by_key = {f.key: f for f in fields}
        filtered = apply_filters(rows, definition.filters, by_key)
        columns, table = _shape(filtered, definition, by_key)
        table = sort_rows(table, columns, definition.sorting, definition)
        total = len(table)
        limited = table[: definition.limit]
        aggregates = {a.column_key: compute(a, filtered) for a in definition.aggregations}

    logger.info(
        "Transform %s | filtered=%d | result=%d | returned=%d | %.1fms",
        definition.id, len(filtered), total, len(limited), elapsed["elapsed_ms"],
    )

    return ReportData(
        headers=[c.label for c in columns],
        columns=[c.key for c in columns],
        rows=limited,
        total_rows=total,
        aggregates=aggregates,
        metadata=ReportMetadata(
            execution_time=elapsed["elapsed_ms"],
            generated_at=datetime.datetime.now(datetime.timezone.utc),
            filters=list(definition.filters),
        ),
    )
