"""
Validates filters and report definitions against the fields of a data source.

Checks performed:
  1. Every filter, group-by, aggregation and sort entry names a known field
  2. Filter operator / value shape is consistent
       - between, in, not_in  -> non-empty ``values`` list (between: exactly 2)
       - is_null, is_not_null -> nothing required
       - everything else      -> a scalar ``value``
  3. ``between`` only on orderable fields (number, currency, date)
  4. Group-by ``date_format`` only on date fields
  5. sum / avg / min / max / median only on number or currency fields
  6. Field keys are unique
  7. The definition selects something to show
"""
from __future__ import annotations

from typing import Iterable

from src.reports.definition import (
    LIST_OPERATORS,
    NULL_OPERATORS,
    NUMERIC_FUNCTIONS,
    NUMERIC_TYPES,
    ORDERABLE_TYPES,
    ReportDefinition,
    ReportField,
    ReportFilter,
)


def _index(fields: Iterable[ReportField]) -> dict[str, ReportField]:
    return {f.key: f for f in fields}


def validate_filter(report_filter: ReportFilter, fields: Iterable[ReportField]) -> list[str]:
    """Return a list of reasons the filter is invalid (empty list = filter is valid)."""
    by_key = _index(fields)
    errors: list[str] = []
    name = report_filter.label or report_filter.id

    field = by_key.get(report_filter.field)
    if field is None:
        errors.append(
            f"Filter '{name}' references unknown field '{report_filter.field}'. "
            f"Allowed: {', '.join(by_key)}"
        )
        return errors

    op = report_filter.operator
    if op in NULL_OPERATORS:
        return errors

    if op in LIST_OPERATORS:
        values = report_filter.values
        if not isinstance(values, list) or not values:
            errors.append(f"Filter '{name}' with operator '{op}' requires a non-empty 'values' list.")
        elif op == "between" and len(values) != 2:
            errors.append(f"Filter '{name}' with operator 'between' requires exactly 2 values, got {len(values)}.")
        if op == "between" and field.type not in ORDERABLE_TYPES:
            errors.append(
                f"Filter '{name}': 'between' is only defined for number, currency or date fields "
                f"('{field.key}' is {field.type})."
            )
        return errors

    value = report_filter.value
    if value is None or isinstance(value, (list, dict)):
        errors.append(f"Filter '{name}' with operator '{op}' requires a scalar 'value'.")
    return errors


def validate_definition(
    definition: ReportDefinition,
    fields: Iterable[ReportField] | None = None,
) -> list[str]:
    """Return a list of validation error messages (empty list = definition is valid).

    Parameters
    ----------
    definition : ReportDefinition
        The definition to check.  It is never modified.
    fields : iterable of ReportField, optional
        Every field the data source offers.  Defaults to the definition's own
        selected fields.
    """
    available = list(fields) if fields is not None else list(definition.fields)
    by_key = _index(available)
    allowed = ", ".join(by_key)
    errors: list[str] = []

    if not (definition.fields or definition.group_by or definition.aggregations):
        errors.append("Definition selects no fields, groupings or aggregations.")

    seen: set[str] = set()
    for f in definition.fields:
        if f.key in seen:
            errors.append(f"Duplicate field key '{f.key}'.")
        seen.add(f.key)
        if fields is not None and f.key not in by_key:
            errors.append(
                f"Selected field '{f.key}' does not exist in data source "
                f"'{definition.data_source}'. Allowed: {allowed}"
            )

    for report_filter in definition.filters:
        errors.extend(validate_filter(report_filter, available))

    for group in definition.group_by:
        field = by_key.get(group.field)
        if field is None:
            errors.append(f"Group-by references unknown field '{group.field}'. Allowed: {allowed}")
        elif group.date_format and field.type != "date":
            errors.append(
                f"Group-by '{group.field}' sets date_format '{group.date_format}' "
                f"but the field type is {field.type}."
            )

    for agg in definition.aggregations:
        field = by_key.get(agg.field)
        if field is None:
            errors.append(f"Aggregation '{agg.label}' references unknown field '{agg.field}'. Allowed: {allowed}")
        elif agg.function in NUMERIC_FUNCTIONS and field.type not in NUMERIC_TYPES:
            errors.append(
                f"Aggregation '{agg.label}': function '{agg.function}' requires a number or "
                f"currency field ('{field.key}' is {field.type})."
            )

    agg_keys = {a.column_key for a in definition.aggregations}
    for sort in definition.sorting:
        if sort.field not in by_key and sort.field not in agg_keys:
            errors.append(f"Sorting references unknown field '{sort.field}'. Allowed: {allowed}")

    return errors
