"""
Unit tests -- filter predicates for all 13 operators.
"""
import pytest

from src.reports.definition import ReportFilter
from src.reports.filters import apply_filters


def _keys(rows):
    return [r["trip_id"] for r in rows]


def _apply(rows, fields, **kwargs):
    f = ReportFilter(id="f", **kwargs)
    return _keys(apply_filters(rows, [f], {fd.key: fd for fd in fields}))


@pytest.mark.parametrize("operator,value,expected", [
    ("equals", "Acme", ["V-1", "V-2"]),
    ("not_equals", "Acme", ["V-3", "V-4", "V-5", "V-10"]),
    ("contains", "CM", ["V-1", "V-2", "V-10"]),
    ("not_contains", "cm", ["V-3", "V-4", "V-5"]),
    ("starts_with", "b", ["V-3", "V-4"]),
    ("ends_with", "E", ["V-1", "V-2", "V-10"]),
])
def test_text_operators(trip_rows, trip_fields, operator, value, expected):
    assert _apply(trip_rows, trip_fields, field="client", operator=operator, value=value) == expected


def test_numeric_comparisons_exclude_uncoercible(trip_rows, trip_fields):
    assert _apply(trip_rows, trip_fields, field="fare", operator="greater_than", value=20) == ["V-3", "V-10"]
    assert _apply(trip_rows, trip_fields, field="fare", operator="less_than", value="15") == ["V-1"]


def test_between_is_inclusive(trip_rows, trip_fields):
    assert _apply(trip_rows, trip_fields, field="fare", operator="between", values=[15, 25.5]) == ["V-2", "V-5", "V-10"]


def test_between_on_dates(trip_rows, trip_fields):
    got = _apply(trip_rows, trip_fields, field="trip_date", operator="between", values=["2024-03-05", "2024-04-02"])
    assert got == ["V-2", "V-3", "V-4"]


def test_equals_numeric_field_compares_numerically(trip_rows, trip_fields):
    assert _apply(trip_rows, trip_fields, field="fare", operator="equals", value="25.50") == ["V-10"]


def test_equals_boolean_field_by_truthiness(trip_rows, trip_fields):
    assert _apply(trip_rows, trip_fields, field="invoiced", operator="equals", value=True) == ["V-1", "V-2", "V-5", "V-10"]


def test_in_and_not_in(trip_rows, trip_fields):
    assert _apply(trip_rows, trip_fields, field="status", operator="in", values=["pendiente", "cancelado"]) == ["V-3", "V-4"]
    assert _apply(trip_rows, trip_fields, field="status", operator="not_in", values=["completado"]) == ["V-3", "V-4"]


def test_null_checks(trip_rows, trip_fields):
    assert _apply(trip_rows, trip_fields, field="fare", operator="is_null") == ["V-4"]
    assert "V-4" not in _apply(trip_rows, trip_fields, field="distance_km", operator="is_not_null")


def test_blank_string_counts_as_null(trip_fields):
    rows = [{"trip_id": "A", "client": "  "}, {"trip_id": "B", "client": "X"}]
    assert _apply(rows, trip_fields, field="client", operator="is_null") == ["A"]


def test_filters_are_conjunctive(trip_rows, trip_fields):
    filters = [
        ReportFilter(id="a", field="client", operator="contains", value="acme"),
        ReportFilter(id="b", field="fare", operator="greater_than", value=15),
    ]
    by_key = {f.key: f for f in trip_fields}
    assert _keys(apply_filters(trip_rows, filters, by_key)) == ["V-2", "V-10"]


def test_filter_is_idempotent(trip_rows, trip_fields):
    filters = [ReportFilter(id="a", field="fare", operator="greater_than", value=12)]
    by_key = {f.key: f for f in trip_fields}
    once = apply_filters(trip_rows, filters, by_key)
    twice = apply_filters(once, filters, by_key)
    assert once == twice
