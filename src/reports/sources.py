"""
Row sources -- where an execution gets its raw rows from.

A row source is anything with ``fetch_rows(data_source_key, params)``
returning a list of ``{field_key: value}`` dicts.  ``params`` carries the
definition's filters / grouping / sorting as plain dicts; a source may use
them to narrow its query but the transform stage always re-applies them.
"""
from __future__ import annotations

import copy
from typing import Any, Awaitable, Protocol

from src.reports.definition import ReportDefinition

Rows = list[dict[str, Any]]


class RowSource(Protocol):
    def fetch_rows(self, data_source_key: str, params: dict[str, Any]) -> Rows:
        ...


class AsyncRowSource(Protocol):
    def fetch_rows(self, data_source_key: str, params: dict[str, Any]) -> Awaitable[Rows]:
        ...


def build_source_params(definition: ReportDefinition) -> dict[str, Any]:
    """Raw filter / grouping / sort parameters handed to a row source."""
    return {
        "filters": [f.model_dump() for f in definition.filters],
        "group_by": [g.model_dump() for g in definition.group_by],
        "sorting": [s.model_dump() for s in definition.sorting],
        "date_range": definition.default_date_range,
        "fields": [f.key for f in definition.fields],
        "limit": definition.limit,
    }


class InMemoryRowSource:
    """Serves pre-registered rows per data source key (tests, previews)."""

    def __init__(self, data: dict[str, Rows] | None = None):
        self._data: dict[str, Rows] = dict(data or {})

    def register(self, data_source_key: str, rows: Rows) -> None:
        self._data[data_source_key] = list(rows)

    def fetch_rows(self, data_source_key: str, params: dict[str, Any]) -> Rows:
        if data_source_key not in self._data:
            raise KeyError(f"Unknown data source '{data_source_key}'")
        return copy.deepcopy(self._data[data_source_key])
