"""
Loads, parses, and caches the data-source catalog YAML.

The catalog is the single source of truth for:
  - which data sources a report may target (keys, names, descriptions)
  - the typed fields each source offers (key, label, type, format)
  - the table / column each field is read from by the SQL row source
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from src.core.config import get_settings
from src.core.logging import get_logger
from src.reports.definition import ReportField

logger = get_logger(__name__)

_FIELD_TYPES = {"text", "string", "number", "date", "boolean", "currency"}


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class DataSource:
    key: str
    name: str
    table: str
    description: str = ""
    fields: tuple[ReportField, ...] = ()
    columns: dict[str, str] = field(default_factory=dict)  # field key -> column

    def column_for(self, field_key: str) -> str:
        return self.columns.get(field_key, field_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "fields": [f.model_dump() for f in self.fields],
        }


@dataclass
class Catalog:
    """Every data source, keyed by ``DataSource.key``."""

    version: int
    sources: dict[str, DataSource]

    def data_source(self, key: str) -> DataSource | None:
        return self.sources.get(key)

    def keys(self) -> list[str]:
        return list(self.sources.keys())

    def fields_for(self, key: str) -> list[ReportField]:
        """Available fields of *key*; raises KeyError for unknown sources."""
        source = self.sources.get(key)
        if source is None:
            raise KeyError(f"Unknown data source '{key}'. Allowed: {', '.join(self.sources)}")
        return list(source.fields)


# ── Parsing ──────────────────────────────────────────────

def _parse_source(raw: dict[str, Any]) -> DataSource:
    key = raw["key"]
    fields: list[ReportField] = []
    columns: dict[str, str] = {}
    seen: set[str] = set()
    for raw_field in raw.get("fields", []):
        field_key = raw_field["key"]
        if field_key in seen:
            raise ValueError(f"Data source '{key}' declares field '{field_key}' twice")
        ftype = raw_field.get("type", "text")
        if ftype not in _FIELD_TYPES:
            raise ValueError(f"Data source '{key}' field '{field_key}' has unknown type '{ftype}'")
        seen.add(field_key)
        fields.append(ReportField(
            key=field_key,
            label=raw_field.get("label", field_key),
            type=ftype,
            format=raw_field.get("format"),
            description=raw_field.get("description"),
        ))
        if raw_field.get("column"):
            columns[field_key] = raw_field["column"]
    return DataSource(
        key=key,
        name=raw.get("name", key),
        table=raw.get("table", key),
        description=raw.get("description", ""),
        fields=tuple(fields),
        columns=columns,
    )


def parse_catalog(raw_yaml: dict[str, Any]) -> Catalog:
    sources: dict[str, DataSource] = {}
    for raw in raw_yaml.get("data_sources", []):
        source = _parse_source(raw)
        if source.key in sources:
            raise ValueError(f"Duplicate data source key '{source.key}'")
        sources[source.key] = source
    return Catalog(version=raw_yaml.get("version", 1), sources=sources)


# ── Public API ───────────────────────────────────────────

@lru_cache
def load_catalog(path: str | None = None) -> Catalog:
    """Load and cache the catalog (defaults to ``settings.catalog_path``)."""
    catalog_path = Path(path or get_settings().catalog_path)
    with open(catalog_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    catalog = parse_catalog(raw or {})
    logger.info("Catalog loaded from %s | sources=%s", catalog_path, catalog.keys())
    return catalog
