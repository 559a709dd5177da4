"""
FastAPI dependencies -- overridden in tests via ``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Depends

from src.catalog.loader import Catalog, load_catalog
from src.db.row_source import SqlRowSource
from src.reports.sources import RowSource


def get_catalog() -> Catalog:
    return load_catalog()


def get_row_source(catalog: Catalog = Depends(get_catalog)) -> RowSource:
    return SqlRowSource(catalog)
