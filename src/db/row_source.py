"""
SQL row source.

Reads the raw rows of a catalog data source:
  1. Builds a SQLAlchemy Core SELECT of the source's field columns,
     each labelled with its field key
  2. Runs it on a read-only connection (statement_timeout on PostgreSQL)
  3. Caps the fetch at ``settings.source_row_cap`` rows
  4. Converts Decimal / timedelta to JSON-safe Python types
"""
from __future__ import annotations

import datetime
import decimal
from typing import Any

from sqlalchemy import column, select, table
from sqlalchemy.engine import Engine

from src.catalog.loader import Catalog, DataSource
from src.core.config import get_settings
from src.core.logging import get_logger
from src.core.utils import timer
from src.db.connection import get_engine, readonly_connection

logger = get_logger(__name__)


def _serialise_value(val: Any) -> Any:
    """Convert DB types to plain cell values (dates stay native)."""
    if isinstance(val, decimal.Decimal):
        return float(val)
    if isinstance(val, datetime.timedelta):
        return str(val)
    return val


def build_select(source: DataSource, row_cap: int):
    """SELECT <column AS field_key, ...> FROM <table> LIMIT <row_cap>."""
    schema, _, name = source.table.rpartition(".")
    columns = [column(source.column_for(f.key)) for f in source.fields]
    tbl = table(name, *columns, schema=schema or None)
    labelled = [tbl.c[source.column_for(f.key)].label(f.key) for f in source.fields]
    return select(*labelled).limit(row_cap)


class SqlRowSource:
    """Row source backed by a SQL database described by the catalog."""

    def __init__(self, catalog: Catalog, engine: Engine | None = None, row_cap: int | None = None):
        self.catalog = catalog
        self._engine = engine
        self.row_cap = row_cap or get_settings().source_row_cap

    @property
    def engine(self) -> Engine:
        return self._engine or get_engine()

    def fetch_rows(self, data_source_key: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Return every row of the data source (up to the row cap).

        Filters in *params* are not pushed down; the transform stage applies them.

        Raises
        ------
        KeyError
            If the catalog has no such data source.
        sqlalchemy.exc.SQLAlchemyError
            If the query fails.
        """
        source = self.catalog.data_source(data_source_key)
        if source is None:
            raise KeyError(f"Unknown data source '{data_source_key}'")

        stmt = build_select(source, self.row_cap)
        with timer() as t, readonly_connection(self.engine) as conn:
            result = conn.execute(stmt)
            keys = list(result.keys())
            rows = [
                {key: _serialise_value(val) for key, val in zip(keys, row)}
                for row in result.fetchall()
            ]

        if len(rows) >= self.row_cap:
            logger.warning("Data source '%s' hit the row cap (%d rows)", data_source_key, self.row_cap)
        logger.info("Fetched %d rows from '%s' in %.1fms", len(rows), source.table, t["elapsed_ms"])
        return rows
