"""
Report execution history -- records every execution (and export) of a
report definition with its outcome.

The table is created automatically on first use via `ensure_log_table()`.
"""
from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import Column, DateTime, Float, Integer, MetaData, String, Table, Text, desc, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.core.logging import get_logger
from src.db.connection import get_engine

logger = get_logger(__name__)

_TABLE = "report_execution_logs"

metadata = MetaData()

execution_logs = Table(
    _TABLE,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("definition_id", String(120), nullable=False),
    Column("report_name", String(200), nullable=False),
    Column("data_source", String(120), nullable=False),
    Column("status", String(20), nullable=False),  # completed | failed
    Column("format", String(20)),                  # null for plain executions
    Column("row_count", Integer),
    Column("total_rows", Integer),
    Column("error", Text),
    Column("latency_ms", Float),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

_ensured: set[int] = set()


def ensure_log_table(engine: Engine | None = None) -> None:
    """Create the execution log table if it doesn't exist."""
    engine = engine or get_engine()
    metadata.create_all(engine, tables=[execution_logs])
    _ensured.add(id(engine))
    logger.info("Execution log table '%s' ensured", _TABLE)


def log_execution(
    definition_id: str,
    report_name: str,
    data_source: str,
    status: str,
    row_count: int | None = None,
    total_rows: int | None = None,
    latency_ms: float | None = None,
    error: str | None = None,
    fmt: str | None = None,
    engine: Engine | None = None,
) -> None:
    """Insert one row into the execution log.

    A failing write is logged and never propagates: the history must not
    block a report.
    """
    params = {
        "definition_id": definition_id,
        "report_name": report_name,
        "data_source": data_source,
        "status": status,
        "format": fmt,
        "row_count": row_count,
        "total_rows": total_rows,
        "error": error,
        "latency_ms": latency_ms,
        "created_at": datetime.datetime.now(datetime.timezone.utc),
    }
    try:
        engine = engine or get_engine()
        if id(engine) not in _ensured:
            ensure_log_table(engine)
        with engine.begin() as conn:
            conn.execute(insert(execution_logs), params)
        logger.debug("Execution logged: %s (%s)", definition_id, status)
    except SQLAlchemyError:
        logger.warning("Failed to log execution of '%s' -- continuing without logging", definition_id, exc_info=True)


def recent_executions(limit: int = 50, engine: Engine | None = None) -> list[dict[str, Any]]:
    """Return the latest executions, newest first."""
    engine = engine or get_engine()
    if id(engine) not in _ensured:
        ensure_log_table(engine)
    stmt = select(execution_logs).order_by(desc(execution_logs.c.id)).limit(limit)
    with engine.connect() as conn:
        return [dict(row._mapping) for row in conn.execute(stmt)]
