"""SQLAlchemy engine factory.

Single shared engine with connection pooling.  Row fetches run through
`readonly_connection`, which on PostgreSQL sets the transaction to READ ONLY
and applies a statement timeout before anything executes.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from src.core.config import get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine (lazy-created, cached)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.database_url
        options: dict = {"pool_pre_ping": True, "echo": False}
        if not url.startswith("sqlite"):
            options.update(pool_size=5, max_overflow=10)
        _engine = create_engine(url, **options)
        logger.info("DB engine created  dialect=%s  db=%s", _engine.dialect.name, _engine.url.database)
    return _engine


@contextmanager
def readonly_connection(
    engine: Engine | None = None,
    timeout_ms: int | None = None,
) -> Generator[Connection, None, None]:
    """Yield a connection that cannot write (PostgreSQL).

    Other dialects get a plain connection.  The connection is returned to the
    pool on exit.
    """
    engine = engine or get_engine()
    conn = engine.connect()
    try:
        if engine.dialect.name == "postgresql":
            conn.execute(text("SET TRANSACTION READ ONLY"))
            timeout = int(timeout_ms or get_settings().source_timeout_ms)
            conn.execute(text(f"SET LOCAL statement_timeout = {timeout}"))
        yield conn
    finally:
        conn.close()
