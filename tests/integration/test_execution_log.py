"""
Integration tests -- report execution history on SQLite.
"""
import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from src.db.execution_log import ensure_log_table, log_execution, recent_executions


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    yield eng
    eng.dispose()


def test_ensure_log_table_is_idempotent(engine):
    ensure_log_table(engine)
    ensure_log_table(engine)
    assert "report_execution_logs" in inspect(engine).get_table_names()


def test_recent_executions_newest_first(engine):
    log_execution("rep-1", "Viajes", "trips", "completed", row_count=10, total_rows=12, latency_ms=3.5, engine=engine)
    log_execution("rep-2", "Vehículos", "vehicles", "failed", error="boom", fmt="pdf", engine=engine)

    rows = recent_executions(engine=engine)
    assert [r["definition_id"] for r in rows] == ["rep-2", "rep-1"]
    assert rows[0]["status"] == "failed"
    assert rows[0]["format"] == "pdf"
    assert rows[1]["row_count"] == 10
    assert rows[1]["format"] is None


def test_recent_executions_limit(engine):
    for i in range(5):
        log_execution(f"rep-{i}", "Viajes", "trips", "completed", engine=engine)
    assert len(recent_executions(limit=2, engine=engine)) == 2


def test_write_failure_does_not_propagate():
    broken = create_engine("sqlite:////nonexistent-dir/history.db")
    log_execution("rep-1", "Viajes", "trips", "completed", engine=broken)
    broken.dispose()
