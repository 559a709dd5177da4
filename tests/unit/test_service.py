"""
Unit tests -- report service orchestration with in-memory row sources.
"""
import asyncio

import pytest

from src.exporters.base import ExportOptions
from src.reports.errors import DefinitionError, SerializationError, SourceError
from src.reports.definition import ReportFilter, SortSpec
from src.reports.service import execute_report, execute_report_async, run_report
from src.reports.sources import InMemoryRowSource, build_source_params


class _FailingSource:
    def __init__(self):
        self.calls = 0

    def fetch_rows(self, data_source_key, params):
        self.calls += 1
        raise ConnectionError("database unreachable")


class _AsyncSource:
    def __init__(self, rows):
        self.rows = rows
        self.params = None

    async def fetch_rows(self, data_source_key, params):
        self.params = params
        await asyncio.sleep(0)
        return list(self.rows)


def test_execute_report(trip_rows, trip_fields, make_definition):
    source = InMemoryRowSource({"trips": trip_rows})
    data = execute_report(make_definition(limit=2), source, trip_fields)
    assert len(data.rows) == 2
    assert data.total_rows == 6


def test_in_memory_source_returns_copies(trip_rows):
    source = InMemoryRowSource({"trips": trip_rows})
    rows = source.fetch_rows("trips", {})
    rows[0]["client"] = "changed"
    assert source.fetch_rows("trips", {})[0]["client"] == "Acme"


def test_registered_rows_are_served(trip_rows):
    source = InMemoryRowSource()
    source.register("trips", iter(trip_rows))
    assert len(source.fetch_rows("trips", {})) == 6
    assert len(source.fetch_rows("trips", {})) == 6


def test_invalid_definition_is_rejected_before_fetch(trip_fields, make_definition):
    source = _FailingSource()
    definition = make_definition(filters=[ReportFilter(id="f", field="ghost", operator="is_null")])
    with pytest.raises(DefinitionError):
        execute_report(definition, source, trip_fields)
    assert source.calls == 0


def test_source_failure_is_wrapped_and_chained(trip_fields, make_definition):
    with pytest.raises(SourceError) as exc_info:
        execute_report(make_definition(), _FailingSource(), trip_fields)
    err = exc_info.value
    assert err.data_source == "trips"
    assert err.definition_id == "rep-trips"
    assert isinstance(err.__cause__, ConnectionError)


def test_unknown_data_source_in_memory(trip_fields, make_definition):
    source = InMemoryRowSource()
    with pytest.raises(SourceError):
        execute_report(make_definition(), source, trip_fields)


def test_execute_report_async(trip_rows, trip_fields, make_definition):
    source = _AsyncSource(trip_rows)
    definition = make_definition(filters=[ReportFilter(id="f", field="client", operator="equals", value="Bolt")])
    data = asyncio.run(execute_report_async(definition, source, trip_fields))
    assert data.total_rows == 2
    assert source.params["filters"][0]["field"] == "client"


def test_source_params(make_definition):
    definition = make_definition(limit=25, default_date_range="last_30_days")
    params = build_source_params(definition)
    assert params["limit"] == 25
    assert params["date_range"] == "last_30_days"
    assert params["fields"] == ["trip_id", "client", "fare"]


def test_run_report_exports(trip_rows, trip_fields, make_definition):
    source = InMemoryRowSource({"trips": trip_rows})
    data, artifact = run_report(make_definition(), source, "csv", ExportOptions(), trip_fields)
    assert data.total_rows == 6
    assert artifact.content.decode("utf-8").splitlines()[0] == "ID Viaje,Cliente,Tarifa"


def test_run_report_unknown_format(trip_rows, trip_fields, make_definition):
    source = InMemoryRowSource({"trips": trip_rows})
    with pytest.raises(SerializationError):
        run_report(make_definition(), source, "image", None, trip_fields)


# ── Execution history ────────────────────────────────────

@pytest.fixture
def recorded(monkeypatch):
    from src.core.config import get_settings
    import src.reports.service as service

    calls = []
    monkeypatch.setattr(get_settings(), "execution_log_enabled", True)
    monkeypatch.setattr(service, "log_execution", lambda **kw: calls.append(kw))
    return calls


def test_completed_execution_is_recorded(recorded, trip_rows, trip_fields, make_definition):
    execute_report(make_definition(limit=2), InMemoryRowSource({"trips": trip_rows}), trip_fields)
    assert len(recorded) == 1
    assert recorded[0]["status"] == "completed"
    assert recorded[0]["row_count"] == 2
    assert recorded[0]["total_rows"] == 6


def test_failed_execution_is_recorded(recorded, trip_fields, make_definition):
    with pytest.raises(SourceError):
        execute_report(make_definition(), _FailingSource(), trip_fields)
    assert recorded[0]["status"] == "failed"
    assert "database unreachable" in recorded[0]["error"]


def test_transform_failure_is_recorded(recorded, trip_rows, trip_fields, make_definition):
    definition = make_definition(sorting=[SortSpec(field="distance_km")])
    with pytest.raises(DefinitionError):
        execute_report(definition, InMemoryRowSource({"trips": trip_rows}), trip_fields)
    assert [c["status"] for c in recorded] == ["failed"]
    assert "distance_km" in recorded[0]["error"]


def test_export_is_recorded_with_format(recorded, trip_rows, trip_fields, make_definition):
    run_report(make_definition(), InMemoryRowSource({"trips": trip_rows}), "csv", None, trip_fields)
    assert [c["fmt"] for c in recorded] == [None, "csv"]
