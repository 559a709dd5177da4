"""
Shared fixtures -- a small trips data source and a definition factory.

The execution history is disabled for the whole session; the tests that
exercise it pass their own SQLite engine.
"""
import os

os.environ.setdefault("EXECUTION_LOG_ENABLED", "false")

import datetime

import pytest

from src.core.config import get_settings
from src.reports.definition import ReportDefinition, ReportField

get_settings.cache_clear()


TRIP_FIELDS = [
    ReportField(key="trip_id", label="ID Viaje", type="text"),
    ReportField(key="client", label="Cliente", type="text"),
    ReportField(key="trip_date", label="Fecha", type="date"),
    ReportField(key="distance_km", label="Distancia (km)", type="number"),
    ReportField(key="fare", label="Tarifa", type="currency"),
    ReportField(key="status", label="Estado", type="text"),
    ReportField(key="invoiced", label="Facturado", type="boolean"),
]


def _trip(n, client, day, km, fare, status="completado", invoiced=True):
    return {
        "trip_id": f"V-{n}",
        "client": client,
        "trip_date": day,
        "distance_km": km,
        "fare": fare,
        "status": status,
        "invoiced": invoiced,
    }


TRIP_ROWS = [
    _trip(1, "Acme", datetime.date(2024, 3, 4), 120, 10.0),
    _trip(2, "Acme", datetime.date(2024, 3, 6), 80, 20.0),
    _trip(3, "Bolt", "2024-03-11", 300, 30.0, status="pendiente", invoiced=False),
    _trip(4, "Bolt", "2024-04-02", None, None, status="cancelado", invoiced=False),
    _trip(5, "Çanto", datetime.datetime(2024, 4, 15, 9, 30), 45.5, 15.0),
    _trip(10, "acme", "2024-05-01", 210, "25.5", status="completado", invoiced="si"),
]


@pytest.fixture
def trip_fields() -> list[ReportField]:
    return list(TRIP_FIELDS)


@pytest.fixture
def trip_rows() -> list[dict]:
    return [dict(r) for r in TRIP_ROWS]


@pytest.fixture
def make_definition():
    """Build a trips ReportDefinition; keyword arguments override the defaults."""

    def _make(**overrides) -> ReportDefinition:
        base = {
            "id": "rep-trips",
            "name": "Viajes por cliente",
            "data_source": "trips",
            "fields": [f for f in TRIP_FIELDS if f.key in ("trip_id", "client", "fare")],
        }
        base.update(overrides)
        return ReportDefinition(**base)

    return _make
