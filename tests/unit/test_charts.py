"""
Unit tests -- chart projection.
"""
import datetime

import pytest

from src.reports.charts import PIE_MAX_SLICES, project_chart, project_charts
from src.reports.definition import Aggregation, ChartConfig, GroupBy, ReportData, ReportMetadata
from src.reports.errors import DefinitionError
from src.reports.transform import run_transform


def _data(rows, headers=("Cliente", "Total"), columns=("client", "sum_fare")):
    return ReportData(
        headers=list(headers),
        columns=list(columns),
        rows=[list(r) for r in rows],
        total_rows=len(rows),
        metadata=ReportMetadata(generated_at=datetime.datetime(2024, 3, 5, tzinfo=datetime.timezone.utc)),
    )


def test_bar_projection_keyed_by_label():
    data = _data([["Acme", 30.0], ["Bolt", "12"]])
    projection = project_chart(data, ChartConfig(type="bar", title="Tarifa", x_axis="client", y_axis=["sum_fare"]))
    assert projection.supported
    assert projection.x_key == "Cliente"
    assert projection.y_keys == ["Total"]
    assert projection.records == [{"Cliente": "Acme", "Total": 30.0}, {"Cliente": "Bolt", "Total": 12.0}]


def test_uncoercible_y_values_become_zero():
    data = _data([["Acme", None], ["Bolt", "n/a"]])
    projection = project_chart(data, ChartConfig(type="line", title="T", x_axis="Cliente", y_axis=["Total"]))
    assert [r["Total"] for r in projection.records] == [0.0, 0.0]


def test_pie_keeps_first_ten_slices():
    data = _data([[f"C{i}", i] for i in range(14)])
    projection = project_chart(data, ChartConfig(type="pie", title="Reparto", x_axis="client", y_axis=["sum_fare"]))
    assert len(projection.records) == PIE_MAX_SLICES
    assert projection.truncated is True
    assert projection.omitted == 4
    assert projection.records[0]["Cliente"] == "C0"


def test_unknown_type_is_reported_not_raised():
    data = _data([["Acme", 1]])
    projection = project_chart(data, ChartConfig(type="radar", title="R", x_axis="client", y_axis=["sum_fare"]))
    assert projection.supported is False
    assert "radar" in projection.message
    assert projection.records == []


def test_axis_outside_result_raises():
    data = _data([["Acme", 1]])
    with pytest.raises(DefinitionError):
        project_chart(data, ChartConfig(type="bar", title="B", x_axis="client", y_axis=["avg_fare"]))


def test_missing_y_axis_raises():
    data = _data([["Acme", 1]])
    with pytest.raises(DefinitionError):
        project_chart(data, ChartConfig(type="bar", title="B", x_axis="client", y_axis=[]))


def test_projects_every_configured_chart(trip_rows, trip_fields, make_definition):
    definition = make_definition(
        fields=[],
        group_by=[GroupBy(field="client", label="Cliente")],
        aggregations=[Aggregation(field="fare", function="sum", label="Total")],
        charts=[
            ChartConfig(type="bar", title="Barras", x_axis="client", y_axis=["sum_fare"]),
            ChartConfig(type="scatter", title="Puntos", x_axis="client", y_axis=["sum_fare"]),
        ],
    )
    data = run_transform(trip_rows, definition, trip_fields)
    projections = project_charts(data, definition)
    assert [p.chart_type for p in projections] == ["bar", "scatter"]
    assert projections[0].to_dict()["row_count"] == 4
