"""
Chart projection.

Given the (already limited) ReportData rows and a ChartConfig, builds the
records a chart renderer consumes: one plain dict per row keyed by column
label, with y-axis values coerced to numbers.

Supported chart types:
  - bar, line, area, scatter   (every y-axis column as a numeric series)
  - pie                        (x axis = name key, first 10 slices only)

Unknown types produce an unsupported projection instead of an error.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.core.logging import get_logger
from src.reports.cells import to_number
from src.reports.definition import ChartConfig, ReportData, ReportDefinition
from src.reports.errors import DefinitionError

logger = get_logger(__name__)

# ── Chart types ─────────────────────────────────────────

CHART_BAR = "bar"
CHART_LINE = "line"
CHART_AREA = "area"
CHART_PIE = "pie"
CHART_SCATTER = "scatter"

SUPPORTED_CHARTS = frozenset({CHART_BAR, CHART_LINE, CHART_AREA, CHART_PIE, CHART_SCATTER})
PIE_MAX_SLICES = 10


@dataclass
class ChartProjection:
    """Chart-ready series for one ChartConfig."""
    chart_type: str
    title: str
    x_key: str | None = None
    y_keys: list[str] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list)
    supported: bool = True
    truncated: bool = False
    omitted: int = 0
    message: str | None = None
    height: int = 300
    show_legend: bool = True
    show_grid: bool = True
    show_tooltip: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "chart_type": self.chart_type,
            "title": self.title,
            "x_key": self.x_key,
            "y_keys": self.y_keys,
            "records": self.records,
            "supported": self.supported,
            "truncated": self.truncated,
            "omitted": self.omitted,
            "message": self.message,
            "height": self.height,
            "show_legend": self.show_legend,
            "show_grid": self.show_grid,
            "show_tooltip": self.show_tooltip,
            "row_count": len(self.records),
        }


def _resolve_label(data: ReportData, key: str) -> str | None:
    """Map an axis reference (column key or header label) to its header label."""
    label = data.label_for(key)
    if label is not None:
        return label
    return key if key in data.headers else None


def _magnitude(value: Any) -> float:
    number = to_number(value)
    return number if number is not None else 0.0


def project_chart(data: ReportData, chart: ChartConfig) -> ChartProjection:
    """Project result rows into the series *chart* needs.

    Raises
    ------
    DefinitionError
        If an axis references a column that is not part of the result.
    """
    base = dict(
        chart_type=chart.type,
        title=chart.title,
        height=chart.height,
        show_legend=chart.show_legend,
        show_grid=chart.show_grid,
        show_tooltip=chart.show_tooltip,
    )
    if chart.type not in SUPPORTED_CHARTS:
        logger.info("Unsupported chart type '%s' for chart '%s'", chart.type, chart.title)
        return ChartProjection(**base, supported=False, message=f"Unsupported chart type: {chart.type}")

    errors: list[str] = []
    if not chart.y_axis:
        errors.append(f"Chart '{chart.title}' has no y axis.")
    x_label = _resolve_label(data, chart.x_axis)
    if x_label is None:
        errors.append(f"Chart '{chart.title}' x axis '{chart.x_axis}' is not a result column.")
    y_labels: list[str] = []
    for key in chart.y_axis:
        label = _resolve_label(data, key)
        if label is None:
            errors.append(f"Chart '{chart.title}' y axis '{key}' is not a result column.")
        else:
            y_labels.append(label)
    if errors:
        raise DefinitionError(errors)

    records: list[dict[str, Any]] = []
    for row in data.rows:
        record = dict(zip(data.headers, row))
        for label in y_labels:
            record[label] = _magnitude(record.get(label))
        records.append(record)

    omitted = 0
    if chart.type == CHART_PIE and len(records) > PIE_MAX_SLICES:
        omitted = len(records) - PIE_MAX_SLICES
        records = records[:PIE_MAX_SLICES]

    return ChartProjection(
        **base,
        x_key=x_label,
        y_keys=y_labels,
        records=records,
        truncated=omitted > 0,
        omitted=omitted,
        message=f"Showing first {PIE_MAX_SLICES} of {PIE_MAX_SLICES + omitted} slices" if omitted else None,
    )


def project_charts(data: ReportData, definition: ReportDefinition) -> list[ChartProjection]:
    """Project every chart configured on *definition*."""
    return [project_chart(data, chart) for chart in definition.charts]
