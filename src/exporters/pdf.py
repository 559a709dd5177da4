"""
PDF serializer built on the reportlab canvas.

Layout (top to bottom, millimetre cursor from the top margin):
  - title
  - metadata block            (options.include_metadata)
  - description               (wrapped to the content width)
  - chart section             (options.include_charts; bar / line / pie only)
  - data table                (options.include_table; first 50 rows)
  - watermark                 (every page, 45 degrees)

A chart that cannot be drawn is recorded in ``ExportArtifact.warnings`` and
the rest of the document still renders.
"""
from __future__ import annotations

import datetime
import io

from reportlab.graphics import renderPDF
from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.legends import Legend
from reportlab.graphics.charts.linecharts import HorizontalLineChart
from reportlab.graphics.charts.piecharts import Pie
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LEGAL, LETTER, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from src.core.logging import get_logger
from src.exporters.base import (
    LABELS,
    MIME_PDF,
    ExportArtifact,
    ExportOptions,
    build_filename,
    cell_text,
    format_timestamp,
    resolve_generated_at,
)
from src.reports.charts import CHART_BAR, CHART_LINE, CHART_PIE, ChartProjection, project_chart
from src.reports.definition import ChartConfig, ReportData, ReportDefinition
from src.reports.errors import DefinitionError, SerializationError

logger = get_logger(__name__)

PAPER_SIZES = {"a4": A4, "letter": LETTER, "legal": LEGAL}
MAX_TABLE_ROWS = 50
MAX_CELL_CHARS = 20
BOTTOM_LIMIT_MM = 30

CHART_COLORS = [
    "#8884d8", "#82ca9d", "#ffc658", "#ff7300", "#00ff00",
    "#ff00ff", "#00ffff", "#ff0000", "#0000ff", "#ffff00",
]

_HEADER_FILL = colors.Color(240 / 255, 240 / 255, 240 / 255)
_STRIPE_FILL = colors.Color(248 / 255, 249 / 255, 250 / 255)
_WATERMARK_FILL = colors.Color(200 / 255, 200 / 255, 200 / 255)
_FONT = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"


def truncate_cell(text: str, limit: int = MAX_CELL_CHARS) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class _Page:
    """Canvas wrapper with a top-down millimetre cursor and page breaks."""

    def __init__(self, options: ExportOptions):
        size = PAPER_SIZES[options.paper_size]
        if options.page_orientation == "landscape":
            size = landscape(size)
        self.options = options
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=size, invariant=1, pageCompression=0)
        self.width = size[0] / mm
        self.height = size[1] / mm
        self.left = options.margins.left
        self.content_width = self.width - options.margins.left - options.margins.right
        self.y = options.margins.top
        self.pages = 1

    def text(self, x: float, text: str, size: float, color, bold: bool = False) -> None:
        self.canvas.setFont(_FONT_BOLD if bold else _FONT, size)
        self.canvas.setFillColor(color)
        self.canvas.drawString(x * mm, (self.height - self.y) * mm, text)

    def fill_band(self, top: float, height: float, color) -> None:
        """Filled rectangle across the content width, *top* in mm from the page top."""
        self.canvas.setFillColor(color)
        self.canvas.rect(
            self.left * mm, (self.height - top - height) * mm,
            self.content_width * mm, height * mm, stroke=0, fill=1,
        )

    def ensure_space(self, needed: float) -> None:
        if self.y + needed > self.height - BOTTOM_LIMIT_MM:
            self.new_page()

    def new_page(self) -> None:
        self._watermark()
        self.canvas.showPage()
        self.pages += 1
        self.y = self.options.margins.top

    def finish(self) -> bytes:
        self._watermark()
        self.canvas.save()
        return self.buffer.getvalue()

    def _watermark(self) -> None:
        if not self.options.watermark:
            return
        c = self.canvas
        c.saveState()
        c.setFont(_FONT, 48)
        c.setFillColor(_WATERMARK_FILL)
        c.translate(self.width / 2 * mm, self.height / 2 * mm)
        c.rotate(45)
        c.drawCentredString(0, 0, self.options.watermark)
        c.restoreState()


# ── Sections ────────────────────────────────────────────


def _draw_title(page: _Page, title: str, options: ExportOptions) -> None:
    page.text(page.left, title, 20, colors.HexColor(options.colors.primary), bold=True)
    page.y += 15


def _draw_metadata(page: _Page, data: ReportData, moment: datetime.datetime, options: ExportOptions) -> None:
    secondary = colors.HexColor(options.colors.secondary)
    lines = [
        f"{LABELS['generated']}: {format_timestamp(moment)}",
        f"{LABELS['total_rows']}: {data.total_rows}",
    ]
    if data.metadata.execution_time:
        lines.append(f"{LABELS['execution_time']}: {data.metadata.execution_time:.1f}ms")
    for line in lines:
        page.text(page.left, line, 10, secondary)
        page.y += 5
    page.y += 10


def _draw_description(page: _Page, description: str, options: ExportOptions) -> None:
    lines = simpleSplit(description, _FONT, options.font_size, page.content_width * mm)
    color = colors.HexColor(options.colors.text)
    for line in lines:
        page.ensure_space(5)
        page.text(page.left, line, options.font_size, color)
        page.y += 5
    page.y += 10


def _draw_table(page: _Page, data: ReportData, options: ExportOptions) -> None:
    primary = colors.HexColor(options.colors.primary)
    text_color = colors.HexColor(options.colors.text)
    col_width = page.content_width / len(data.headers)

    page.ensure_space(20)
    page.text(page.left, LABELS["data"], 14, primary, bold=True)
    page.y += 10

    page.fill_band(page.y - 5, 8, _HEADER_FILL)
    for idx, header in enumerate(data.headers):
        page.text(page.left + idx * col_width + 2, truncate_cell(header), 10, text_color, bold=True)
    page.y += 10

    shown = min(len(data.rows), MAX_TABLE_ROWS)
    for i, row in enumerate(data.rows[:shown]):
        page.ensure_space(6)
        if options.table_style == "striped" and i % 2 == 0:
            page.fill_band(page.y - 3, 6, _STRIPE_FILL)
        for idx, value in enumerate(row):
            page.text(page.left + idx * col_width + 2, truncate_cell(cell_text(value)), 10, text_color)
        page.y += 6

    if len(data.rows) > shown:
        page.y += 5
        page.ensure_space(5)
        note = LABELS["truncated_note"].format(shown=shown, total=data.total_rows)
        page.text(page.left, note, 8, colors.HexColor(options.colors.secondary))
        page.y += 5


# ── Charts ──────────────────────────────────────────────


def _series(projection: ChartProjection, key: str) -> list[float]:
    return [float(r[key]) for r in projection.records]


def _categories(projection: ChartProjection) -> list[str]:
    return [truncate_cell(cell_text(r.get(projection.x_key)), 12) for r in projection.records]


def _value_range(series: list[list[float]]) -> tuple[float, float]:
    values = [v for s in series for v in s]
    low = min(0.0, min(values))
    high = max(values)
    return low, high if high > low else low + 1


def _axis_chart(projection: ChartProjection, width: float, height: float):
    chart = VerticalBarChart() if projection.chart_type == CHART_BAR else HorizontalLineChart()
    chart.x, chart.y = 40, 30
    chart.width, chart.height = width - 60, height - 50
    series = [_series(projection, key) for key in projection.y_keys]
    chart.data = [tuple(s) for s in series]
    chart.categoryAxis.categoryNames = _categories(projection)
    chart.valueAxis.valueMin, chart.valueAxis.valueMax = _value_range(series)
    chart.valueAxis.visibleGrid = projection.show_grid
    for idx in range(len(series)):
        color = colors.HexColor(CHART_COLORS[idx % len(CHART_COLORS)])
        if projection.chart_type == CHART_BAR:
            chart.bars[idx].fillColor = color
        else:
            chart.lines[idx].strokeColor = color
    return chart


def _pie_chart(projection: ChartProjection, width: float, height: float) -> Pie:
    values = _series(projection, projection.y_keys[0])
    if any(v < 0 for v in values) or sum(values) <= 0:
        raise SerializationError(
            f"Chart '{projection.title}': pie values must be non-negative with a positive total",
            "pdf", chart=projection.title,
        )
    slices = [(v, label) for v, label in zip(values, _categories(projection)) if v > 0]
    pie = Pie()
    side = min(width, height) - 40
    pie.x, pie.y = (width - side) / 2, 20
    pie.width = pie.height = side
    pie.data = [v for v, _ in slices]
    pie.labels = [label for _, label in slices]
    for idx in range(len(slices)):
        pie.slices[idx].fillColor = colors.HexColor(CHART_COLORS[idx % len(CHART_COLORS)])
    return pie


def build_chart_drawing(projection: ChartProjection, width: float) -> Drawing:
    """Render one projection as a reportlab Drawing (*width* in points).

    Raises
    ------
    SerializationError
        If the chart type has no PDF rendering or the series cannot be drawn.
    """
    if not projection.supported or projection.chart_type not in (CHART_BAR, CHART_LINE, CHART_PIE):
        raise SerializationError(
            f"Chart '{projection.title}': type '{projection.chart_type}' cannot be rendered to PDF",
            "pdf", chart=projection.title,
        )
    if not projection.records:
        raise SerializationError(f"Chart '{projection.title}' has no data", "pdf", chart=projection.title)

    height = projection.height * 0.75  # px -> pt
    drawing = Drawing(width, height)
    if projection.chart_type == CHART_PIE:
        drawing.add(_pie_chart(projection, width, height))
    else:
        drawing.add(_axis_chart(projection, width, height))

    if projection.show_legend and projection.chart_type != CHART_PIE:
        legend = Legend()
        legend.x, legend.y = width - 10, height - 5
        legend.alignment = "right"
        legend.colorNamePairs = [
            (colors.HexColor(CHART_COLORS[i % len(CHART_COLORS)]), key)
            for i, key in enumerate(projection.y_keys)
        ]
        drawing.add(legend)
    return drawing


def _draw_chart(page: _Page, data: ReportData, chart: ChartConfig, options: ExportOptions) -> None:
    try:
        projection = project_chart(data, chart)
    except DefinitionError as exc:
        raise SerializationError(str(exc), "pdf", chart=chart.title) from exc
    drawing = build_chart_drawing(projection, page.content_width * mm)

    height_mm = drawing.height / mm
    page.ensure_space(height_mm + 12)
    page.text(page.left, chart.title, 12, colors.HexColor(options.colors.text), bold=True)
    page.y += 4
    renderPDF.draw(drawing, page.canvas, page.left * mm, (page.height - page.y - height_mm) * mm)
    page.y += height_mm + 8


def _draw_charts(page: _Page, data: ReportData, definition: ReportDefinition, options: ExportOptions) -> list[str]:
    warnings: list[str] = []
    page.ensure_space(20)
    page.text(page.left, LABELS["charts"], 14, colors.HexColor(options.colors.primary), bold=True)
    page.y += 10
    for chart in definition.charts:
        try:
            _draw_chart(page, data, chart, options)
        except SerializationError as exc:
            logger.warning("PDF chart skipped | report=%s | chart=%s | %s", definition.id, chart.title, exc)
            warnings.append(str(exc))
    return warnings


# ── Public API ──────────────────────────────────────────


def serialize(
    data: ReportData,
    definition: ReportDefinition,
    options: ExportOptions | None = None,
    generated_at: datetime.datetime | None = None,
) -> ExportArtifact:
    """Lay out *data* as a PDF document."""
    options = options or ExportOptions()
    moment = resolve_generated_at(generated_at)
    page = _Page(options)
    warnings: list[str] = []

    _draw_title(page, options.title or definition.name, options)
    if options.include_metadata:
        _draw_metadata(page, data, moment, options)
    if definition.description:
        _draw_description(page, definition.description, options)
    if options.include_charts and definition.charts:
        warnings.extend(_draw_charts(page, data, definition, options))
    if options.include_table and data.rows and data.headers:
        _draw_table(page, data, options)

    content = page.finish()
    logger.info(
        "PDF export %s | pages=%d | rows=%d | warnings=%d | bytes=%d",
        definition.id, page.pages, min(len(data.rows), MAX_TABLE_ROWS), len(warnings), len(content),
    )
    return ExportArtifact(
        content=content,
        mime_type=MIME_PDF,
        filename=build_filename(definition.name, "pdf", moment),
        warnings=warnings,
    )
