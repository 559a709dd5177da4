"""
Spreadsheet (xlsx) serializer built on openpyxl.

Sheets:
  - Data         header + every result row
  - Información  report metadata          (options.include_metadata)
  - Gráficos     one line per ChartConfig (options.include_charts and charts exist)
"""
from __future__ import annotations

import datetime
import io
from decimal import Decimal
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from src.core.logging import get_logger
from src.exporters.base import (
    MIME_XLSX,
    ExportArtifact,
    ExportOptions,
    build_filename,
    cell_text,
    format_timestamp,
    resolve_generated_at,
)
from src.reports.definition import ReportData, ReportDefinition
from src.reports.errors import SerializationError

logger = get_logger(__name__)

SHEET_DATA = "Data"
SHEET_INFO = "Información"
SHEET_CHARTS = "Gráficos"

_HEADER_FONT = Font(bold=True)
_HEADER_FILL = PatternFill(start_color="F0F0F0", end_color="F0F0F0", fill_type="solid")
_WIDTH_SAMPLE_ROWS = 100
_MAX_WIDTH = 50


def _sheet_value(value: Any) -> Any:
    """Keep numbers / dates native; everything else is written as text."""
    if value is None:
        return None
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, datetime.date):
        return value
    return _clean(cell_text(value))


def _clean(text: str) -> str:
    """Drop control characters a worksheet cannot hold."""
    return ILLEGAL_CHARACTERS_RE.sub("", text)


def _append(ws, values: list[Any]) -> None:
    """Append a row; text cells stay literal text, never formulas."""
    ws.append([_clean(v) if isinstance(v, str) else v for v in values])
    for cell in ws[ws.max_row]:
        if isinstance(cell.value, str):
            cell.data_type = "s"


def _style_header(ws) -> None:
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL


def _write_data_sheet(ws, data: ReportData) -> None:
    _append(ws, list(data.headers))
    for row in data.rows:
        _append(ws, [_sheet_value(v) for v in row])
    _style_header(ws)

    sample = data.rows[:_WIDTH_SAMPLE_ROWS]
    for idx, header in enumerate(data.headers):
        longest = max([len(str(header))] + [len(cell_text(r[idx])) for r in sample if idx < len(r)])
        ws.column_dimensions[get_column_letter(idx + 1)].width = min(longest + 2, _MAX_WIDTH)


def _describe_filters(data: ReportData) -> str:
    return ", ".join(f.label or f.field for f in data.metadata.filters) or "Ninguno"


def _write_info_sheet(ws, data: ReportData, definition: ReportDefinition, moment: datetime.datetime) -> None:
    rows = [
        ("Reporte", definition.name),
        ("Descripción", definition.description or ""),
        ("Tipo", definition.type),
        ("Generado", format_timestamp(moment)),
        ("Total registros", data.total_rows),
        ("Tiempo ejecución (ms)", data.metadata.execution_time),
        ("Filtros aplicados", _describe_filters(data)),
    ]
    for label, value in rows:
        _append(ws, [label, value])
    ws.column_dimensions["A"].width = 20
    ws.column_dimensions["B"].width = 40


def _write_charts_sheet(ws, definition: ReportDefinition) -> None:
    _append(ws, ["Título", "Tipo", "Eje X", "Eje Y", "Altura"])
    for chart in definition.charts:
        _append(ws, [chart.title, chart.type, chart.x_axis, ", ".join(chart.y_axis), chart.height])
    _style_header(ws)


def serialize(
    data: ReportData,
    definition: ReportDefinition,
    options: ExportOptions | None = None,
    generated_at: datetime.datetime | None = None,
) -> ExportArtifact:
    """Build the workbook and return it as xlsx bytes.

    Raises
    ------
    SerializationError
        If the options leave nothing to put in the workbook.
    """
    options = options or ExportOptions()
    moment = resolve_generated_at(generated_at)

    wb = Workbook()
    default_ws = wb.active
    wb.remove(default_ws)

    if options.include_table:
        _write_data_sheet(wb.create_sheet(SHEET_DATA), data)
    if options.include_metadata:
        _write_info_sheet(wb.create_sheet(SHEET_INFO), data, definition, moment)
    if options.include_charts and definition.charts:
        _write_charts_sheet(wb.create_sheet(SHEET_CHARTS), definition)

    if not wb.sheetnames:
        raise SerializationError("Workbook would contain no sheets", "excel")

    buf = io.BytesIO()
    wb.save(buf)
    content = buf.getvalue()
    logger.info("Excel export %s | sheets=%s | bytes=%d", definition.id, wb.sheetnames, len(content))
    return ExportArtifact(
        content=content,
        mime_type=MIME_XLSX,
        filename=build_filename(definition.name, "excel", moment),
    )
