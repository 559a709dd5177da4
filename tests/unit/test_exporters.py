"""
Unit tests -- export serializers (CSV, spreadsheet, PDF) and format dispatch.
"""
import csv
import datetime
import io

import pytest
from openpyxl import load_workbook

from src.exporters import csv_export, excel, pdf
from src.exporters.base import MIME_CSV, MIME_PDF, MIME_XLSX, ExportOptions, build_filename
from src.exporters.registry import export_report
from src.reports.definition import ChartConfig, ReportData, ReportDefinition, ReportMetadata
from src.reports.errors import SerializationError

GENERATED = datetime.datetime(2024, 3, 5, 9, 0, 0)


def _definition(**overrides) -> ReportDefinition:
    base = {
        "id": "rep-1",
        "name": "Reporte Mensual #1",
        "description": "Viajes del mes por cliente",
        "data_source": "trips",
    }
    base.update(overrides)
    return ReportDefinition(**base)


def _data(rows, headers=("Cliente", "Nota", "Total")) -> ReportData:
    return ReportData(
        headers=list(headers),
        columns=["client", "note", "sum_fare"][: len(headers)],
        rows=[list(r) for r in rows],
        total_rows=len(rows),
        metadata=ReportMetadata(execution_time=12.5, generated_at=GENERATED),
    )


SAMPLE_ROWS = [
    ["Acme, S.A.", 'dijo "hola"', 30.0],
    ["Bolt", "línea 1\nlínea 2", None],
    ["Çanto", "", 15],
]


# ── Filenames ────────────────────────────────────────────

def test_build_filename_example():
    assert build_filename("Reporte Mensual #1", "excel", GENERATED) == "reporte-mensual--1-2024-03-05-09-00-00.xlsx"


def test_build_filename_uses_format_as_extension():
    assert build_filename("Flota", "csv", GENERATED).endswith(".csv")
    assert build_filename("Flota", "pdf", GENERATED).endswith(".pdf")


# ── CSV ──────────────────────────────────────────────────

def test_csv_round_trip():
    artifact = csv_export.serialize(_data(SAMPLE_ROWS), _definition(), generated_at=GENERATED)
    assert artifact.mime_type == MIME_CSV
    parsed = list(csv.reader(io.StringIO(artifact.content.decode("utf-8"))))
    assert parsed[0] == ["Cliente", "Nota", "Total"]
    assert parsed[1] == ["Acme, S.A.", 'dijo "hola"', "30"]
    assert parsed[2] == ["Bolt", "línea 1\nlínea 2", ""]
    assert len(parsed) == 1 + len(SAMPLE_ROWS)


def test_csv_quotes_only_when_needed():
    artifact = csv_export.serialize(_data(SAMPLE_ROWS), _definition(), generated_at=GENERATED)
    text = artifact.content.decode("utf-8")
    assert text.startswith("Cliente,Nota,Total\n")
    assert '"Acme, S.A.","dijo ""hola""",30\n' in text
    assert "\r\n" not in text


def test_csv_has_no_row_cap():
    rows = [[f"C{i}", "", i] for i in range(120)]
    artifact = csv_export.serialize(_data(rows), _definition(), generated_at=GENERATED)
    assert artifact.content.decode("utf-8").count("\n") == 121


# ── Spreadsheet ──────────────────────────────────────────

def _workbook(artifact):
    return load_workbook(io.BytesIO(artifact.content))


def test_excel_sheets_and_header():
    definition = _definition(charts=[ChartConfig(type="bar", title="Barras", x_axis="client", y_axis=["sum_fare", "x"])])
    artifact = excel.serialize(_data(SAMPLE_ROWS), definition, ExportOptions(include_charts=True), GENERATED)
    assert artifact.mime_type == MIME_XLSX
    assert artifact.filename.endswith(".xlsx")

    wb = _workbook(artifact)
    assert wb.sheetnames == ["Data", "Información", "Gráficos"]
    data_ws = wb["Data"]
    assert [c.value for c in data_ws[1]] == ["Cliente", "Nota", "Total"]
    assert data_ws["A1"].font.bold
    assert data_ws["A2"].value == "Acme, S.A."
    assert data_ws["C2"].value == 30
    assert data_ws.max_row == 1 + len(SAMPLE_ROWS)

    charts_ws = wb["Gráficos"]
    assert [c.value for c in charts_ws[2]] == ["Barras", "bar", "client", "sum_fare, x", 300]


def test_excel_info_sheet():
    wb = _workbook(excel.serialize(_data(SAMPLE_ROWS), _definition(), ExportOptions(), GENERATED))
    info = {row[0]: row[1] for row in wb["Información"].iter_rows(values_only=True)}
    assert info["Reporte"] == "Reporte Mensual #1"
    assert info["Total registros"] == 3
    assert info["Generado"] == "05/03/2024 09:00"
    assert info["Filtros aplicados"] == "Ninguno"


def test_excel_column_width_is_capped():
    rows = [["x" * 80, "", 1]]
    wb = _workbook(excel.serialize(_data(rows), _definition(), ExportOptions(), GENERATED))
    assert wb["Data"].column_dimensions["A"].width == 50
    assert wb["Data"].column_dimensions["C"].width == len("Total") + 2


def test_excel_without_sheets_raises():
    options = ExportOptions(include_table=False, include_metadata=False, include_charts=True)
    with pytest.raises(SerializationError):
        excel.serialize(_data(SAMPLE_ROWS), _definition(), options, GENERATED)


def test_excel_accepts_aware_datetimes():
    aware = datetime.datetime(2024, 3, 5, 9, 0, tzinfo=datetime.timezone.utc)
    artifact = excel.serialize(_data([["Acme", "", aware]]), _definition(), ExportOptions(), GENERATED)
    assert _workbook(artifact)["Data"]["C2"].value == datetime.datetime(2024, 3, 5, 9, 0)


def test_excel_keeps_formula_like_text_literal():
    wb = _workbook(excel.serialize(_data([["=1+1", "=HYPERLINK(\"x\")", 5]]), _definition(), ExportOptions(), GENERATED))
    ws = wb["Data"]
    assert ws["A2"].data_type == "s"
    assert ws["A2"].value == "=1+1"
    assert ws["B2"].data_type == "s"
    assert ws["C2"].data_type == "n"


def test_excel_strips_control_characters():
    wb = _workbook(excel.serialize(_data([["Acme\x0bSA", "", 5]]), _definition(), ExportOptions(), GENERATED))
    assert wb["Data"]["A2"].value == "AcmeSA"


# ── PDF ──────────────────────────────────────────────────

def test_pdf_basic_document():
    artifact = pdf.serialize(_data(SAMPLE_ROWS), _definition(), ExportOptions(), GENERATED)
    assert artifact.mime_type == MIME_PDF
    assert artifact.content.startswith(b"%PDF")
    assert artifact.filename == "reporte-mensual--1-2024-03-05-09-00-00.pdf"
    assert artifact.warnings == []


def test_pdf_truncation_notice():
    rows = [[f"Cliente {i}", "", i] for i in range(120)]
    data = _data(rows)
    artifact = pdf.serialize(data, _definition(), ExportOptions(), GENERATED)
    assert b"Mostrando solo los primeros 50 registros de 120 totales" in artifact.content


def test_pdf_no_notice_when_all_rows_fit():
    artifact = pdf.serialize(_data(SAMPLE_ROWS), _definition(), ExportOptions(), GENERATED)
    assert b"Mostrando solo" not in artifact.content


def test_pdf_truncates_long_cells():
    assert pdf.truncate_cell("x" * 25) == "x" * 20 + "..."
    assert pdf.truncate_cell("corto") == "corto"


def test_pdf_watermark_and_landscape():
    options = ExportOptions(watermark="BORRADOR", page_orientation="landscape", paper_size="letter")
    rows = [[f"Cliente {i}", "", i] for i in range(50)]
    artifact = pdf.serialize(_data(rows), _definition(), options, GENERATED)
    assert artifact.content.count(b"BORRADOR") >= 2


def test_pdf_charts_render_and_unsupported_types_warn():
    definition = _definition(charts=[
        ChartConfig(type="bar", title="Barras", x_axis="client", y_axis=["sum_fare"]),
        ChartConfig(type="pie", title="Torta", x_axis="client", y_axis=["sum_fare"]),
        ChartConfig(type="scatter", title="Puntos", x_axis="client", y_axis=["sum_fare"]),
        ChartConfig(type="bar", title="Roto", x_axis="client", y_axis=["missing"]),
    ])
    artifact = pdf.serialize(_data(SAMPLE_ROWS), definition, ExportOptions(include_charts=True), GENERATED)
    assert artifact.content.startswith(b"%PDF")
    assert len(artifact.warnings) == 2
    assert any("Puntos" in w for w in artifact.warnings)
    assert any("missing" in w for w in artifact.warnings)


def test_pdf_is_deterministic_for_fixed_timestamp():
    a = pdf.serialize(_data(SAMPLE_ROWS), _definition(), ExportOptions(), GENERATED)
    b = pdf.serialize(_data(SAMPLE_ROWS), _definition(), ExportOptions(), GENERATED)
    assert a.content == b.content


# ── Dispatch ─────────────────────────────────────────────

def test_export_report_dispatches_by_format():
    artifact = export_report("csv", _data(SAMPLE_ROWS), _definition(), generated_at=GENERATED)
    assert artifact.mime_type == MIME_CSV


def test_unknown_format_raises():
    with pytest.raises(SerializationError) as exc_info:
        export_report("image", _data(SAMPLE_ROWS), _definition())
    assert exc_info.value.fmt == "image"
