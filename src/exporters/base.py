"""
Shared pieces of the export serializers: presentation options, the artifact
returned by every serializer, filename building and cell rendering.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.core.utils import slugify
from src.reports.cells import to_text

ExportFormat = Literal["pdf", "excel", "csv"]

MIME_PDF = "application/pdf"
MIME_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MIME_CSV = "text/csv"

# User-facing document text (the operations app is Spanish-speaking)
LABELS = {
    "generated": "Generado",
    "total_rows": "Total de registros",
    "execution_time": "Tiempo de ejecución",
    "data": "Datos",
    "charts": "Gráficos",
    "truncated_note": "Nota: Mostrando solo los primeros {shown} registros de {total} totales.",
}


class Margins(BaseModel):
    """Page margins in millimetres."""
    top: float = 20
    right: float = 20
    bottom: float = 20
    left: float = 20


class ExportColors(BaseModel):
    primary: str = "#1c7ed6"
    secondary: str = "#868e96"
    text: str = "#212529"


class ExportOptions(BaseModel):
    """Presentation options shared by all serializers (each uses what applies)."""

    title: str | None = Field(None, description="Document title; defaults to the report name")
    include_metadata: bool = True
    include_table: bool = True
    include_charts: bool = False
    page_orientation: Literal["portrait", "landscape"] = "portrait"
    paper_size: Literal["a4", "letter", "legal"] = "a4"
    margins: Margins = Field(default_factory=Margins)
    font_size: int = 10
    table_style: Literal["striped", "plain"] = "striped"
    watermark: str | None = None
    colors: ExportColors = Field(default_factory=ExportColors)


@dataclass
class ExportArtifact:
    """Serialized report: bytes, mime type and a suggested filename."""
    content: bytes
    mime_type: str
    filename: str
    warnings: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.content)


def cell_text(value: Any) -> str:
    """Render a cell for a document; null cells become empty strings."""
    return to_text(value)


def format_timestamp(moment: datetime.datetime) -> str:
    return moment.strftime("%d/%m/%Y %H:%M")


def resolve_generated_at(generated_at: datetime.datetime | None) -> datetime.datetime:
    return generated_at or datetime.datetime.now()


def build_filename(report_name: str, fmt: str, timestamp: datetime.datetime | None = None) -> str:
    """``slug(report_name)-YYYY-MM-DD-HH-mm-ss.ext`` (``xlsx`` for excel)."""
    moment = timestamp or datetime.datetime.now()
    ext = "xlsx" if fmt == "excel" else fmt
    return f"{slugify(report_name)}-{moment:%Y-%m-%d}-{moment:%H-%M-%S}.{ext}"
