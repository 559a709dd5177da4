"""
Format -> serializer dispatch.
"""
from __future__ import annotations

import datetime
from typing import Callable

from src.exporters import csv_export, excel, pdf
from src.exporters.base import ExportArtifact, ExportOptions
from src.reports.definition import ReportData, ReportDefinition
from src.reports.errors import SerializationError

Serializer = Callable[..., ExportArtifact]

SERIALIZERS: dict[str, Serializer] = {
    "pdf": pdf.serialize,
    "excel": excel.serialize,
    "csv": csv_export.serialize,
}


def export_report(
    fmt: str,
    data: ReportData,
    definition: ReportDefinition,
    options: ExportOptions | None = None,
    generated_at: datetime.datetime | None = None,
) -> ExportArtifact:
    """Serialize *data* with the serializer registered for *fmt*.

    Raises
    ------
    SerializationError
        If *fmt* has no serializer (e.g. ``image``) or serialization fails.
    """
    serializer = SERIALIZERS.get(fmt)
    if serializer is None:
        raise SerializationError(
            f"Unsupported export format '{fmt}'. Allowed: {', '.join(SERIALIZERS)}", fmt,
        )
    return serializer(data, definition, options, generated_at)
