"""
CSV serializer: header line, then one line per result row (no row cap).
"""
from __future__ import annotations

import csv
import datetime
import io

from src.core.logging import get_logger
from src.exporters.base import MIME_CSV, ExportArtifact, ExportOptions, build_filename, cell_text, resolve_generated_at
from src.reports.definition import ReportData, ReportDefinition

logger = get_logger(__name__)


def serialize(
    data: ReportData,
    definition: ReportDefinition,
    options: ExportOptions | None = None,
    generated_at: datetime.datetime | None = None,
) -> ExportArtifact:
    """Write *data* as RFC 4180 CSV with ``\\n`` line endings."""
    moment = resolve_generated_at(generated_at)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(data.headers)
    for row in data.rows:
        writer.writerow([cell_text(v) for v in row])

    content = buf.getvalue().encode("utf-8")
    logger.info("CSV export %s | rows=%d | bytes=%d", definition.id, len(data.rows), len(content))
    return ExportArtifact(
        content=content,
        mime_type=MIME_CSV,
        filename=build_filename(definition.name, "csv", moment),
    )
