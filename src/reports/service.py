"""
Report service -- orchestrates one execution end-to-end.

  validate definition -> fetch rows -> transform -> (export) -> history

Errors are logged and re-raised as typed engine errors; the history write is
fire-and-forget.
"""
from __future__ import annotations

import datetime
from typing import Any, Iterable

from src.core.config import get_settings
from src.core.logging import get_logger
from src.core.utils import timer
from src.db.execution_log import log_execution
from src.exporters.base import ExportArtifact, ExportOptions
from src.exporters.registry import export_report
from src.reports.definition import ReportData, ReportDefinition, ReportField
from src.reports.errors import DefinitionError, ReportEngineError, SourceError
from src.reports.sources import AsyncRowSource, RowSource, build_source_params
from src.reports.transform import run_transform
from src.reports.validator import validate_definition

logger = get_logger(__name__)


def _record(
    definition: ReportDefinition,
    status: str,
    data: ReportData | None = None,
    latency_ms: float | None = None,
    error: str | None = None,
    fmt: str | None = None,
) -> None:
    if not get_settings().execution_log_enabled:
        return
    log_execution(
        definition_id=definition.id,
        report_name=definition.name,
        data_source=definition.data_source,
        status=status,
        row_count=len(data.rows) if data else None,
        total_rows=data.total_rows if data else None,
        latency_ms=latency_ms,
        error=error,
        fmt=fmt,
    )


def _check(definition: ReportDefinition, available_fields: list[ReportField] | None) -> None:
    errors = validate_definition(definition, available_fields)
    if errors:
        logger.info("Definition %s rejected: %s", definition.id, "; ".join(errors))
        _record(definition, "failed", error="; ".join(errors))
        raise DefinitionError(errors, definition.id)


def _source_failed(definition: ReportDefinition, exc: Exception) -> SourceError:
    logger.exception("Row source failed for %s (data source '%s')", definition.id, definition.data_source)
    _record(definition, "failed", error=str(exc))
    return SourceError(str(exc), definition.data_source, definition.id)


def _transform(
    rows: list[dict[str, Any]],
    definition: ReportDefinition,
    available_fields: list[ReportField] | None,
) -> ReportData:
    try:
        data = run_transform(rows, definition, available_fields)
    except DefinitionError as exc:
        logger.info("Definition %s failed during transform: %s", definition.id, "; ".join(exc.errors))
        _record(definition, "failed", error="; ".join(exc.errors))
        raise
    logger.info(
        "Executed %s | fetched=%d | total_rows=%d | returned=%d",
        definition.id, len(rows), data.total_rows, len(data.rows),
    )
    return data


def execute_report(
    definition: ReportDefinition,
    source: RowSource,
    available_fields: Iterable[ReportField] | None = None,
) -> ReportData:
    """Validate *definition*, fetch its rows from *source* and transform them.

    Raises
    ------
    DefinitionError
        Before any row is fetched, if the definition is invalid.
    SourceError
        If the row source fails (the original error is chained).
    """
    fields = list(available_fields) if available_fields is not None else None
    _check(definition, fields)
    logger.info("Executing report %s on '%s'", definition.id, definition.data_source)

    with timer() as elapsed:
        try:
            rows = source.fetch_rows(definition.data_source, build_source_params(definition))
        except Exception as exc:
            raise _source_failed(definition, exc) from exc
        data = _transform(rows, definition, fields)

    _record(definition, "completed", data, latency_ms=elapsed["elapsed_ms"])
    return data


async def execute_report_async(
    definition: ReportDefinition,
    source: AsyncRowSource,
    available_fields: Iterable[ReportField] | None = None,
) -> ReportData:
    """Same as ``execute_report``; awaiting the row fetch is the only suspension point."""
    fields = list(available_fields) if available_fields is not None else None
    _check(definition, fields)
    logger.info("Executing report %s on '%s' (async)", definition.id, definition.data_source)

    with timer() as elapsed:
        try:
            rows = await source.fetch_rows(definition.data_source, build_source_params(definition))
        except Exception as exc:
            raise _source_failed(definition, exc) from exc
        data = _transform(rows, definition, fields)

    _record(definition, "completed", data, latency_ms=elapsed["elapsed_ms"])
    return data


def run_report(
    definition: ReportDefinition,
    source: RowSource,
    fmt: str,
    options: ExportOptions | None = None,
    available_fields: Iterable[ReportField] | None = None,
    generated_at: datetime.datetime | None = None,
) -> tuple[ReportData, ExportArtifact]:
    """Execute *definition* and serialize the result (what a scheduled trigger runs)."""
    data = execute_report(definition, source, available_fields)
    with timer() as elapsed:
        try:
            artifact = export_report(fmt, data, definition, options, generated_at)
        except ReportEngineError as exc:
            logger.warning("Export of %s as %s failed: %s", definition.id, fmt, exc)
            _record(definition, "failed", data, error=str(exc), fmt=fmt)
            raise
    logger.info("Exported %s as %s | %s | %d bytes", definition.id, fmt, artifact.filename, artifact.size)
    _record(definition, "completed", data, latency_ms=elapsed["elapsed_ms"], fmt=fmt)
    return data, artifact
