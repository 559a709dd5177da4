"""Report endpoints -- validate, execute, export and execution history."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from src.api.deps import get_catalog, get_row_source
from src.api.errors import to_http
from src.catalog.loader import Catalog
from src.core.logging import get_logger
from src.db.execution_log import recent_executions
from src.exporters.base import ExportOptions
from src.reports.charts import project_charts
from src.reports.definition import ReportData, ReportDefinition, ReportField
from src.reports.errors import ReportEngineError
from src.reports.service import execute_report, run_report
from src.reports.sources import RowSource
from src.reports.validator import validate_definition

logger = get_logger(__name__)
router = APIRouter()



class DefinitionRequest(BaseModel):
    definition: ReportDefinition


class ValidateResponse(BaseModel):
    definition_id: str
    errors: list[str]
    is_valid: bool


class ExecuteResponse(BaseModel):
    data: ReportData
    charts: list[dict[str, Any]]


class ExportRequest(BaseModel):
    definition: ReportDefinition
    format: str = Field(..., description="pdf | excel | csv")
    options: ExportOptions = Field(default_factory=ExportOptions)


def _available_fields(catalog: Catalog, key: str) -> list[ReportField]:
    try:
        return catalog.fields_for(key)
    except KeyError:
        raise HTTPException(status_code=422, detail=f"Unknown data source '{key}'. Allowed: {', '.join(catalog.keys())}")



@router.post("/validate", response_model=ValidateResponse)
def validate_endpoint(req: DefinitionRequest, catalog: Catalog = Depends(get_catalog)):
    """Dry-run: check the definition against its data source's fields."""
    fields = _available_fields(catalog, req.definition.data_source)
    errors = validate_definition(req.definition, fields)
    return ValidateResponse(definition_id=req.definition.id, errors=errors, is_valid=not errors)


@router.post("/execute", response_model=ExecuteResponse)
def execute_endpoint(
    req: DefinitionRequest,
    catalog: Catalog = Depends(get_catalog),
    source: RowSource = Depends(get_row_source),
):
    """Execute the definition and return the result table plus chart series."""
    fields = _available_fields(catalog, req.definition.data_source)
    try:
        data = execute_report(req.definition, source, fields)
        charts = project_charts(data, req.definition)
    except ReportEngineError as exc:
        raise to_http(exc)
    return ExecuteResponse(data=data, charts=[c.to_dict() for c in charts])


@router.post("/export")
def export_endpoint(
    req: ExportRequest,
    catalog: Catalog = Depends(get_catalog),
    source: RowSource = Depends(get_row_source),
):
    """Execute the definition and return the serialized file."""
    fields = _available_fields(catalog, req.definition.data_source)
    try:
        _, artifact = run_report(req.definition, source, req.format, req.options, fields)
    except ReportEngineError as exc:
        raise to_http(exc)
    headers = {
        "Content-Disposition": f'attachment; filename="{artifact.filename}"',
        "X-Export-Warnings": str(len(artifact.warnings)),
    }
    return Response(content=artifact.content, media_type=artifact.mime_type, headers=headers)


@router.get("/executions")
def executions_endpoint(limit: int = 50):
    """Return the latest executions, newest first."""
    try:
        rows = recent_executions(limit=max(1, min(limit, 500)))
    except SQLAlchemyError as exc:
        logger.exception("Execution history unavailable")
        raise HTTPException(status_code=503, detail=str(exc))
    return {"executions": rows}
