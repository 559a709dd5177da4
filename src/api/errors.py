"""
Typed engine errors -> HTTP errors.

  DefinitionError, ScheduleConfigError, SerializationError -> 422
  SourceError                                               -> 502
"""
from __future__ import annotations

from fastapi import HTTPException

from src.reports.errors import (
    DefinitionError,
    ReportEngineError,
    ScheduleConfigError,
    SerializationError,
    SourceError,
)


def to_http(exc: ReportEngineError) -> HTTPException:
    if isinstance(exc, (DefinitionError, ScheduleConfigError)):
        return HTTPException(status_code=422, detail={"code": exc.code, "errors": exc.errors})
    if isinstance(exc, SerializationError):
        return HTTPException(status_code=422, detail={"code": exc.code, "errors": [exc.message]})
    if isinstance(exc, SourceError):
        return HTTPException(status_code=502, detail={"code": exc.code, "errors": [exc.message]})
    return HTTPException(status_code=500, detail={"code": exc.code, "errors": [exc.message]})
