"""
Typed errors raised by the report engine.

Every error carries a short machine-readable ``code`` so the HTTP layer (or
any other caller) can map it to a presentation without parsing messages.
"""
from __future__ import annotations


class ReportEngineError(Exception):
    """Base class for all report engine failures."""

    code = "REPORT_ENGINE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class DefinitionError(ReportEngineError):
    """The definition references unknown fields or has inconsistent shapes."""

    code = "INVALID_DEFINITION"

    def __init__(self, errors: list[str], definition_id: str | None = None):
        self.errors = list(errors)
        self.definition_id = definition_id
        prefix = f"Report definition '{definition_id}' is invalid" if definition_id else "Report definition is invalid"
        super().__init__(f"{prefix}: " + "; ".join(self.errors))


class SourceError(ReportEngineError):
    """The row source failed while fetching rows for an execution."""

    code = "SOURCE_FAILED"

    def __init__(self, message: str, data_source: str, definition_id: str | None = None):
        self.data_source = data_source
        self.definition_id = definition_id
        super().__init__(
            f"Row fetch failed for data source '{data_source}' "
            f"(definition '{definition_id}'): {message}"
        )


class SerializationError(ReportEngineError):
    """An export serializer met data it cannot represent."""

    code = "SERIALIZATION_FAILED"

    def __init__(self, message: str, fmt: str, chart: str | None = None):
        self.fmt = fmt
        self.chart = chart
        super().__init__(message)


class ScheduleConfigError(ReportEngineError):
    """A schedule is missing a field its frequency requires (or is malformed)."""

    code = "INVALID_SCHEDULE"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid schedule: " + "; ".join(self.errors))
