"""
ReportDefinition -- the user-authored configuration of a report, plus the
ReportData result shape produced by an execution.

Definitions are frozen: the engine only ever reads them.  The ``with_*`` /
``without_*`` helpers return edited copies for callers building definitions.
"""
from __future__ import annotations

import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.config import get_settings

FieldType = Literal["text", "number", "date", "boolean", "currency"]
FilterOperator = Literal[
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "starts_with",
    "ends_with",
    "greater_than",
    "less_than",
    "between",
    "in",
    "not_in",
    "is_null",
    "is_not_null",
]
AggregationFunction = Literal["sum", "avg", "count", "min", "max", "median", "distinct_count"]
DateBucket = Literal["day", "week", "month", "year"]
SortDirection = Literal["asc", "desc"]

NUMERIC_TYPES = frozenset({"number", "currency"})
ORDERABLE_TYPES = frozenset({"number", "currency", "date"})
LIST_OPERATORS = frozenset({"between", "in", "not_in"})
NULL_OPERATORS = frozenset({"is_null", "is_not_null"})
NUMERIC_FUNCTIONS = frozenset({"sum", "avg", "min", "max", "median"})

# Legacy spellings still found in stored definitions
_OPERATOR_ALIASES = {
    "notEquals": "not_equals",
    "notContains": "not_contains",
    "startsWith": "starts_with",
    "endsWith": "ends_with",
    "greaterThan": "greater_than",
    "lessThan": "less_than",
    "notIn": "not_in",
    "isNull": "is_null",
    "isNotNull": "is_not_null",
}


class ReportField(BaseModel):
    """A typed column of a data source."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Unique key within the data source")
    label: str
    type: FieldType = "text"
    format: str | None = None
    description: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _legacy_string_type(cls, value: Any) -> Any:
        return "text" if value == "string" else value


class ReportFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    field: str
    operator: FilterOperator
    value: Any = None
    values: list[Any] | None = None
    label: str | None = None

    @field_validator("operator", mode="before")
    @classmethod
    def _legacy_operator(cls, value: Any) -> Any:
        return _OPERATOR_ALIASES.get(value, value)


class GroupBy(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    label: str
    date_format: DateBucket | None = Field(None, description="Only meaningful for date fields")


class Aggregation(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    function: AggregationFunction
    label: str

    @property
    def column_key(self) -> str:
        """Key of the result column this aggregation produces."""
        return f"{self.function}_{self.field}"


class SortSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = "asc"


class ChartConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="bar | line | area | pie | scatter")
    title: str
    x_axis: str
    y_axis: list[str] = Field(default_factory=list)
    show_legend: bool = True
    show_grid: bool = True
    show_tooltip: bool = True
    height: int = 300


class ReportDefinition(BaseModel):
    """Everything needed to execute and present one report."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    type: str = "custom"
    data_source: str
    fields: list[ReportField] = Field(default_factory=list)
    filters: list[ReportFilter] = Field(default_factory=list)
    group_by: list[GroupBy] = Field(default_factory=list)
    aggregations: list[Aggregation] = Field(default_factory=list)
    sorting: list[SortSpec] = Field(default_factory=list)
    charts: list[ChartConfig] = Field(default_factory=list)
    default_date_range: str | None = None
    limit: int = Field(default_factory=lambda: get_settings().report_row_limit, ge=1)

    # ── Immutable edits ──────────────────────────────────

    def with_filter(self, report_filter: ReportFilter) -> ReportDefinition:
        return self.model_copy(update={"filters": [*self.filters, report_filter]})

    def without_filter(self, filter_id: str) -> ReportDefinition:
        return self.model_copy(update={"filters": [f for f in self.filters if f.id != filter_id]})

    def with_aggregation(self, aggregation: Aggregation) -> ReportDefinition:
        return self.model_copy(update={"aggregations": [*self.aggregations, aggregation]})

    def without_aggregation(self, index: int) -> ReportDefinition:
        kept = [a for i, a in enumerate(self.aggregations) if i != index]
        return self.model_copy(update={"aggregations": kept})

    def with_chart(self, chart: ChartConfig) -> ReportDefinition:
        return self.model_copy(update={"charts": [*self.charts, chart]})

    def without_chart(self, index: int) -> ReportDefinition:
        kept = [c for i, c in enumerate(self.charts) if i != index]
        return self.model_copy(update={"charts": kept})


class ReportMetadata(BaseModel):
    execution_time: float = Field(0.0, description="Milliseconds spent in the transform stage")
    generated_at: datetime.datetime
    filters: list[ReportFilter] = Field(default_factory=list)


class ReportData(BaseModel):
    """Result table of one execution."""

    headers: list[str]
    columns: list[str] = Field(default_factory=list, description="Column keys, parallel to headers")
    rows: list[list[Any]] = Field(default_factory=list)
    total_rows: int = 0
    aggregates: dict[str, Any] = Field(default_factory=dict)
    metadata: ReportMetadata

    def label_for(self, key: str) -> str | None:
        """Header label of the column with *key*, or ``None``."""
        for col_key, header in zip(self.columns, self.headers):
            if col_key == key:
                return header
        return None
