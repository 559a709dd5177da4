"""
Pydantic models for scheduled reports.

Field constraints are checked by ``validate_schedule`` (which reports every
problem at once) rather than by the models themselves.
"""
from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Frequency = Literal["daily", "weekly", "monthly", "quarterly"]


class ScheduleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="Local time of day, HH:mm")
    day_of_week: int | None = Field(None, description="0=Sunday .. 6=Saturday (weekly)")
    day_of_month: int | None = Field(None, description="1..31 (monthly / quarterly)")
    timezone: str = Field("UTC", description="IANA timezone name")


class ScheduledReport(BaseModel):
    """A recurring execution of a stored report definition.

    ``next_run`` is only ever set by the scheduling operations.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    report_definition_id: str
    name: str
    description: str | None = None
    frequency: Frequency
    schedule_config: ScheduleConfig
    recipients: list[str] = Field(default_factory=list)
    export_formats: list[str] = Field(default_factory=list)
    is_active: bool = True
    last_run: datetime.datetime | None = None
    next_run: datetime.datetime | None = None
    created_by: str | None = None
