"""POST /schedules, POST /schedules/next-run -- schedule creation and preview."""
from __future__ import annotations

import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from src.api.errors import to_http
from src.reports.errors import ScheduleConfigError
from src.scheduling.calculator import compute_next_run
from src.scheduling.models import Frequency, ScheduleConfig, ScheduledReport
from src.scheduling.schedules import (
    ScheduleStatus,
    create_schedule,
    describe_frequency,
    format_schedule_date,
    schedule_status,
)

router = APIRouter()



class CreateScheduleRequest(BaseModel):
    schedule: ScheduledReport
    now: datetime.datetime | None = None


class ScheduleResponse(BaseModel):
    schedule: ScheduledReport
    status: ScheduleStatus
    description: str
    next_run_display: str


class NextRunRequest(BaseModel):
    frequency: Frequency
    schedule_config: ScheduleConfig
    now: datetime.datetime | None = None


class NextRunResponse(BaseModel):
    next_run: datetime.datetime
    timezone: str



@router.post("", response_model=ScheduleResponse)
def create_schedule_endpoint(req: CreateScheduleRequest):
    """Validate a schedule and derive its next run."""
    try:
        created = create_schedule(req.schedule, req.now)
    except ScheduleConfigError as exc:
        raise to_http(exc)
    return ScheduleResponse(
        schedule=created,
        status=schedule_status(created, req.now),
        description=describe_frequency(created),
        next_run_display=format_schedule_date(created.next_run),
    )


@router.post("/next-run", response_model=NextRunResponse)
def next_run_endpoint(req: NextRunRequest):
    """Preview the next execution instant for a recurrence rule."""
    try:
        moment = compute_next_run(req.frequency, req.schedule_config, req.now)
    except ScheduleConfigError as exc:
        raise to_http(exc)
    return NextRunResponse(next_run=moment, timezone=req.schedule_config.timezone)
