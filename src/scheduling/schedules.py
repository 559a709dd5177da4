"""
Schedule lifecycle: validation at creation time, status, advancing after a
run and human-readable descriptions.
"""
from __future__ import annotations

import datetime
from enum import Enum

from src.core.logging import get_logger
from src.reports.errors import ScheduleConfigError
from src.scheduling.calculator import MONTH_STEPS, localize, next_run, parse_time, resolve_zone
from src.scheduling.models import ScheduledReport

logger = get_logger(__name__)

EXPORT_FORMATS = ("pdf", "excel", "csv")
DAY_NAMES = ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"]


class ScheduleStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    OVERDUE = "overdue"


def validate_schedule(schedule: ScheduledReport) -> list[str]:
    """Return every reason *schedule* cannot be created (empty list = valid)."""
    errors: list[str] = []
    config = schedule.schedule_config

    if not schedule.name.strip():
        errors.append("Schedule name is required.")
    if not schedule.report_definition_id.strip():
        errors.append("A report definition must be selected.")

    if not config.time:
        errors.append("Execution time is required.")
    elif parse_time(config.time) is None:
        errors.append(f"Invalid time '{config.time}', expected HH:mm.")
    if resolve_zone(config.timezone) is None:
        errors.append(f"Unknown timezone '{config.timezone}'.")

    if schedule.frequency == "weekly":
        if config.day_of_week is None:
            errors.append("day_of_week is required for weekly schedules.")
        elif not 0 <= config.day_of_week <= 6:
            errors.append(f"day_of_week must be 0 (Sunday) to 6 (Saturday), got {config.day_of_week}.")
    if schedule.frequency in MONTH_STEPS:
        if config.day_of_month is None:
            errors.append("day_of_month is required for monthly/quarterly schedules.")
        elif not 1 <= config.day_of_month <= 31:
            errors.append(f"day_of_month must be between 1 and 31, got {config.day_of_month}.")

    if not schedule.recipients:
        errors.append("At least one recipient is required.")
    if not schedule.export_formats:
        errors.append("At least one export format is required.")
    for fmt in schedule.export_formats:
        if fmt not in EXPORT_FORMATS:
            errors.append(f"Unsupported export format '{fmt}'. Allowed: {', '.join(EXPORT_FORMATS)}")

    return errors


def create_schedule(schedule: ScheduledReport, now: datetime.datetime | None = None) -> ScheduledReport:
    """Validate *schedule* and return a copy with its derived ``next_run``.

    Raises
    ------
    ScheduleConfigError
        If ``validate_schedule`` reports any problem.
    """
    errors = validate_schedule(schedule)
    if errors:
        logger.info("Rejected schedule '%s': %s", schedule.id, "; ".join(errors))
        raise ScheduleConfigError(errors)
    created = schedule.model_copy(update={"next_run": next_run(schedule, now)})
    logger.info("Created schedule '%s' (%s) | next_run=%s", created.id, created.frequency, created.next_run.isoformat())
    return created


def advance_schedule(schedule: ScheduledReport, ran_at: datetime.datetime) -> ScheduledReport:
    """Record a run at *ran_at* and derive the following ``next_run``."""
    zone = resolve_zone(schedule.schedule_config.timezone)
    if zone is None:
        raise ScheduleConfigError([f"Unknown timezone '{schedule.schedule_config.timezone}'."])
    ran_local = localize(ran_at, zone)
    return schedule.model_copy(update={"last_run": ran_local, "next_run": next_run(schedule, ran_local)})


def schedule_status(schedule: ScheduledReport, now: datetime.datetime | None = None) -> ScheduleStatus:
    """``paused`` if inactive, ``overdue`` if the stored next run has passed, else ``active``."""
    if not schedule.is_active:
        return ScheduleStatus.PAUSED
    zone = resolve_zone(schedule.schedule_config.timezone)
    if zone is None:
        raise ScheduleConfigError([f"Unknown timezone '{schedule.schedule_config.timezone}'."])
    local_now = localize(now, zone)
    upcoming = localize(schedule.next_run, zone) if schedule.next_run else next_run(schedule, local_now)
    return ScheduleStatus.OVERDUE if upcoming < local_now else ScheduleStatus.ACTIVE


def describe_frequency(schedule: ScheduledReport) -> str:
    """Spanish description shown next to a schedule, e.g. ``Diariamente a las 09:00``."""
    config = schedule.schedule_config
    time = config.time or "--:--"
    if schedule.frequency == "daily":
        return f"Diariamente a las {time}"
    if schedule.frequency == "weekly":
        valid = config.day_of_week is not None and 0 <= config.day_of_week <= 6
        day_name = DAY_NAMES[config.day_of_week] if valid else "día no definido"
        return f"Semanalmente los {day_name} a las {time}"
    day = config.day_of_month or "--"
    if schedule.frequency == "monthly":
        return f"Mensualmente el día {day} a las {time}"
    return f"Trimestralmente el día {day} a las {time}"


def format_schedule_date(moment: datetime.datetime | None) -> str:
    if moment is None:
        return "No programado"
    return moment.strftime("%d/%m/%Y %H:%M")
