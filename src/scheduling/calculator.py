"""
Next-run calculation for recurring reports.

A candidate is built at ``now``'s local date (schedule timezone) with the
configured hour and minute, then moved forward per frequency:

  daily      candidate <= now  -> +1 day
  weekly     advance (target - current + 7) % 7 days; still <= now -> +1 week
  monthly    set day-of-month; <= now -> +1 month
  quarterly  set day-of-month; <= now -> +3 months

Day-of-month never rolls over: 31 in a 30-day month (or February) is clamped
to the month's last day.  ``relativedelta`` re-applies the configured day after
every month shift, so a clamped run does not drift (Jan 31 -> Feb 29 -> Mar 31).
"""
from __future__ import annotations

import datetime
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from src.core.logging import get_logger
from src.reports.errors import ScheduleConfigError
from src.scheduling.models import ScheduleConfig, ScheduledReport

logger = get_logger(__name__)

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

MONTH_STEPS = {"monthly": 1, "quarterly": 3}


def parse_time(text: str | None) -> tuple[int, int] | None:
    """``"HH:mm"`` -> ``(hour, minute)``; ``None`` when malformed."""
    match = _TIME_RE.match((text or "").strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def resolve_zone(name: str | None) -> ZoneInfo | None:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return None


def localize(now: datetime.datetime | None, zone: ZoneInfo) -> datetime.datetime:
    """Express *now* in *zone*; a naive value is taken as wall time in *zone*."""
    if now is None:
        return datetime.datetime.now(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def _dow(moment: datetime.datetime) -> int:
    """Day of week with 0=Sunday."""
    return moment.isoweekday() % 7


def compute_next_run(
    frequency: str,
    config: ScheduleConfig,
    now: datetime.datetime | None = None,
) -> datetime.datetime:
    """Return the next execution instant (timezone-aware, schedule timezone).

    Raises
    ------
    ScheduleConfigError
        If the time, timezone or the frequency-required field is missing
        or invalid.
    """
    errors: list[str] = []
    hm = parse_time(config.time)
    if hm is None:
        errors.append(f"Invalid time '{config.time}', expected HH:mm.")
    zone = resolve_zone(config.timezone)
    if zone is None:
        errors.append(f"Unknown timezone '{config.timezone}'.")
    if frequency == "weekly" and config.day_of_week is None:
        errors.append("Weekly schedules require day_of_week.")
    if frequency in MONTH_STEPS and config.day_of_month is None:
        errors.append(f"{frequency.capitalize()} schedules require day_of_month.")
    if frequency not in ("daily", "weekly", *MONTH_STEPS):
        errors.append(f"Unknown frequency '{frequency}'.")
    if errors:
        raise ScheduleConfigError(errors)

    hour, minute = hm
    local_now = localize(now, zone)
    at_time = dict(hour=hour, minute=minute, second=0, microsecond=0)

    if frequency == "daily":
        candidate = local_now + relativedelta(**at_time)
        if candidate <= local_now:
            candidate += relativedelta(days=1)
    elif frequency == "weekly":
        candidate = local_now + relativedelta(**at_time)
        candidate += relativedelta(days=(config.day_of_week - _dow(candidate) + 7) % 7)
        if candidate <= local_now:
            candidate += relativedelta(weeks=1)
    else:
        dom = config.day_of_month
        candidate = local_now + relativedelta(day=dom, **at_time)
        if candidate <= local_now:
            candidate = local_now + relativedelta(months=MONTH_STEPS[frequency], day=dom, **at_time)

    logger.debug("Next run | %s %s | now=%s -> %s", frequency, config.time, local_now.isoformat(), candidate.isoformat())
    return candidate


def next_run(schedule: ScheduledReport, now: datetime.datetime | None = None) -> datetime.datetime:
    return compute_next_run(schedule.frequency, schedule.schedule_config, now)
