"""
Schedule Gate.

Decides whether a flow may start a new conversation right now, based on its
weekly operating windows. Windows whose end is earlier than their start span
midnight: they open on the listed day at `start` and close on the next day
at `end`.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..domain.models import OperatingWindow, Schedule

logger = logging.getLogger(__name__)


def parse_schedule(raw: Any) -> Optional[Schedule]:
    """
    Leniently converts stored schedule JSON.

    Windows without days, start or end are dropped. `enabled` defaults to
    True when at least one window survives.
    """
    if not isinstance(raw, Mapping):
        return None

    tz_name = raw.get("timezone") if isinstance(raw.get("timezone"), str) else ""
    raw_windows = raw.get("windows") if isinstance(raw.get("windows"), list) else []

    windows: List[OperatingWindow] = []
    for entry in raw_windows:
        if not isinstance(entry, Mapping):
            continue
        days = entry.get("days") if isinstance(entry.get("days"), list) else []
        days = tuple(
            day for day in days if isinstance(day, int) and not isinstance(day, bool)
        )
        start = entry.get("start") if isinstance(entry.get("start"), str) else ""
        end = entry.get("end") if isinstance(entry.get("end"), str) else ""
        if not days or not start or not end:
            continue
        windows.append(OperatingWindow(days=days, start=start, end=end))

    enabled = raw.get("enabled")
    fallback = raw.get("fallbackMessage")
    return Schedule(
        timezone=tz_name or "UTC",
        windows=tuple(windows),
        enabled=enabled if isinstance(enabled, bool) else len(raw_windows) > 0,
        fallback_message=fallback if isinstance(fallback, str) and fallback else None,
    )


def to_minutes(value: str) -> int:
    """Converts "HH:MM" to minutes since midnight. Unparsable parts count as 0."""
    hour, _, minute = value.partition(":")
    try:
        hours = int(hour)
    except ValueError:
        hours = 0
    try:
        minutes = int(minute)
    except ValueError:
        minutes = 0
    return hours * 60 + minutes


def _resolve_zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown schedule timezone '{name}', falling back to UTC")
        return timezone.utc


def _window_contains(window: OperatingWindow, weekday: int, minute: int) -> bool:
    start = to_minutes(window.start)
    end = to_minutes(window.end)

    if start <= end:
        return weekday in window.days and start <= minute <= end

    # Crosses midnight: evening part belongs to the listed day,
    # early-morning part to the day after it.
    if weekday in window.days and minute >= start:
        return True
    previous_day = (weekday - 1) % 7
    return previous_day in window.days and minute <= end


def is_open(schedule: Optional[Schedule], now: Optional[datetime] = None) -> bool:
    """
    Returns True when the flow is inside its operating hours.

    A missing or disabled schedule, or one without windows, is always open.
    Naive datetimes are taken as UTC.
    """
    if schedule is None or not schedule.enabled or not schedule.windows:
        return True

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(_resolve_zone(schedule.timezone))
    # isoweekday: Monday=1 .. Sunday=7  ->  Sunday=0 .. Saturday=6
    weekday = local.isoweekday() % 7
    minute = local.hour * 60 + local.minute

    return any(_window_contains(window, weekday, minute) for window in schedule.windows)
