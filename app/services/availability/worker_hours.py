# app/services/availability/worker_hours.py
"""A worker's effective working window on a date (override first, then weekly rule)"""
import logging
from datetime import date
from typing import Iterable, Optional

from app.models.worker import WorkerAvailability, WorkerScheduleOverride
from app.utils.time_utils import TimeWindow, parse_hhmm, sunday_based_weekday

logger = logging.getLogger(__name__)


def _window(start: Optional[str], end: Optional[str], source: str) -> Optional[TimeWindow]:
    start_time = parse_hhmm(start)
    end_time = parse_hhmm(end)
    if start_time is None or end_time is None or start_time >= end_time:
        logger.warning(f"Ignoring malformed {source} window {start!r}-{end!r}")
        return None
    return TimeWindow(start=start_time, end=end_time)


def resolve_worker_window(
        availabilities: Iterable[WorkerAvailability],
        overrides: Iterable[WorkerScheduleOverride],
        day: date
) -> Optional[TimeWindow]:
    """Return the worker's window for ``day`` or None if unavailable all day"""
    override = next((o for o in overrides if o.date == day), None)

    if override is not None:
        if override.is_day_off:
            return None
        return _window(override.start_time, override.end_time, f"override {day.isoformat()}")

    day_of_week = sunday_based_weekday(day)
    rule = next((r for r in availabilities if r.day_of_week == day_of_week), None)

    if rule is None or not rule.is_available:
        return None

    return _window(rule.start_time, rule.end_time, f"weekly rule day {day_of_week}")
