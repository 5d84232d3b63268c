# app/utils/time_utils.py
"""Parsing and timezone helpers shared by the availability and booking code"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class TimeWindow:
    """A same-day [start, end) window in vendor-local wall-clock time"""
    start: time
    end: time

    @property
    def start_minute(self) -> int:
        return minute_of_day(self.start)

    @property
    def end_minute(self) -> int:
        return minute_of_day(self.end)

    def fits(self, start_minute: int, duration_minutes: int) -> bool:
        return self.start_minute <= start_minute and start_minute + duration_minutes <= self.end_minute


def minute_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minute(minute: int) -> time:
    return time(minute // 60, minute % 60)


def parse_hhmm(value) -> Optional[time]:
    """Parse a 24-hour HH:MM string, returning None for anything else"""
    if not isinstance(value, str):
        return None
    match = HHMM_PATTERN.match(value.strip())
    if not match:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def sunday_based_weekday(day: date) -> int:
    """0=Sunday ... 6=Saturday, the convention used by worker availability rows"""
    return (day.weekday() + 1) % 7


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are already UTC (e.g. read back from SQLite)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_zone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def localize(day: date, at: time, zone: ZoneInfo) -> datetime:
    """Vendor-local date + wall-clock time -> aware UTC timestamp"""
    return datetime.combine(day, at, tzinfo=zone).astimezone(timezone.utc)


def to_local(value: datetime, zone: ZoneInfo) -> datetime:
    return as_utc(value).astimezone(zone)


def day_bounds_utc(day: date, zone: ZoneInfo):
    """UTC [start, end) of a vendor-local calendar day"""
    start = localize(day, time(0, 0), zone)
    end = localize(day + timedelta(days=1), time(0, 0), zone)
    return start, end
