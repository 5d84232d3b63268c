# app/services/availability/operating_hours.py
"""Vendor operating hours -> open/close window for a calendar date"""
import logging
from datetime import date
from typing import Any, Mapping, Optional

from app.utils.time_utils import TimeWindow, parse_hhmm, weekday_name

logger = logging.getLogger(__name__)


def resolve_operating_hours(
        operating_hours: Optional[Mapping[str, Any]],
        day: date,
        vendor_id: Optional[str] = None
) -> Optional[TimeWindow]:
    """
    Resolve the vendor's open window for ``day``.

    Returns None (closed) when the weekday is absent, flagged closed, or the
    stored times are missing, malformed or inverted. Stored data is never
    trusted to be well-formed: bad entries are logged and treated as closed.
    """
    if not operating_hours:
        return None

    if not isinstance(operating_hours, Mapping):
        logger.warning(f"Vendor {vendor_id}: operating hours are not a mapping, treating as closed")
        return None

    day_name = weekday_name(day)
    entry = operating_hours.get(day_name)
    if entry is None:
        return None

    if not isinstance(entry, Mapping):
        logger.warning(f"Vendor {vendor_id}: malformed operating hours for {day_name}: {entry!r}")
        return None

    # Older records used camelCase for the closed flag
    if entry.get("is_closed", entry.get("isClosed", False)):
        return None

    open_time = parse_hhmm(entry.get("open"))
    close_time = parse_hhmm(entry.get("close"))

    if open_time is None or close_time is None:
        logger.warning(
            f"Vendor {vendor_id}: unparseable operating hours for {day_name} "
            f"(open={entry.get('open')!r}, close={entry.get('close')!r}), treating as closed"
        )
        return None

    if open_time >= close_time:
        logger.warning(
            f"Vendor {vendor_id}: open {entry.get('open')} is not before close {entry.get('close')} "
            f"on {day_name}, treating as closed"
        )
        return None

    return TimeWindow(start=open_time, end=close_time)
