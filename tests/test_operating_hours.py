from datetime import time

import pytest
from pydantic import ValidationError as SchemaValidationError

from app.schemas.vendor import DayHours, OperatingHours
from app.services.availability.operating_hours import resolve_operating_hours

from conftest import DAY


def test_open_day_resolves_to_window():
    window = resolve_operating_hours({"monday": {"open": "09:00", "close": "17:00", "is_closed": False}}, DAY)

    assert window.start == time(9, 0)
    assert window.end == time(17, 0)
    assert window.fits(16 * 60 + 30, 30)
    assert not window.fits(16 * 60 + 31, 30)


@pytest.mark.parametrize("hours", [
    None,
    {},
    {"tuesday": {"open": "09:00", "close": "17:00"}},
    {"monday": {"open": "09:00", "close": "17:00", "is_closed": True}},
    {"monday": {"open": "09:00", "close": "17:00", "isClosed": True}},
    {"monday": {"open": "9am", "close": "17:00"}},
    {"monday": {"open": "17:00", "close": "09:00"}},
    {"monday": {"open": "09:00"}},
    {"monday": "09:00-17:00"},
    ["monday"],
])
def test_missing_or_malformed_entries_mean_closed(hours):
    assert resolve_operating_hours(hours, DAY) is None


def test_operating_hours_storage_marks_missing_days_closed():
    stored = OperatingHours(monday=DayHours(open="08:30", close="18:00")).to_storage()

    assert stored["monday"] == {"open": "08:30", "close": "18:00", "is_closed": False}
    assert stored["sunday"]["is_closed"] is True
    assert resolve_operating_hours(stored, DAY).start == time(8, 30)


def test_day_hours_rejects_inverted_window():
    with pytest.raises(SchemaValidationError):
        DayHours(open="18:00", close="08:00")


def test_day_hours_requires_times_unless_closed():
    with pytest.raises(SchemaValidationError):
        DayHours(open="09:00")

    assert DayHours(is_closed=True).is_closed


@pytest.mark.parametrize("flag", ["isClosed", "is_closed"])
def test_closed_flag_survives_the_write_path(flag):
    hours = OperatingHours.model_validate({"monday": {"open": "09:00", "close": "17:00", flag: True}})

    stored = hours.to_storage()

    assert stored["monday"]["is_closed"] is True
    assert resolve_operating_hours(stored, DAY) is None
