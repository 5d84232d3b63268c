# app/schemas/vendor.py
"""Typed operating hours, validated at the write boundary"""
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from app.utils.time_utils import WEEKDAY_NAMES, parse_hhmm

HHMM_REGEX = r"^([01]\d|2[0-3]):([0-5]\d)$"


class DayHours(BaseModel):
    open: Optional[str] = Field(None, pattern=HHMM_REGEX, description="Opening time, HH:MM")
    close: Optional[str] = Field(None, pattern=HHMM_REGEX, description="Closing time, HH:MM")
    is_closed: bool = Field(False, validation_alias=AliasChoices("is_closed", "isClosed"))

    @model_validator(mode="after")
    def check_window(self):
        if self.is_closed:
            return self
        if self.open is None or self.close is None:
            raise ValueError("open and close are required unless is_closed is true")
        if parse_hhmm(self.open) >= parse_hhmm(self.close):
            raise ValueError("open must be before close")
        return self


class OperatingHours(BaseModel):
    """One optional entry per weekday; a missing weekday means closed"""
    monday: Optional[DayHours] = None
    tuesday: Optional[DayHours] = None
    wednesday: Optional[DayHours] = None
    thursday: Optional[DayHours] = None
    friday: Optional[DayHours] = None
    saturday: Optional[DayHours] = None
    sunday: Optional[DayHours] = None

    def to_storage(self) -> Dict[str, dict]:
        stored = {}
        for day_name in WEEKDAY_NAMES:
            entry = getattr(self, day_name)
            stored[day_name] = (
                entry.model_dump() if entry is not None
                else {"open": None, "close": None, "is_closed": True}
            )
        return stored
