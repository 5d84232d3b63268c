"""
Pydantic schemas for worker schedule updates
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.vendor import HHMM_REGEX


class AvailabilityRuleSchema(BaseModel):
    """Weekly working hours for one weekday (0=Sunday ... 6=Saturday)"""
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = Field(..., pattern=HHMM_REGEX, description="HH:MM")
    end_time: str = Field(..., pattern=HHMM_REGEX, description="HH:MM")
    is_available: bool = True


class ScheduleOverrideSchema(BaseModel):
    """Exception for a single date: a day off or special hours"""
    date: date
    is_day_off: bool = False
    start_time: Optional[str] = Field(None, pattern=HHMM_REGEX)
    end_time: Optional[str] = Field(None, pattern=HHMM_REGEX)
    notes: Optional[str] = Field(None, max_length=500)


class WorkerScheduleUpdateRequest(BaseModel):
    """
    Replace-all schedule update.
    Omit a collection to leave it untouched; send an empty list to clear it.
    """
    availabilities: Optional[List[AvailabilityRuleSchema]] = None
    overrides: Optional[List[ScheduleOverrideSchema]] = None
