# app/schemas/__init__.py
from .vendor import (
    DayHours,
    OperatingHours
)

from .schedule import (
    AvailabilityRuleSchema,
    ScheduleOverrideSchema,
    WorkerScheduleUpdateRequest
)

from .appointment import (
    AppointmentCreateRequest,
    ManualBookingRequest,
    ReasonRequest,
    AssignWorkerRequest,
    DurationUpdateRequest,
    VendorScopeRequest
)

__all__ = [
    # Vendor configuration
    "DayHours",
    "OperatingHours",

    # Worker schedules
    "AvailabilityRuleSchema",
    "ScheduleOverrideSchema",
    "WorkerScheduleUpdateRequest",

    # Appointments
    "AppointmentCreateRequest",
    "ManualBookingRequest",
    "ReasonRequest",
    "AssignWorkerRequest",
    "DurationUpdateRequest",
    "VendorScopeRequest",
]
