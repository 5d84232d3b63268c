# app/models/__init__.py
from .base import Base
from .user import User, UserRole
from .vendor import Vendor, VendorStatus
from .service import Service
from .worker import Worker, WorkerAvailability, WorkerScheduleOverride, worker_services
from .appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from .task_log import TaskLog

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Vendor",
    "VendorStatus",
    "Service",
    "Worker",
    "WorkerAvailability",
    "WorkerScheduleOverride",
    "worker_services",
    "Appointment",
    "AppointmentStatus",
    "ACTIVE_STATUSES",
    "TaskLog",
]
