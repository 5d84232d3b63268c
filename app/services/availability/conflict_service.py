# app/services/availability/conflict_service.py
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.appointment import Appointment, ACTIVE_STATUSES
from app.utils.time_utils import as_utc


class ConflictService:
    """Half-open interval overlap checks against a worker's active appointments"""

    @staticmethod
    def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
        return as_utc(start_a) < as_utc(end_b) and as_utc(end_a) > as_utc(start_b)

    @staticmethod
    def is_worker_available(
            db: Session,
            worker_id: UUID,
            vendor_id: UUID,
            start: datetime,
            end: datetime,
            exclude_appointment_id: Optional[UUID] = None
    ) -> bool:
        """True when the worker has no PENDING/CONFIRMED appointment overlapping [start, end)"""
        query = db.query(Appointment).filter(
            Appointment.worker_id == worker_id,
            Appointment.vendor_id == vendor_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_time < as_utc(end),
            Appointment.end_time > as_utc(start)
        )

        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        return query.count() == 0

    @staticmethod
    def active_appointments_between(
            db: Session,
            vendor_id: UUID,
            worker_ids: List[UUID],
            start: datetime,
            end: datetime
    ) -> List[Appointment]:
        """Active appointments of the given workers touching [start, end), for bulk slot checks"""
        if not worker_ids:
            return []

        return db.query(Appointment).filter(
            Appointment.vendor_id == vendor_id,
            Appointment.worker_id.in_(worker_ids),
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_time < as_utc(end),
            Appointment.end_time > as_utc(start)
        ).all()
