# ============================================================================
# app/services/appointment/booking_service.py
# ============================================================================
"""Service for creating appointments atomically"""
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from zoneinfo import ZoneInfo

from app.config.settings import get_settings
from app.core.exceptions import ValidationError, slot_conflict
from app.models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from app.models.vendor import Vendor
from app.models.worker import Worker
from app.services.appointment.booking_lock import worker_lock
from app.services.auth.access_policy import ActorContext, ensure_can_manage_vendor
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.conflict_service import ConflictService
from app.services.availability.operating_hours import resolve_operating_hours
from app.services.availability.worker_hours import resolve_worker_window
from app.services.notification.notification_service import NotificationService
from app.services.vendor.vendor_service import VendorService
from app.utils.time_utils import as_utc, get_zone, minute_of_day, to_local

logger = logging.getLogger(__name__)
settings = get_settings()


def local_span(start: datetime, zone: ZoneInfo) -> Tuple[date, int]:
    """Vendor-local calendar day and minute-of-day of a UTC start"""
    local_start = to_local(start, zone)
    return local_start.date(), minute_of_day(local_start.time())


def worker_fits(worker: Worker, day: date, start_minute: int, duration_minutes: int) -> bool:
    window = resolve_worker_window(worker.availabilities, worker.schedule_overrides, day)
    return window is not None and window.fits(start_minute, duration_minutes)


def within_operating_hours(vendor: Vendor, day: date, start_minute: int, duration_minutes: int) -> bool:
    window = resolve_operating_hours(vendor.operating_hours, day, vendor_id=str(vendor.id))
    return window is not None and window.fits(start_minute, duration_minutes)


class BookingService:
    """Handles appointment creation"""

    @staticmethod
    def normalize_start(start_time: datetime, zone: ZoneInfo) -> datetime:
        """Naive input is vendor-local wall-clock time; result is aware UTC"""
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=zone)
        return as_utc(start_time)

    @staticmethod
    def create_appointment(
            db: Session,
            customer_id: UUID,
            vendor_id: UUID,
            service_id: UUID,
            start_time: datetime,
            worker_id: Optional[UUID] = None,
            notes: Optional[str] = None,
            booking_source: str = "web",
            now: Optional[datetime] = None
    ) -> Appointment:
        """
        Create a PENDING appointment after checking, in order: vendor, service,
        lead time, operating hours, worker qualification, worker window and
        conflicts. The conflict check and insert run under the worker's booking
        lock with the worker row locked, so two concurrent requests can never
        both take the same worker's time.
        """
        vendor = VendorService.get_bookable_vendor(db, vendor_id)
        service = VendorService.get_bookable_service(db, vendor.id, service_id)

        zone = get_zone(vendor.timezone)
        start = BookingService.normalize_start(start_time, zone)
        end = start + timedelta(minutes=service.duration)

        earliest = AvailabilityService.earliest_bookable_start(now)
        if start < earliest:
            raise ValidationError(
                "Appointments must be booked at least "
                f"{settings.MIN_BOOKING_LEAD_MINUTES} minutes in advance",
                code="insufficient_lead_time",
                earliest_start=earliest.isoformat()
            )

        day, start_minute = local_span(start, zone)
        if not within_operating_hours(vendor, day, start_minute, service.duration):
            raise slot_conflict(
                "Requested time is outside the salon's operating hours",
                code="outside_operating_hours"
            )

        if worker_id is not None:
            worker = VendorService.get_qualified_worker(db, vendor.id, service.id, worker_id)
            if not worker_fits(worker, day, start_minute, service.duration):
                raise slot_conflict(
                    "The selected worker is not working at the requested time",
                    code="worker_unavailable",
                    worker_id=str(worker.id)
                )
            candidates = [worker]
        else:
            candidates = [
                worker for worker in VendorService.get_qualified_workers(db, vendor.id, service.id)
                if worker_fits(worker, day, start_minute, service.duration)
            ]

        candidate_ids = [worker.id for worker in candidates]
        for candidate_id in candidate_ids:
            appointment = BookingService._book_worker(
                db,
                worker_id=candidate_id,
                customer_id=customer_id,
                vendor_id=vendor.id,
                service_id=service.id,
                start=start,
                end=end,
                notes=notes,
                booking_source=booking_source
            )
            if appointment is not None:
                break
        else:
            if worker_id is not None:
                raise slot_conflict(
                    "The selected worker is already booked at the requested time",
                    code="worker_unavailable",
                    worker_id=str(worker_id)
                )
            raise slot_conflict(
                "No worker is available at the requested time",
                code="no_worker_available"
            )

        logger.info(
            f"Created appointment {appointment.id} for customer {customer_id} "
            f"with worker {appointment.worker_id} at {appointment.start_time} ({booking_source})"
        )

        NotificationService.notify_customer(appointment, "created")
        NotificationService.notify_vendor_owner(appointment, "created")

        return appointment

    @staticmethod
    def _book_worker(
            db: Session,
            worker_id: UUID,
            customer_id: UUID,
            vendor_id: UUID,
            service_id: UUID,
            start: datetime,
            end: datetime,
            notes: Optional[str],
            booking_source: str
    ) -> Optional[Appointment]:
        """Check-then-insert for one worker; None when the worker turned out to be taken"""
        with worker_lock(worker_id):
            try:
                # Row lock serializes with other API processes on PostgreSQL
                db.query(Worker).filter(Worker.id == worker_id).with_for_update().first()

                if not ConflictService.is_worker_available(db, worker_id, vendor_id, start, end):
                    db.rollback()
                    logger.info(f"Worker {worker_id} already booked between {start} and {end}")
                    return None

                appointment = Appointment(
                    user_id=customer_id,
                    vendor_id=vendor_id,
                    service_id=service_id,
                    worker_id=worker_id,
                    start_time=start,
                    end_time=end,
                    notes=notes.strip() if notes and notes.strip() else None,
                    status=AppointmentStatus.PENDING,
                    booking_source=booking_source,
                )
                db.add(appointment)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Store rejected overlapping booking for worker {worker_id}: {e.orig}")
                return None
            except Exception:
                db.rollback()
                raise

        db.refresh(appointment)
        return appointment

    @staticmethod
    def create_for_customer(
            db: Session,
            actor: ActorContext,
            customer_id: UUID,
            vendor_id: UUID,
            service_id: UUID,
            start_time: datetime,
            worker_id: Optional[UUID] = None,
            notes: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        """Manual booking from the dashboard on behalf of a customer"""
        ensure_can_manage_vendor(actor, vendor_id)
        return BookingService.create_appointment(
            db,
            customer_id=customer_id,
            vendor_id=vendor_id,
            service_id=service_id,
            start_time=start_time,
            worker_id=worker_id,
            notes=notes,
            booking_source="admin",
            now=now
        )

    @staticmethod
    def update_duration(
            db: Session,
            appointment: Appointment,
            duration_minutes: int
    ) -> Appointment:
        """Change an active appointment's length; the new interval is re-validated"""
        if duration_minutes <= 0:
            raise ValidationError("Duration must be positive", code="invalid_duration")
        if appointment.status not in ACTIVE_STATUSES:
            raise slot_conflict(
                f"Cannot change duration of a {appointment.status.value} appointment",
                code="invalid_transition",
                current_status=appointment.status.value
            )

        vendor = appointment.vendor
        zone = get_zone(vendor.timezone)
        start = as_utc(appointment.start_time)
        end = start + timedelta(minutes=duration_minutes)

        day, start_minute = local_span(start, zone)
        if not within_operating_hours(vendor, day, start_minute, duration_minutes):
            raise slot_conflict(
                "New duration runs outside the salon's operating hours",
                code="outside_operating_hours"
            )

        if appointment.worker_id is None:
            return BookingService._write_interval(db, appointment, start, end)

        worker = appointment.worker
        if not worker_fits(worker, day, start_minute, duration_minutes):
            raise slot_conflict(
                "New duration runs outside the worker's hours",
                code="worker_unavailable",
                worker_id=str(worker.id)
            )

        worker_id = worker.id
        with worker_lock(worker_id):
            try:
                db.query(Worker).filter(Worker.id == worker_id).with_for_update().first()
                if not ConflictService.is_worker_available(
                        db, worker_id, appointment.vendor_id, start, end, exclude_appointment_id=appointment.id
                ):
                    db.rollback()
                    raise slot_conflict(
                        "New duration overlaps another appointment of this worker",
                        code="worker_unavailable",
                        worker_id=str(worker_id)
                    )
                return BookingService._write_interval(db, appointment, start, end)
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Store rejected duration change of appointment {appointment.id}: {e.orig}")
                raise slot_conflict(
                    "New duration overlaps another appointment of this worker",
                    code="worker_unavailable",
                    worker_id=str(worker_id)
                )

    @staticmethod
    def _write_interval(db: Session, appointment: Appointment, start: datetime, end: datetime) -> Appointment:
        appointment.start_time = start
        appointment.end_time = end
        db.commit()
        db.refresh(appointment)
        logger.info(f"Updated appointment {appointment.id} interval to {start} - {end}")
        return appointment

