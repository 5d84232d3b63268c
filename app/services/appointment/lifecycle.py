# app/services/appointment/lifecycle.py
"""
Appointment lifecycle.

    PENDING   -> CONFIRMED            approve (auto-assigns a worker if none)
    PENDING   -> REJECTED             reject
    CONFIRMED -> CANCELLED_BY_VENDOR  cancel_by_vendor
    PENDING | CONFIRMED -> CANCELLED_BY_USER   cancel_by_user
    CONFIRMED -> COMPLETED            once end_time has passed
    any (but NO_SHOW) -> NO_SHOW      mark_no_show

Every status write is an UPDATE conditioned on the status the caller saw, so
two admins acting on the same appointment cannot both win.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import AppError, ConflictError, NotFoundError, slot_conflict
from app.models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from app.models.worker import Worker
from app.services.appointment.booking_lock import worker_lock
from app.services.appointment.booking_service import BookingService, local_span, worker_fits
from app.services.auth.access_policy import (
    ActorContext, ensure_can_manage_vendor, ensure_owns_appointment, resolve_managed_vendor,
)
from app.services.availability.conflict_service import ConflictService
from app.services.notification.notification_service import NotificationService
from app.services.vendor.vendor_service import VendorService
from app.utils.time_utils import as_utc, get_zone, utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

CLEANABLE_STATUSES = (
    AppointmentStatus.REJECTED,
    AppointmentStatus.CANCELLED_BY_USER,
    AppointmentStatus.CANCELLED_BY_VENDOR,
    AppointmentStatus.NO_SHOW,
)


def effective_status(appointment: Appointment, now: Optional[datetime] = None) -> AppointmentStatus:
    """Stored status, with a CONFIRMED appointment whose end has passed reported as COMPLETED"""
    if (
            appointment.status == AppointmentStatus.CONFIRMED
            and as_utc(appointment.end_time) <= as_utc(now or utc_now())
    ):
        return AppointmentStatus.COMPLETED
    return appointment.status


class AppointmentLifecycle:
    """Status transitions of appointments"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found", code="appointment_not_found")
        return appointment

    @staticmethod
    def get_managed_appointment(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            now: Optional[datetime] = None
    ) -> Appointment:
        """Appointment the actor may manage, with any overdue completion already applied"""
        appointment = AppointmentLifecycle.get_appointment(db, appointment_id)
        ensure_can_manage_vendor(actor, appointment.vendor_id)
        AppointmentLifecycle._settle_completion(db, appointment, now)
        return appointment

    @staticmethod
    def _invalid_transition(db: Session, appointment_id: UUID, requested: AppointmentStatus) -> ConflictError:
        current = db.query(Appointment.status).filter(Appointment.id == appointment_id).scalar()
        current_value = current.value if current is not None else "DELETED"
        return ConflictError(
            f"Cannot change appointment from {current_value} to {requested.value}",
            code="invalid_transition",
            current_status=current_value,
            requested_status=requested.value
        )

    @staticmethod
    def _require_status(db: Session, appointment: Appointment, allowed, requested: AppointmentStatus):
        if appointment.status not in allowed:
            raise AppointmentLifecycle._invalid_transition(db, appointment.id, requested)

    @staticmethod
    def _conditional_write(
            db: Session,
            appointment: Appointment,
            expected: AppointmentStatus,
            values: Dict
    ) -> int:
        """UPDATE ... WHERE id = :id AND status = :expected; caller commits"""
        values = dict(values)
        values["updated_at"] = utc_now()
        return db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.status == expected
        ).update(values, synchronize_session=False)

    @staticmethod
    def _transition(
            db: Session,
            appointment: Appointment,
            expected: AppointmentStatus,
            target: AppointmentStatus,
            extra: Optional[Dict] = None
    ) -> Appointment:
        values = {"status": target}
        if extra:
            values.update(extra)

        try:
            updated = AppointmentLifecycle._conditional_write(db, appointment, expected, values)
            if updated == 0:
                db.rollback()
                raise AppointmentLifecycle._invalid_transition(db, appointment.id, target)
            db.commit()
        except AppError:
            raise
        except Exception:
            db.rollback()
            raise

        db.refresh(appointment)
        logger.info(f"Appointment {appointment.id}: {expected.value} -> {target.value}")
        return appointment

    @staticmethod
    def _settle_completion(db: Session, appointment: Appointment, now: Optional[datetime] = None):
        """Persist CONFIRMED -> COMPLETED for an appointment that has already ended"""
        if appointment.status != AppointmentStatus.CONFIRMED or \
                effective_status(appointment, now) != AppointmentStatus.COMPLETED:
            return
        updated = AppointmentLifecycle._conditional_write(
            db, appointment, AppointmentStatus.CONFIRMED, {"status": AppointmentStatus.COMPLETED}
        )
        db.commit()
        db.refresh(appointment)
        if updated:
            logger.info(f"Appointment {appointment.id} completed on access")

    @staticmethod
    def _reason_notes(appointment: Appointment, label: str, reason: Optional[str]) -> Dict:
        if not reason or not reason.strip():
            return {}
        entry = f"[{label}] {reason.strip()}"
        notes = f"{appointment.notes}\n{entry}" if appointment.notes else entry
        return {"notes": notes}

    # ------------------------------------------------------------------
    # Approval and worker assignment
    # ------------------------------------------------------------------

    @staticmethod
    def _write_with_worker(
            db: Session,
            appointment: Appointment,
            worker_id: UUID,
            expected: AppointmentStatus,
            values: Dict
    ) -> bool:
        """
        Conditional write that also (re)places the appointment on ``worker_id``.
        Runs under the worker's booking lock; False when the worker is taken.
        """
        start, end = appointment.start_time, appointment.end_time
        appointment_id, vendor_id = appointment.id, appointment.vendor_id

        with worker_lock(worker_id):
            try:
                db.query(Worker).filter(Worker.id == worker_id).with_for_update().first()

                if not ConflictService.is_worker_available(
                        db, worker_id, vendor_id, start, end, exclude_appointment_id=appointment_id
                ):
                    db.rollback()
                    return False

                values = dict(values)
                values["worker_id"] = worker_id
                updated = AppointmentLifecycle._conditional_write(db, appointment, expected, values)
                if updated == 0:
                    db.rollback()
                    raise AppointmentLifecycle._invalid_transition(
                        db, appointment_id, values.get("status", expected)
                    )
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Store rejected placing appointment {appointment_id} on worker {worker_id}: {e.orig}")
                return False
            except AppError:
                raise
            except Exception:
                db.rollback()
                raise

        db.refresh(appointment)
        return True

    @staticmethod
    def approve(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            now: Optional[datetime] = None
    ) -> Appointment:
        """PENDING -> CONFIRMED, assigning the first free qualified worker when none is set"""
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        AppointmentLifecycle._require_status(
            db, appointment, (AppointmentStatus.PENDING,), AppointmentStatus.CONFIRMED
        )

        values = {"status": AppointmentStatus.CONFIRMED}
        day, start_minute = local_span(appointment.start_time, get_zone(appointment.vendor.timezone))
        duration = int((as_utc(appointment.end_time) - as_utc(appointment.start_time)).total_seconds() // 60)

        if appointment.worker_id is not None:
            worker = appointment.worker
            if not worker_fits(worker, day, start_minute, duration) or not AppointmentLifecycle._write_with_worker(
                    db, appointment, worker.id, AppointmentStatus.PENDING, values
            ):
                raise slot_conflict(
                    "The assigned worker is no longer available for this appointment",
                    code="worker_unavailable",
                    worker_id=str(worker.id)
                )
        else:
            candidates = [
                worker.id for worker in VendorService.get_qualified_workers(
                    db, appointment.vendor_id, appointment.service_id
                )
                if worker_fits(worker, day, start_minute, duration)
            ]
            if not any(
                    AppointmentLifecycle._write_with_worker(
                        db, appointment, worker_id, AppointmentStatus.PENDING, values
                    )
                    for worker_id in candidates
            ):
                raise slot_conflict(
                    "No qualified worker is available for this appointment",
                    code="no_worker_available"
                )

        logger.info(f"Approved appointment {appointment.id} with worker {appointment.worker_id}")
        NotificationService.notify_customer(appointment, "confirmed")
        return appointment

    @staticmethod
    def assign_worker(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            worker_id: Optional[UUID],
            now: Optional[datetime] = None
    ) -> Appointment:
        """Place an active appointment on another worker, or unassign a PENDING one"""
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        current = appointment.status

        if worker_id is None:
            if current != AppointmentStatus.PENDING:
                raise ConflictError(
                    f"A worker can only be unassigned while the appointment is PENDING, not {current.value}",
                    code="unassign_not_allowed",
                    current_status=current.value
                )
            updated = AppointmentLifecycle._conditional_write(
                db, appointment, AppointmentStatus.PENDING, {"worker_id": None}
            )
            if updated == 0:
                db.rollback()
                raise AppointmentLifecycle._invalid_transition(db, appointment.id, AppointmentStatus.PENDING)
            db.commit()
            db.refresh(appointment)
            logger.info(f"Unassigned worker from appointment {appointment.id}")
            return appointment

        if current not in ACTIVE_STATUSES:
            raise ConflictError(
                f"Cannot assign a worker to a {current.value} appointment",
                code="invalid_transition",
                current_status=current.value
            )

        worker = VendorService.get_qualified_worker(db, appointment.vendor_id, appointment.service_id, worker_id)
        day, start_minute = local_span(appointment.start_time, get_zone(appointment.vendor.timezone))
        duration = int((as_utc(appointment.end_time) - as_utc(appointment.start_time)).total_seconds() // 60)

        if not worker_fits(worker, day, start_minute, duration):
            raise slot_conflict(
                "The worker is not working at this appointment's time",
                code="worker_unavailable",
                worker_id=str(worker.id)
            )
        if not AppointmentLifecycle._write_with_worker(db, appointment, worker.id, current, {}):
            raise slot_conflict(
                "The worker already has an appointment at this time",
                code="worker_unavailable",
                worker_id=str(worker.id)
            )

        logger.info(f"Assigned worker {worker.id} to appointment {appointment.id}")
        return appointment

    # ------------------------------------------------------------------
    # Rejection and cancellation
    # ------------------------------------------------------------------

    @staticmethod
    def reject(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        AppointmentLifecycle._require_status(
            db, appointment, (AppointmentStatus.PENDING,), AppointmentStatus.REJECTED
        )
        AppointmentLifecycle._transition(
            db, appointment, AppointmentStatus.PENDING, AppointmentStatus.REJECTED,
            AppointmentLifecycle._reason_notes(appointment, "Rejection reason", reason)
        )
        NotificationService.notify_customer(appointment, "rejected", reason)
        return appointment

    @staticmethod
    def cancel_by_vendor(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        AppointmentLifecycle._require_status(
            db, appointment, (AppointmentStatus.CONFIRMED,), AppointmentStatus.CANCELLED_BY_VENDOR
        )
        extra = AppointmentLifecycle._reason_notes(appointment, "Cancellation reason", reason)
        extra["cancelled_at"] = utc_now()
        AppointmentLifecycle._transition(
            db, appointment, AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED_BY_VENDOR, extra
        )
        NotificationService.notify_customer(appointment, "cancelled_by_vendor", reason)
        return appointment

    @staticmethod
    def reject_or_cancel(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        """Dashboard "reject": rejects a PENDING appointment, cancels a CONFIRMED one"""
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        if appointment.status == AppointmentStatus.PENDING:
            return AppointmentLifecycle.reject(db, actor, appointment_id, reason, now)
        if appointment.status == AppointmentStatus.CONFIRMED:
            return AppointmentLifecycle.cancel_by_vendor(db, actor, appointment_id, reason, now)
        raise AppointmentLifecycle._invalid_transition(db, appointment.id, AppointmentStatus.REJECTED)

    @staticmethod
    def cancel_by_user(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Appointment:
        """Customer cancels their own PENDING/CONFIRMED appointment before the cancellation cutoff"""
        appointment = AppointmentLifecycle.get_appointment(db, appointment_id)
        ensure_owns_appointment(actor, appointment)
        AppointmentLifecycle._settle_completion(db, appointment, now)

        expected = appointment.status
        AppointmentLifecycle._require_status(db, appointment, ACTIVE_STATUSES, AppointmentStatus.CANCELLED_BY_USER)

        cutoff = as_utc(appointment.start_time) - timedelta(minutes=settings.CANCELLATION_LEAD_MINUTES)
        if as_utc(now or utc_now()) > cutoff:
            raise ConflictError(
                f"Appointments can only be cancelled up to {settings.CANCELLATION_LEAD_MINUTES} "
                "minutes before they start",
                code="cancellation_window_passed",
                current_status=expected.value
            )

        extra = AppointmentLifecycle._reason_notes(appointment, "Customer cancellation", reason)
        extra["cancelled_at"] = utc_now()
        AppointmentLifecycle._transition(db, appointment, expected, AppointmentStatus.CANCELLED_BY_USER, extra)
        NotificationService.notify_vendor_owner(appointment, "cancelled_by_user")
        return appointment

    @staticmethod
    def mark_no_show(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            now: Optional[datetime] = None
    ) -> Appointment:
        """Administrative override; NO_SHOW is terminal"""
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        if appointment.status == AppointmentStatus.NO_SHOW:
            raise AppointmentLifecycle._invalid_transition(db, appointment.id, AppointmentStatus.NO_SHOW)
        return AppointmentLifecycle._transition(
            db, appointment, appointment.status, AppointmentStatus.NO_SHOW
        )

    # ------------------------------------------------------------------
    # Duration, completion and bulk operations
    # ------------------------------------------------------------------

    @staticmethod
    def update_duration(
            db: Session,
            actor: ActorContext,
            appointment_id: UUID,
            duration_minutes: int,
            now: Optional[datetime] = None
    ) -> Appointment:
        appointment = AppointmentLifecycle.get_managed_appointment(db, actor, appointment_id, now)
        return BookingService.update_duration(db, appointment, duration_minutes)

    @staticmethod
    def complete_past_appointments(db: Session, now: Optional[datetime] = None) -> int:
        """Persist COMPLETED for every CONFIRMED appointment that has ended"""
        current = as_utc(now or utc_now())
        completed = db.query(Appointment).filter(
            Appointment.status == AppointmentStatus.CONFIRMED,
            Appointment.end_time <= current
        ).update(
            {"status": AppointmentStatus.COMPLETED, "updated_at": current},
            synchronize_session=False
        )
        db.commit()

        if completed:
            logger.info(f"Marked {completed} past appointments as COMPLETED")
        return completed

    @staticmethod
    def bulk_approve(
            db: Session,
            actor: ActorContext,
            vendor_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Dict:
        """Approve every PENDING appointment in scope through the single-approval path"""
        scope = resolve_managed_vendor(actor, vendor_id)

        query = db.query(Appointment.id).filter(Appointment.status == AppointmentStatus.PENDING)
        if scope is not None:
            query = query.filter(Appointment.vendor_id == scope)
        pending_ids: List[UUID] = [row[0] for row in query.order_by(Appointment.start_time.asc()).all()]

        approved, failed = [], []
        for appointment_id in pending_ids:
            try:
                AppointmentLifecycle.approve(db, actor, appointment_id, now)
                approved.append(str(appointment_id))
            except AppError as e:
                db.rollback()
                logger.warning(f"Bulk approve skipped appointment {appointment_id}: {e.code}")
                failed.append({"id": str(appointment_id), "code": e.code, "detail": e.message})

        logger.info(f"Bulk approve: {len(approved)} approved, {len(failed)} failed")
        return {"approved": approved, "failed": failed}

    @staticmethod
    def cleanup(
            db: Session,
            actor: ActorContext,
            vendor_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Dict:
        """Delete closed-out appointments; COMPLETED ones only after the retention period"""
        scope = resolve_managed_vendor(actor, vendor_id)
        current = as_utc(now or utc_now())
        AppointmentLifecycle.complete_past_appointments(db, current)

        retention_cutoff = current - timedelta(days=settings.CLEANUP_RETENTION_DAYS)
        query = db.query(Appointment).filter(
            or_(
                Appointment.status.in_(CLEANABLE_STATUSES),
                (Appointment.status == AppointmentStatus.COMPLETED) & (Appointment.end_time < retention_cutoff)
            )
        )
        if scope is not None:
            query = query.filter(Appointment.vendor_id == scope)

        try:
            deleted = query.delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Cleanup removed {deleted} appointments (vendor scope: {scope or 'all'})")
        return {
            "deleted": deleted,
            "vendor_id": str(scope) if scope else None,
            "retention_days": settings.CLEANUP_RETENTION_DAYS,
        }

