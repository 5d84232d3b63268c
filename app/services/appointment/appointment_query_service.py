# ============================================================================
# app/services/appointment/appointment_query_service.py
# Read views of appointments - no FastAPI dependencies, fully testable
# ============================================================================
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_, or_
from datetime import datetime, date, timedelta
from typing import Optional, Dict, Any
from uuid import UUID

from app.core.exceptions import AuthorizationError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from app.models.vendor import Vendor
from app.models.worker import Worker
from app.services.appointment.lifecycle import effective_status
from app.services.auth.access_policy import ActorContext, resolve_managed_vendor
from app.utils.time_utils import as_utc, day_bounds_utc, get_zone, to_local, utc_now


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


class AppointmentQueryService:
    """Service layer for appointment listings; every view reports the effective status."""

    @staticmethod
    def parse_status(status: Optional[str]) -> Optional[AppointmentStatus]:
        if status is None:
            return None
        try:
            return AppointmentStatus(status.upper())
        except ValueError:
            raise ValidationError(
                f"Unknown appointment status '{status}'",
                code="invalid_status",
                allowed=[s.value for s in AppointmentStatus]
            )

    @staticmethod
    def _status_filter(status: AppointmentStatus, now: datetime):
        """Filter on effective status: a CONFIRMED appointment that has ended counts as COMPLETED"""
        if status == AppointmentStatus.COMPLETED:
            return or_(
                Appointment.status == AppointmentStatus.COMPLETED,
                and_(Appointment.status == AppointmentStatus.CONFIRMED, Appointment.end_time <= now)
            )
        if status == AppointmentStatus.CONFIRMED:
            return and_(Appointment.status == AppointmentStatus.CONFIRMED, Appointment.end_time > now)
        return Appointment.status == status

    @staticmethod
    def list_appointments(
            db: Session,
            actor: ActorContext,
            vendor_id: Optional[UUID] = None,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            worker_id: Optional[UUID] = None,
            skip: int = 0,
            limit: int = 50,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Dashboard list: paginated appointments of the managed vendor(s) with filters."""
        scope = resolve_managed_vendor(actor, vendor_id)
        status_value = AppointmentQueryService.parse_status(status)
        current = as_utc(now or utc_now())

        query = db.query(Appointment).options(
            joinedload(Appointment.customer),
            joinedload(Appointment.service),
            joinedload(Appointment.worker)
        )

        zone = get_zone(None)
        if scope is not None:
            query = query.filter(Appointment.vendor_id == scope)
            vendor = db.query(Vendor).filter(Vendor.id == scope).first()
            if vendor:
                zone = get_zone(vendor.timezone)

        # Date filters are calendar days in the vendor's timezone (UTC across vendors)
        if start_date:
            query = query.filter(Appointment.start_time >= day_bounds_utc(start_date, zone)[0])
        if end_date:
            query = query.filter(Appointment.start_time < day_bounds_utc(end_date, zone)[1])
        if status_value:
            query = query.filter(AppointmentQueryService._status_filter(status_value, current))
        if worker_id:
            query = query.filter(Appointment.worker_id == worker_id)

        total = query.count()
        appointments = query.order_by(Appointment.start_time.asc(), Appointment.id.asc()) \
            .offset(skip).limit(limit).all()

        return {
            "vendor_id": str(scope) if scope else None,
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
                "status": status_value.value if status_value else None,
                "worker_id": str(worker_id) if worker_id else None
            },
            "appointments": [
                AppointmentQueryService.serialize_appointment(appt, current, detailed=True)
                for appt in appointments
            ]
        }

    @staticmethod
    def list_customer_appointments(
            db: Session,
            actor: ActorContext,
            upcoming_only: bool = False,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """The calling customer's own appointments, newest first."""
        current = as_utc(now or utc_now())
        query = db.query(Appointment).options(
            joinedload(Appointment.vendor),
            joinedload(Appointment.service),
            joinedload(Appointment.worker)
        ).filter(Appointment.user_id == actor.user_id)

        if upcoming_only:
            query = query.filter(
                Appointment.status.in_(ACTIVE_STATUSES),
                Appointment.end_time > current
            )

        appointments = query.order_by(Appointment.start_time.desc()).all()
        return {
            "total_appointments": len(appointments),
            "appointments": [
                AppointmentQueryService.serialize_appointment(appt, current) for appt in appointments
            ]
        }

    @staticmethod
    def get_worker_schedule(
            db: Session,
            actor: ActorContext,
            start_date: Optional[date] = None,
            days: int = 7,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Active appointments assigned to the calling worker over the coming days."""
        if actor.worker_id is None:
            raise AuthorizationError("Worker profile required")
        if days < 1 or days > 31:
            raise ValidationError("days must be between 1 and 31", code="invalid_range")

        current = as_utc(now or utc_now())
        appointment_rows = db.query(Appointment).options(
            joinedload(Appointment.customer),
            joinedload(Appointment.service),
            joinedload(Appointment.vendor)
        ).filter(
            Appointment.worker_id == actor.worker_id,
            Appointment.status.in_(ACTIVE_STATUSES)
        )

        vendor = db.query(Vendor).join(Worker, Worker.vendor_id == Vendor.id) \
            .filter(Worker.id == actor.worker_id).first()
        zone = get_zone(vendor.timezone if vendor else None)
        first_day = start_date or to_local(current, zone).date()
        period_start = day_bounds_utc(first_day, zone)[0]
        period_end = day_bounds_utc(first_day + timedelta(days=days - 1), zone)[1]

        appointments = appointment_rows.filter(
            Appointment.start_time >= period_start,
            Appointment.start_time < period_end,
            Appointment.end_time > current
        ).order_by(Appointment.start_time.asc()).all()

        return {
            "worker_id": str(actor.worker_id),
            "period": {
                "start": first_day.isoformat(),
                "end": (first_day + timedelta(days=days - 1)).isoformat()
            },
            "total_appointments": len(appointments),
            "appointments": [
                AppointmentQueryService.serialize_appointment(appt, current, detailed=True)
                for appt in appointments
            ]
        }

    @staticmethod
    def serialize_appointment(
            appointment: Appointment,
            now: Optional[datetime] = None,
            detailed: bool = False
    ) -> Dict[str, Any]:
        """Convert Appointment model to dictionary."""
        start = as_utc(appointment.start_time)
        end = as_utc(appointment.end_time)
        base = {
            "id": str(appointment.id),
            "vendor_id": str(appointment.vendor_id),
            "vendor_name": appointment.vendor.name if appointment.vendor else None,
            "service_id": str(appointment.service_id),
            "service_name": appointment.service.name if appointment.service else None,
            "worker_id": str(appointment.worker_id) if appointment.worker_id else None,
            "worker_name": appointment.worker.name if appointment.worker else None,
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
            "duration_minutes": int((end - start).total_seconds() // 60),
            "status": effective_status(appointment, now).value,
            "booking_source": appointment.booking_source,
            "notes": appointment.notes,
            "created_at": _isoformat(appointment.created_at),
        }

        if detailed:
            customer = appointment.customer
            base.update({
                "customer_id": str(appointment.user_id),
                "customer_name": customer.full_name if customer else None,
                "customer_email": customer.email if customer else None,
                "customer_phone": customer.phone_number if customer else None,
                "updated_at": _isoformat(appointment.updated_at),
                "cancelled_at": _isoformat(appointment.cancelled_at),
            })

        return base
