# ============================================================================
# app/api/v1/appointments.py
# Customer booking endpoints - JWT authenticated
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.api.dependencies import get_actor
from app.config.database import get_db
from app.core.exceptions import AppError
from app.schemas.appointment import AppointmentCreateRequest, ReasonRequest
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.appointment.booking_service import BookingService
from app.services.appointment.lifecycle import AppointmentLifecycle
from app.services.auth.access_policy import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_appointment(
        request: AppointmentCreateRequest,
        actor: ActorContext = Depends(get_actor),
        db: Session = Depends(get_db)
):
    """
    Book a service. Without worker_id the first free qualified worker is
    assigned. A 409 with retry_hint "refresh_slots" means the time was taken.
    """
    try:
        appointment = BookingService.create_appointment(
            db,
            customer_id=actor.user_id,
            vendor_id=request.vendor_id,
            service_id=request.service_id,
            start_time=request.start_time,
            worker_id=request.worker_id,
            notes=request.notes,
            booking_source="web"
        )
    except AppError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating appointment for user {actor.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create appointment")

    return AppointmentQueryService.serialize_appointment(appointment)


@router.get("/my")
def list_my_appointments(
        upcoming: bool = Query(False, description="Only PENDING/CONFIRMED appointments that have not ended"),
        actor: ActorContext = Depends(get_actor),
        db: Session = Depends(get_db)
):
    """The caller's own appointments"""
    return AppointmentQueryService.list_customer_appointments(db, actor, upcoming_only=upcoming)


@router.put("/{appointment_id}/cancel")
def cancel_my_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        request: Optional[ReasonRequest] = None,
        actor: ActorContext = Depends(get_actor),
        db: Session = Depends(get_db)
):
    """Cancel one of your own appointments before the cancellation cutoff"""
    appointment = AppointmentLifecycle.cancel_by_user(db, actor, appointment_id, reason=request.reason if request else None)
    return AppointmentQueryService.serialize_appointment(appointment)
