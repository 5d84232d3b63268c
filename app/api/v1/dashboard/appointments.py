# ============================================================================
# FILE: app/api/v1/dashboard/appointments.py
# Vendor dashboard appointment management - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Query, Path, status
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID
import logging

from app.api.dependencies import require_vendor_staff
from app.config.database import get_db
from app.core.exceptions import AppError
from app.schemas.appointment import (
    AssignWorkerRequest, DurationUpdateRequest, ManualBookingRequest, ReasonRequest, VendorScopeRequest,
)
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.appointment.booking_service import BookingService
from app.services.appointment.lifecycle import AppointmentLifecycle
from app.services.auth.access_policy import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["dashboard-appointments"])


@router.get("")
def list_appointments(
        vendor_id: Optional[UUID] = Query(None, description="Vendor to list (super admin); owners see their own"),
        start_date: Optional[date] = Query(None, description="Appointments starting on or after this date"),
        end_date: Optional[date] = Query(None, description="Appointments starting on or before this date"),
        status: Optional[str] = Query(
            None,
            description="PENDING, CONFIRMED, REJECTED, CANCELLED_BY_USER, CANCELLED_BY_VENDOR, COMPLETED, NO_SHOW"
        ),
        worker_id: Optional[UUID] = Query(None, description="Filter by assigned worker"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """
    Appointments of your salon (or any salon, for super admins).
    Status is the effective status: CONFIRMED appointments that have ended show as COMPLETED.
    """
    return AppointmentQueryService.list_appointments(
        db,
        actor,
        vendor_id=vendor_id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        worker_id=worker_id,
        skip=skip,
        limit=limit
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_manual_booking(
        request: ManualBookingRequest,
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Book on behalf of a customer (phone or walk-in); same checks as customer booking"""
    try:
        appointment = BookingService.create_for_customer(
            db,
            actor,
            customer_id=request.customer_id,
            vendor_id=request.vendor_id,
            service_id=request.service_id,
            start_time=request.start_time,
            worker_id=request.worker_id,
            notes=request.notes
        )
    except AppError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating manual booking: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create appointment")

    return AppointmentQueryService.serialize_appointment(appointment, detailed=True)


@router.post("/bulk-approve")
def bulk_approve(
        request: VendorScopeRequest,
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Approve every PENDING appointment; failures are reported per appointment"""
    return AppointmentLifecycle.bulk_approve(db, actor, vendor_id=request.vendor_id)


@router.post("/bulk-cleanup")
def bulk_cleanup(
        request: VendorScopeRequest,
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Delete rejected, cancelled and no-show appointments, and completed ones past retention"""
    return AppointmentLifecycle.cleanup(db, actor, vendor_id=request.vendor_id)


@router.put("/{appointment_id}/approve")
def approve_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Confirm a PENDING appointment, assigning a worker if none is set"""
    appointment = AppointmentLifecycle.approve(db, actor, appointment_id)
    return AppointmentQueryService.serialize_appointment(appointment, detailed=True)


@router.put("/{appointment_id}/reject")
def reject_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        request: Optional[ReasonRequest] = None,
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Reject a PENDING appointment or cancel a CONFIRMED one"""
    appointment = AppointmentLifecycle.reject_or_cancel(
        db, actor, appointment_id, reason=request.reason if request else None
    )
    return AppointmentQueryService.serialize_appointment(appointment, detailed=True)


@router.put("/{appointment_id}/assign-worker")
def assign_worker(
        request: AssignWorkerRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Move an appointment to another qualified, free worker (null unassigns a PENDING one)"""
    appointment = AppointmentLifecycle.assign_worker(db, actor, appointment_id, request.worker_id)
    return AppointmentQueryService.serialize_appointment(appointment, detailed=True)


@router.put("/{appointment_id}/duration")
def update_duration(
        request: DurationUpdateRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    appointment = AppointmentLifecycle.update_duration(db, actor, appointment_id, request.duration_minutes)
    return AppointmentQueryService.serialize_appointment(appointment, detailed=True)


@router.put("/{appointment_id}/no-show")
def mark_no_show(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    appointment = AppointmentLifecycle.mark_no_show(db, actor, appointment_id)
    return AppointmentQueryService.serialize_appointment(appointment, detailed=True)
