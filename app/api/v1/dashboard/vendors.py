# ============================================================================
# app/api/v1/dashboard/vendors.py
# Salon configuration: operating hours and worker schedules
# ============================================================================
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.dependencies import require_vendor_staff
from app.config.database import get_db
from app.schemas.schedule import WorkerScheduleUpdateRequest
from app.schemas.vendor import OperatingHours
from app.services.auth.access_policy import ActorContext
from app.services.vendor.vendor_service import VendorService
from app.services.worker.schedule_service import ScheduleService

router = APIRouter(prefix="/vendors", tags=["dashboard-vendors"])


@router.put("/{vendor_id}/operating-hours")
def update_operating_hours(
        hours: OperatingHours,
        vendor_id: UUID = Path(..., description="The vendor ID"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Replace the weekly opening hours; a weekday left out is closed"""
    vendor = VendorService.update_operating_hours(db, actor, vendor_id, hours)
    return {"vendor_id": str(vendor.id), "operating_hours": vendor.operating_hours}


@router.put("/{vendor_id}/workers/{worker_id}/schedule")
def update_worker_schedule(
        request: WorkerScheduleUpdateRequest,
        vendor_id: UUID = Path(..., description="The vendor ID"),
        worker_id: UUID = Path(..., description="The worker ID"),
        actor: ActorContext = Depends(require_vendor_staff),
        db: Session = Depends(get_db)
):
    """Replace a worker's weekly availability and/or date overrides"""
    return ScheduleService.update_worker_schedule(
        db,
        actor,
        vendor_id,
        worker_id,
        availabilities=request.availabilities,
        overrides=request.overrides
    )
