# ============================================================================
# app/api/v1/public/slots.py
# Public booking discovery - no authentication required
# ============================================================================
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from app.config.database import get_db
from app.core.exceptions import ValidationError
from app.services.availability.availability_service import AvailabilityService
from app.services.vendor.vendor_service import VendorService

router = APIRouter(prefix="/vendors", tags=["public-booking"])


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD", code="invalid_date")


@router.get("/{vendor_id}/services/{service_id}/slots")
def get_available_slots(
        vendor_id: UUID = Path(..., description="The vendor ID"),
        service_id: UUID = Path(..., description="The service ID"),
        day: str = Query(..., alias="date", description="Date in the salon's calendar, YYYY-MM-DD"),
        worker_id: Optional[UUID] = Query(None, description="Only slots where this worker is free"),
        db: Session = Depends(get_db)
):
    """
    Bookable start times for a service on a date, each with the workers free
    for the whole service duration.
    """
    return AvailabilityService.get_available_slots(
        db,
        vendor_id=vendor_id,
        service_id=service_id,
        day=parse_date(day),
        preferred_worker_id=worker_id
    )


@router.get("/{vendor_id}/services/{service_id}/workers")
def list_qualified_workers(
        vendor_id: UUID = Path(..., description="The vendor ID"),
        service_id: UUID = Path(..., description="The service ID"),
        db: Session = Depends(get_db)
):
    """Workers who perform this service, for the worker picker"""
    workers = VendorService.list_qualified_workers(db, vendor_id, service_id)
    return {"vendor_id": str(vendor_id), "service_id": str(service_id), "workers": workers}
