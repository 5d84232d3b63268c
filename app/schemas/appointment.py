"""
Pydantic schemas for appointment requests
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentCreateRequest(BaseModel):
    """
    Customer booking request.
    A start_time without an offset is read as the salon's local time.
    """
    vendor_id: UUID
    service_id: UUID
    start_time: datetime
    worker_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=1000)


class ManualBookingRequest(AppointmentCreateRequest):
    """Dashboard booking on behalf of an existing customer"""
    customer_id: UUID


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class AssignWorkerRequest(BaseModel):
    worker_id: Optional[UUID] = Field(None, description="null unassigns a PENDING appointment")


class DurationUpdateRequest(BaseModel):
    duration_minutes: int = Field(..., gt=0, le=720)


class VendorScopeRequest(BaseModel):
    """Bulk operations; super admins may omit vendor_id to act on every vendor"""
    vendor_id: Optional[UUID] = None
