# ============================================================================
# app/api/v1/worker/schedule.py
# Worker self-service views
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from app.api.dependencies import require_worker
from app.config.database import get_db
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.auth.access_policy import ActorContext

router = APIRouter(prefix="/worker", tags=["worker"])


@router.get("/my-schedule")
def get_my_schedule(
        start_date: Optional[date] = Query(None, description="First day, defaults to today"),
        days: int = Query(7, ge=1, le=31),
        actor: ActorContext = Depends(require_worker),
        db: Session = Depends(get_db)
):
    """Your upcoming PENDING and CONFIRMED appointments"""
    return AppointmentQueryService.get_worker_schedule(db, actor, start_date=start_date, days=days)
