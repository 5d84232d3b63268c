"""Appointment maintenance tasks"""
import logging
import time
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.models.task_log import TaskLog
from app.models.user import UserRole
from app.services.appointment.lifecycle import AppointmentLifecycle
from app.services.auth.access_policy import ActorContext
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

# Scheduled jobs act across every vendor
SYSTEM_ACTOR = ActorContext(user_id=UUID(int=0), role=UserRole.SUPER_ADMIN)


def run_logged(db: Session, task_name: str, task_id: Optional[str], work: Callable[[Session], dict]) -> dict:
    """Run ``work`` and record a TaskLog row for the run, success or failure"""
    started_at = utc_now()
    started = time.time()
    log = TaskLog(task_name=task_name, task_id=task_id, started_at=started_at)

    try:
        result = work(db)
        log.status = "success"
        log.result = result
        return result
    except Exception as exc:
        db.rollback()
        log.status = "failure"
        log.error_message = str(exc)
        raise
    finally:
        log.completed_at = utc_now()
        log.execution_time_ms = int((time.time() - started) * 1000)
        db.add(log)
        db.commit()


@celery_app.task(bind=True, max_retries=3)
def complete_past_appointments(self, now: Optional[str] = None):
    """
    Periodic sweep: persist COMPLETED for CONFIRMED appointments whose end has passed

    Args:
        now: ISO timestamp to sweep up to (defaults to the current time)
    """
    try:
        db = SessionLocal()
        try:
            cutoff = datetime.fromisoformat(now) if now else None
            return run_logged(
                db,
                "complete_past_appointments",
                self.request.id,
                lambda session: {"completed": AppointmentLifecycle.complete_past_appointments(session, cutoff)}
            )
        finally:
            db.close()

    except Exception as exc:
        logger.error(f"Completion sweep failed: {exc}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(bind=True, max_retries=3)
def cleanup_closed_appointments(self, vendor_id: Optional[str] = None):
    """
    Delete rejected, cancelled and no-show appointments, and completed ones past retention

    Args:
        vendor_id: Limit to one vendor (all vendors when omitted)
    """
    try:
        db = SessionLocal()
        try:
            return run_logged(
                db,
                "cleanup_closed_appointments",
                self.request.id,
                lambda session: AppointmentLifecycle.cleanup(
                    session, SYSTEM_ACTOR, vendor_id=UUID(vendor_id) if vendor_id else None
                )
            )
        finally:
            db.close()

    except Exception as exc:
        logger.error(f"Appointment cleanup failed: {exc}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
