# app/services/worker/schedule_service.py
"""Weekly availability and dated overrides of workers, written with replace-all semantics"""
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.worker import Worker, WorkerAvailability, WorkerScheduleOverride
from app.schemas.schedule import AvailabilityRuleSchema, ScheduleOverrideSchema
from app.services.auth.access_policy import ActorContext, ensure_can_manage_vendor
from app.services.vendor.vendor_service import VendorService
from app.utils.time_utils import parse_hhmm

logger = logging.getLogger(__name__)


def _check_window(start: Optional[str], end: Optional[str], label: str):
    start_at, end_at = parse_hhmm(start), parse_hhmm(end)
    if start_at is None or end_at is None:
        raise ValidationError(f"{label}: start_time and end_time must be HH:MM", code="invalid_time")
    if start_at >= end_at:
        raise ValidationError(f"{label}: start_time must be before end_time", code="invalid_time_range")


class ScheduleService:
    """Handles worker schedule configuration"""

    @staticmethod
    def validate_availabilities(availabilities: List[AvailabilityRuleSchema]):
        seen = set()
        for rule in availabilities:
            if rule.day_of_week in seen:
                raise ValidationError(
                    f"Duplicate availability for day_of_week {rule.day_of_week}",
                    code="duplicate_day"
                )
            seen.add(rule.day_of_week)
            _check_window(rule.start_time, rule.end_time, f"day_of_week {rule.day_of_week}")

    @staticmethod
    def validate_overrides(overrides: List[ScheduleOverrideSchema]):
        seen = set()
        for override in overrides:
            if override.date in seen:
                raise ValidationError(f"Duplicate override for {override.date}", code="duplicate_date")
            seen.add(override.date)
            if not override.is_day_off:
                _check_window(override.start_time, override.end_time, f"override {override.date}")

    @staticmethod
    def update_worker_schedule(
            db: Session,
            actor: ActorContext,
            vendor_id: UUID,
            worker_id: UUID,
            availabilities: Optional[List[AvailabilityRuleSchema]] = None,
            overrides: Optional[List[ScheduleOverrideSchema]] = None
    ) -> Dict:
        """
        Replace the worker's weekly rules and/or dated overrides.

        Each provided collection replaces the stored one entirely; a collection
        passed as None is left untouched. Both replacements commit together.
        """
        ensure_can_manage_vendor(actor, vendor_id)
        worker = VendorService.get_vendor_worker(db, vendor_id, worker_id)

        if availabilities is not None:
            ScheduleService.validate_availabilities(availabilities)
        if overrides is not None:
            ScheduleService.validate_overrides(overrides)

        try:
            if availabilities is not None:
                db.query(WorkerAvailability).filter(
                    WorkerAvailability.worker_id == worker.id
                ).delete(synchronize_session=False)
                db.add_all([
                    WorkerAvailability(
                        worker_id=worker.id,
                        day_of_week=rule.day_of_week,
                        start_time=rule.start_time,
                        end_time=rule.end_time,
                        is_available=rule.is_available
                    )
                    for rule in availabilities
                ])

            if overrides is not None:
                db.query(WorkerScheduleOverride).filter(
                    WorkerScheduleOverride.worker_id == worker.id
                ).delete(synchronize_session=False)
                db.add_all([
                    WorkerScheduleOverride(
                        worker_id=worker.id,
                        date=override.date,
                        is_day_off=override.is_day_off,
                        start_time=None if override.is_day_off else override.start_time,
                        end_time=None if override.is_day_off else override.end_time,
                        notes=override.notes
                    )
                    for override in overrides
                ])

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(worker)
        logger.info(
            f"Updated schedule for worker {worker.id}: "
            f"{len(worker.availabilities)} weekly rules, {len(worker.schedule_overrides)} overrides"
        )
        return ScheduleService.serialize_schedule(worker)

    @staticmethod
    def serialize_schedule(worker: Worker) -> Dict:
        return {
            "worker_id": str(worker.id),
            "vendor_id": str(worker.vendor_id),
            "name": worker.name,
            "availabilities": [rule.to_dict() for rule in worker.availabilities],
            "overrides": [override.to_dict() for override in worker.schedule_overrides],
        }
