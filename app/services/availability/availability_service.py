# ===== app/services/availability/availability_service.py =====
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.models.worker import Worker
from app.services.availability.conflict_service import ConflictService
from app.services.availability.operating_hours import resolve_operating_hours
from app.services.availability.worker_hours import resolve_worker_window
from app.services.vendor.vendor_service import VendorService
from app.utils.time_utils import (
    TimeWindow, as_utc, day_bounds_utc, format_hhmm, get_zone, localize, time_from_minute, utc_now,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class AvailabilityService:
    """Read-only slot discovery for a vendor, service and date"""

    @staticmethod
    def slot_step_minutes(duration_minutes: int) -> int:
        return settings.SLOT_STEP_MINUTES if settings.SLOT_STEP_MINUTES > 0 else duration_minutes

    @staticmethod
    def earliest_bookable_start(now: Optional[datetime] = None) -> datetime:
        return as_utc(now or utc_now()) + timedelta(minutes=settings.MIN_BOOKING_LEAD_MINUTES)

    @staticmethod
    def get_available_slots(
            db: Session,
            vendor_id: UUID,
            service_id: UUID,
            day: date,
            preferred_worker_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Dict:
        """
        Bookable start times for ``service_id`` on ``day``.

        Every slot's [start, start + duration) lies inside the vendor's open
        window and inside the window of each listed worker, none of whom has an
        overlapping PENDING/CONFIRMED appointment. With a preferred worker, only
        slots where that worker is free are returned (booking with an explicit
        worker requires the same).
        """
        vendor = VendorService.get_bookable_vendor(db, vendor_id)
        service = VendorService.get_bookable_service(db, vendor.id, service_id)

        preferred = None
        if preferred_worker_id is not None:
            preferred = VendorService.get_qualified_worker(db, vendor.id, service.id, preferred_worker_id)

        result = {
            "vendor_id": str(vendor.id),
            "service_id": str(service.id),
            "date": day.isoformat(),
            "duration_minutes": service.duration,
            "preferred_worker_id": str(preferred.id) if preferred else None,
            "slots": [],
        }

        open_window = resolve_operating_hours(vendor.operating_hours, day, vendor_id=str(vendor.id))
        if open_window is None:
            return AvailabilityService._empty(result, "closed", "The salon is closed on this date.")

        workers = VendorService.get_qualified_workers(db, vendor.id, service.id)
        if not workers:
            return AvailabilityService._empty(
                result, "no_workers", "No workers at this salon perform this service."
            )

        slots, reason = AvailabilityService._generate_day_slots(
            db, vendor.id, vendor.timezone, day, open_window, service.duration, workers, now
        )

        if preferred is not None:
            preferred_key = str(preferred.id)
            filtered = [
                slot for slot in slots
                if any(worker["id"] == preferred_key for worker in slot["available_workers"])
            ]
            if slots and not filtered:
                # Others are free; explain the empty result for the requested worker alone
                _, reason = AvailabilityService._generate_day_slots(
                    db, vendor.id, vendor.timezone, day, open_window, service.duration, [preferred], now
                )
                messages = {
                    "no_schedule": f"{preferred.name} is not scheduled to work on this date.",
                    "too_late": f"{preferred.name} has no remaining bookable slots on this date.",
                    "fully_booked": f"{preferred.name} is fully booked on this date.",
                }
                reason = reason or "fully_booked"
                result = AvailabilityService._empty(result, reason, messages[reason])
                result["other_workers_available"] = True
                return result
            slots = filtered

        result["slots"] = slots
        if not slots:
            messages = {
                "no_schedule": "No qualified worker is scheduled to work on this date.",
                "too_late": "No remaining slots can be booked for this date.",
                "fully_booked": "All slots are fully booked for this date.",
            }
            reason = reason or "fully_booked"
            return AvailabilityService._empty(result, reason, messages[reason])

        logger.info(f"Generated {len(slots)} slots for vendor {vendor.id}, service {service.id} on {day}")
        return result

    @staticmethod
    def _empty(result: Dict, reason: str, message: str) -> Dict:
        result["slots"] = []
        result["reason"] = reason
        result["message"] = message
        return result

    @staticmethod
    def _generate_day_slots(
            db: Session,
            vendor_id: UUID,
            vendor_timezone: Optional[str],
            day: date,
            open_window: TimeWindow,
            duration_minutes: int,
            workers: List[Worker],
            now: Optional[datetime]
    ):
        """Walk candidate starts across the open window; returns (slots, reason-if-empty)"""
        zone = get_zone(vendor_timezone)
        earliest = AvailabilityService.earliest_bookable_start(now)
        step = AvailabilityService.slot_step_minutes(duration_minutes)

        worker_windows = {
            worker.id: resolve_worker_window(worker.availabilities, worker.schedule_overrides, day)
            for worker in workers
        }

        # One query for the whole day; the overlap predicate matches ConflictService
        day_start, day_end = day_bounds_utc(day, zone)
        booked = defaultdict(list)
        for appointment in ConflictService.active_appointments_between(
                db, vendor_id, [worker.id for worker in workers], day_start, day_end
        ):
            booked[appointment.worker_id].append(appointment)

        slots = []
        scheduled_candidates = 0
        future_candidates = 0

        minute = open_window.start_minute
        while minute + duration_minutes <= open_window.end_minute:
            slot_start = localize(day, time_from_minute(minute), zone)
            slot_end = slot_start + timedelta(minutes=duration_minutes)

            scheduled = [
                worker for worker in workers
                if worker_windows[worker.id] is not None
                and worker_windows[worker.id].fits(minute, duration_minutes)
            ]
            if scheduled:
                scheduled_candidates += 1

            if slot_start < earliest:
                minute += step
                continue

            if scheduled:
                future_candidates += 1

            available_workers = [
                {"id": str(worker.id), "name": worker.name}
                for worker in scheduled
                if not any(
                    ConflictService.overlaps(a.start_time, a.end_time, slot_start, slot_end)
                    for a in booked[worker.id]
                )
            ]

            if available_workers:
                slots.append({
                    "time": format_hhmm(time_from_minute(minute)),
                    "available_workers": available_workers,
                })

            minute += step

        if slots:
            return slots, None
        if scheduled_candidates == 0:
            return slots, "no_schedule"
        if future_candidates == 0:
            return slots, "too_late"
        return slots, "fully_booked"
