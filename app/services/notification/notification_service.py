# app/services/notification/notification_service.py
"""
Appointment notifications. Delivery is queued on Celery after the state change
is committed; a failure to queue is logged and never fails the caller.
"""
from typing import Optional
import logging

from app.config.settings import get_settings
from app.models.appointment import Appointment
from app.tasks.email_tasks import send_appointment_email
from app.utils.time_utils import get_zone, to_local

logger = logging.getLogger(__name__)
settings = get_settings()

CUSTOMER_MESSAGES = {
    "created": (
        "Booking request received",
        "Your booking request for {service} at {vendor} on {when} has been received and is awaiting confirmation."
    ),
    "confirmed": (
        "Appointment confirmed",
        "Your appointment for {service} at {vendor} on {when} is confirmed{with_worker}."
    ),
    "rejected": (
        "Booking request declined",
        "Unfortunately {vendor} could not accept your booking for {service} on {when}."
    ),
    "cancelled_by_vendor": (
        "Appointment cancelled",
        "{vendor} has cancelled your appointment for {service} on {when}."
    ),
}

VENDOR_MESSAGES = {
    "created": (
        "New booking request",
        "{customer} requested {service} on {when}{with_worker}."
    ),
    "cancelled_by_user": (
        "Appointment cancelled by customer",
        "{customer} cancelled their appointment for {service} on {when}."
    ),
}


class NotificationService:
    """Builds (recipient, subject, body) messages and hands them to the email queue"""

    @staticmethod
    def _context(appointment: Appointment) -> dict:
        vendor = appointment.vendor
        local_start = to_local(appointment.start_time, get_zone(vendor.timezone if vendor else None))
        return {
            "service": appointment.service.name if appointment.service else "your service",
            "vendor": vendor.name if vendor else "the salon",
            "customer": appointment.customer.full_name if appointment.customer else "A customer",
            "when": local_start.strftime("%A %d %B %Y at %H:%M"),
            "with_worker": f" with {appointment.worker.name}" if appointment.worker else "",
        }

    @staticmethod
    def _dispatch(recipient: Optional[str], subject: str, body: str, appointment_id) -> bool:
        if not settings.NOTIFICATIONS_ENABLED:
            return False
        if not recipient:
            logger.info(f"No recipient email for appointment {appointment_id}, skipping '{subject}'")
            return False

        try:
            send_appointment_email.delay(recipient, subject, body)
            return True
        except Exception as e:
            logger.error(
                f"Failed to queue notification '{subject}' for appointment {appointment_id}: {e}",
                exc_info=True
            )
            return False

    @staticmethod
    def notify_customer(appointment: Appointment, event: str, reason: Optional[str] = None) -> bool:
        try:
            subject, template = CUSTOMER_MESSAGES[event]
            body = template.format(**NotificationService._context(appointment))
            if reason:
                body += f"\nReason: {reason}"
            recipient = appointment.customer.email if appointment.customer else None
        except Exception as e:
            logger.error(f"Failed to build '{event}' notification for appointment {appointment.id}: {e}")
            return False

        return NotificationService._dispatch(recipient, subject, body, appointment.id)

    @staticmethod
    def notify_vendor_owner(appointment: Appointment, event: str) -> bool:
        try:
            subject, template = VENDOR_MESSAGES[event]
            body = template.format(**NotificationService._context(appointment))
            owner = appointment.vendor.owner if appointment.vendor else None
            recipient = owner.email if owner else None
        except Exception as e:
            logger.error(f"Failed to build '{event}' vendor notification for appointment {appointment.id}: {e}")
            return False

        return NotificationService._dispatch(recipient, subject, body, appointment.id)
