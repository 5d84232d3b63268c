# ===== app/tasks/email_tasks.py =====
import logging

from app.config.celery_config import celery_app
from app.services.email.email_service import EmailService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_appointment_email(
        self,
        to_email: str,
        subject: str,
        body: str
):
    """
    Deliver an appointment notification

    Args:
        to_email: Recipient address
        subject: Email subject
        body: Plain text body
    """
    try:
        logger.info(f"Sending appointment email '{subject}' to {to_email}")

        EmailService.send_appointment_email(
            to_email=to_email,
            subject=subject,
            body=body
        )

        return {"status": "success", "email": to_email}

    except Exception as exc:
        logger.error(f"Failed to send appointment email to {to_email}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
