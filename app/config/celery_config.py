# app/config/celery_config.py
"""Celery configuration and task routing"""
from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from app.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "salon_booking",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "app.tasks.email_tasks",
            "app.tasks.appointment_tasks",
        ],
    )

    # Configure Celery
    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "app.tasks.email_tasks.*": {"queue": "notifications"},
            "app.tasks.appointment_tasks.*": {"queue": "maintenance"},
        },

        # Queue definitions
        task_queues=(
            Queue("notifications", routing_key="notifications"),
            Queue("maintenance", routing_key="maintenance"),
        ),

        # Periodic jobs (run with `celery -A app.worker beat`)
        beat_schedule={
            "complete-past-appointments": {
                "task": "app.tasks.appointment_tasks.complete_past_appointments",
                "schedule": float(settings.COMPLETION_SWEEP_INTERVAL_SECONDS),
            },
            "cleanup-closed-appointments": {
                "task": "app.tasks.appointment_tasks.cleanup_closed_appointments",
                "schedule": crontab(hour=3, minute=0),
            },
        },

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Retry settings
        task_retry_max_retries=3,
        task_retry_delay=60,  # 1 minute

        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
