import os

# Keep the application engine off PostgreSQL; each test builds its own SQLite file
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from app.config.database import build_engine
from app.config.settings import settings
from app.models import (
    Appointment, AppointmentStatus, Base, Service, User, UserRole, Vendor, VendorStatus,
    Worker, WorkerAvailability, WorkerScheduleOverride,
)
from app.services.auth.access_policy import ActorContext
from app.services.notification import notification_service
from app.utils.time_utils import WEEKDAY_NAMES

# 2030-06-03 is a Monday
DAY = date(2030, 6, 3)
NOW = datetime(2030, 6, 1, 8, 0, tzinfo=timezone.utc)

OPEN_ALL_WEEK = {
    name: {"open": "09:00", "close": "17:00", "is_closed": False} for name in WEEKDAY_NAMES
}


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class RecordingTask:
    """Stands in for the Celery email task; records what would have been queued"""

    def __init__(self):
        self.sent = []

    def delay(self, to_email, subject, body):
        self.sent.append(SimpleNamespace(to=to_email, subject=subject, body=body))


class Factory:
    def __init__(self, db):
        self.db = db
        self._tick = 0

    def _next_created_at(self) -> datetime:
        # Workers are picked in creation order; SQLite's CURRENT_TIMESTAMP only has second resolution
        self._tick += 1
        return datetime(2030, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._tick)

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role=UserRole.USER, email=None, first_name="Test", last_name="User"):
        token = uuid4().hex[:10]
        return self._save(User(
            external_id=f"ext-{token}",
            email=email or f"{token}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
        ))

    def vendor(self, owner=None, operating_hours=None, timezone_name="UTC", status=VendorStatus.ACTIVE, name="Studio"):
        owner = owner or self.user(role=UserRole.VENDOR_OWNER)
        return self._save(Vendor(
            name=name,
            owner_id=owner.id,
            operating_hours=OPEN_ALL_WEEK if operating_hours is None else operating_hours,
            timezone=timezone_name,
            status=status,
        ))

    def service(self, vendor, duration=30, active=True, name="Haircut"):
        return self._save(Service(
            vendor_id=vendor.id,
            name=name,
            price=25,
            duration=duration,
            active=active,
        ))

    def worker(self, vendor, services=(), hours=("09:00", "17:00"), days=range(7), overrides=(), name=None, user=None):
        worker = Worker(
            vendor_id=vendor.id,
            name=name or f"Worker {self._tick + 1}",
            user_id=user.id if user else None,
            created_at=self._next_created_at(),
        )
        worker.services = list(services)
        if hours:
            worker.availabilities = [
                WorkerAvailability(day_of_week=day, start_time=hours[0], end_time=hours[1], is_available=True)
                for day in days
            ]
        worker.schedule_overrides = [WorkerScheduleOverride(**override) for override in overrides]
        return self._save(worker)

    def appointment(self, customer, service, start, worker=None, duration=None, status=AppointmentStatus.PENDING,
                    notes=None):
        return self._save(Appointment(
            user_id=customer.id,
            vendor_id=service.vendor_id,
            service_id=service.id,
            worker_id=worker.id if worker else None,
            start_time=start,
            end_time=start + timedelta(minutes=duration or service.duration),
            status=status,
            notes=notes,
        ))


@pytest.fixture(autouse=True)
def booking_settings(monkeypatch):
    monkeypatch.setattr(settings, "MIN_BOOKING_LEAD_MINUTES", 60)
    monkeypatch.setattr(settings, "CANCELLATION_LEAD_MINUTES", 60)
    monkeypatch.setattr(settings, "SLOT_STEP_MINUTES", 15)
    monkeypatch.setattr(settings, "BOOKING_LOCK_BACKEND", "local")
    monkeypatch.setattr(settings, "NOTIFICATIONS_ENABLED", True)
    monkeypatch.setattr(settings, "CLEANUP_RETENTION_DAYS", 30)
    return settings


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    task = RecordingTask()
    monkeypatch.setattr(notification_service, "send_appointment_email", task)
    return task.sent


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
def salon(make):
    """An open-all-week salon with one 30 minute service and one worker who performs it"""
    owner = make.user(role=UserRole.VENDOR_OWNER, email="owner@example.com")
    vendor = make.vendor(owner=owner)
    service = make.service(vendor)
    worker = make.worker(vendor, services=[service], name="Alice")
    customer = make.user(email="customer@example.com", first_name="Jane", last_name="Doe")
    admin = make.user(role=UserRole.SUPER_ADMIN, email="admin@example.com")

    return SimpleNamespace(
        owner=owner,
        vendor=vendor,
        service=service,
        worker=worker,
        customer=customer,
        admin=admin,
        owner_actor=ActorContext(user_id=owner.id, role=UserRole.VENDOR_OWNER, owned_vendor_id=vendor.id),
        customer_actor=ActorContext(user_id=customer.id, role=UserRole.USER),
        admin_actor=ActorContext(user_id=admin.id, role=UserRole.SUPER_ADMIN),
    )
