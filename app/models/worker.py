# ===== app/models/worker.py =====
from sqlalchemy import (
    Column, String, Boolean, Date, DateTime, Integer, Text, Table, ForeignKey, Uuid,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base
import uuid


# Which services a worker is qualified to perform
worker_services = Table(
    "worker_services",
    Base.metadata,
    Column("worker_id", Uuid(as_uuid=True), ForeignKey("workers.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Uuid(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Worker(Base):
    """Staff member of a vendor with their own weekly schedule"""
    __tablename__ = "workers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vendor_id = Column(Uuid(as_uuid=True), ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone_number = Column(String(30), nullable=True)
    bio = Column(Text, nullable=True)
    photo_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    vendor = relationship("Vendor", back_populates="workers")
    user = relationship("User", back_populates="worker_profile")
    services = relationship("Service", secondary=worker_services, back_populates="workers")
    availabilities = relationship(
        "WorkerAvailability",
        back_populates="worker",
        cascade="all, delete-orphan",
        order_by="WorkerAvailability.day_of_week"
    )
    schedule_overrides = relationship(
        "WorkerScheduleOverride",
        back_populates="worker",
        cascade="all, delete-orphan",
        order_by="WorkerScheduleOverride.date"
    )

    def can_perform(self, service_id) -> bool:
        return any(service.id == service_id for service in self.services)

    def __repr__(self):
        return f"<Worker(id={self.id}, name={self.name}, vendor_id={self.vendor_id})>"


class WorkerAvailability(Base):
    """Recurring weekly working hours, one row per weekday"""
    __tablename__ = "worker_availabilities"
    __table_args__ = (
        UniqueConstraint("worker_id", "day_of_week", name="uq_worker_availability_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_worker_availability_day_range"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = Column(Uuid(as_uuid=True), ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=False)  # HH:MM format
    is_available = Column(Boolean, default=True, nullable=False)

    worker = relationship("Worker", back_populates="availabilities")

    def to_dict(self):
        return {
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_available": self.is_available,
        }


class WorkerScheduleOverride(Base):
    """Specific date exceptions (day off, special hours)"""
    __tablename__ = "worker_schedule_overrides"
    __table_args__ = (
        UniqueConstraint("worker_id", "date", name="uq_worker_override_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = Column(Uuid(as_uuid=True), ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    is_day_off = Column(Boolean, default=False, nullable=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    notes = Column(Text, nullable=True)  # "Vacation", "Training", etc.

    worker = relationship("Worker", back_populates="schedule_overrides")

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "is_day_off": self.is_day_off,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "notes": self.notes,
        }
