# ===== app/models/appointment.py =====
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid, CheckConstraint, DDL, event, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base
import enum
import uuid


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED_BY_USER = "CANCELLED_BY_USER"
    CANCELLED_BY_VENDOR = "CANCELLED_BY_VENDOR"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Statuses that hold a worker's time
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_interval"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Uuid(as_uuid=True), ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id", ondelete="RESTRICT"), nullable=False, index=True)
    worker_id = Column(Uuid(as_uuid=True), ForeignKey("workers.id", ondelete="SET NULL"), nullable=True, index=True)

    # Appointment details, stored in UTC
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(
        SQLEnum(AppointmentStatus, name="appointmentstatus"),
        default=AppointmentStatus.PENDING,
        nullable=False,
        index=True
    )
    booking_source = Column(String(20), default="web")  # web, assistant, admin

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    customer = relationship("User")
    vendor = relationship("Vendor")
    service = relationship("Service")
    worker = relationship("Worker")

    def __repr__(self):
        return f"<Appointment(id={self.id}, status={self.status}, worker_id={self.worker_id})>"


# Store-level guarantee that one worker never holds two overlapping active appointments.
# Only PostgreSQL supports exclusion constraints; btree_gist provides the uuid "=" operator.
event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_worker_overlap "
        "EXCLUDE USING gist (worker_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (worker_id IS NOT NULL AND status IN ('PENDING', 'CONFIRMED'))"
    ).execute_if(dialect="postgresql"),
)
