# app/models/vendor.py
"""
Vendor Model - a salon offering services through its workers
"""
from sqlalchemy import Column, String, DateTime, JSON, Text, ForeignKey, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from app.models.base import Base


class VendorStatus(str, enum.Enum):
    """Lifecycle of a vendor. Vendors are suspended, never deleted."""
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    phone_number = Column(String(30), nullable=True)

    owner_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True
    )

    # Weekday name -> {"open": "HH:MM", "close": "HH:MM", "is_closed": bool}
    operating_hours = Column(JSON, default=dict)
    timezone = Column(String(50), default="UTC", nullable=False)

    status = Column(
        SQLEnum(VendorStatus, name="vendorstatus"),
        default=VendorStatus.ACTIVE,
        nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    owner = relationship("User", back_populates="owned_vendor")
    services = relationship("Service", back_populates="vendor")
    workers = relationship("Worker", back_populates="vendor")

    @property
    def is_bookable(self) -> bool:
        return self.status == VendorStatus.ACTIVE

    def __repr__(self):
        return f"<Vendor(id={self.id}, name={self.name}, status={self.status})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone_number": self.phone_number,
            "owner_id": str(self.owner_id),
            "operating_hours": self.operating_hours or {},
            "timezone": self.timezone,
            "status": self.status.value if self.status else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
