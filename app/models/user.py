# ============================================================================
# FILE: app/models/user.py
# Local mirror of identity-provider users with their platform role
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from app.models.base import Base


class UserRole(str, enum.Enum):
    """Platform-level user roles."""
    USER = "USER"                  # Customer
    VENDOR_OWNER = "VENDOR_OWNER"  # Owns exactly one vendor
    WORKER = "WORKER"              # Staff member linked to a Worker profile
    SUPER_ADMIN = "SUPER_ADMIN"    # Can act on any vendor


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Subject of the identity provider token
    external_id = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone_number = Column(String(30), unique=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)

    role = Column(
        SQLEnum(UserRole, name="userrole"),
        default=UserRole.USER,
        nullable=False,
        index=True
    )

    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    owned_vendor = relationship("Vendor", back_populates="owner", uselist=False)
    worker_profile = relationship("Worker", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def is_super_admin(self) -> bool:
        """Check if user is a platform super admin."""
        return self.role == UserRole.SUPER_ADMIN

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
