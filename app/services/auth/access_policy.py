# app/services/auth/access_policy.py
"""
Explicit actor context and the authorization rules of the booking engine.

Every engine operation receives the caller's ActorContext; nothing is inferred
from "the admin's vendor" or other global lookups.
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from app.core.exceptions import AuthorizationError
from app.models.appointment import Appointment
from app.models.user import UserRole


@dataclass(frozen=True)
class ActorContext:
    user_id: UUID
    role: UserRole
    owned_vendor_id: Optional[UUID] = None
    worker_id: Optional[UUID] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_vendor_owner(self) -> bool:
        return self.role == UserRole.VENDOR_OWNER


def can_manage_vendor(actor: ActorContext, vendor_id: UUID) -> bool:
    if actor.is_super_admin:
        return True
    return actor.is_vendor_owner and actor.owned_vendor_id is not None and actor.owned_vendor_id == vendor_id


def ensure_can_manage_vendor(actor: ActorContext, vendor_id: UUID):
    """SUPER_ADMIN acts on any vendor, VENDOR_OWNER only on the vendor they own"""
    if actor.is_super_admin:
        return
    if not actor.is_vendor_owner:
        raise AuthorizationError("Vendor management access required")
    if actor.owned_vendor_id is None:
        raise AuthorizationError("Vendor owner is not linked to a vendor")
    if actor.owned_vendor_id != vendor_id:
        raise AuthorizationError("You do not have access to this vendor")


def ensure_super_admin(actor: ActorContext):
    if not actor.is_super_admin:
        raise AuthorizationError("Super admin access required")


def ensure_owns_appointment(actor: ActorContext, appointment: Appointment):
    if appointment.user_id != actor.user_id:
        raise AuthorizationError("You can only manage your own appointments")


def resolve_managed_vendor(actor: ActorContext, vendor_id: Optional[UUID]) -> Optional[UUID]:
    """
    Vendor scope for dashboard listings. Owners are pinned to their own vendor;
    super admins may pass a vendor or None for every vendor.
    """
    if actor.is_super_admin:
        return vendor_id
    ensure_can_manage_vendor(actor, vendor_id or actor.owned_vendor_id)
    return actor.owned_vendor_id
