# ============================================================================
# FILE: app/api/dependencies.py
# Authentication dependencies: JWT bearer tokens -> user mirror -> actor context
# ============================================================================
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
import logging

from app.config.database import get_db
from app.config.settings import settings
from app.models.user import User, UserRole
from app.services.auth.access_policy import ActorContext
from app.services.vendor.vendor_service import VendorService

logger = logging.getLogger(__name__)

# ============================================================================
# Security Schemes
# ============================================================================

# Tokens are issued by the external identity provider; "sub" is its user id
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token (scripts and tests; production tokens come from
    the identity provider signed with the same key).

    Args:
        data: Dictionary with claims (should include 'sub' with the external user id)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

        token_type = payload.get("type", "access")
        if token_type != "access":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _mirror_user(db: Session, external_id: str, payload: dict) -> User:
    """Local mirror of the identity provider's user; created as a customer on first sight"""
    user = db.query(User).filter(User.external_id == external_id).first()
    if user:
        return user

    user = User(
        external_id=external_id,
        email=payload.get("email"),
        first_name=payload.get("given_name") or payload.get("first_name"),
        last_name=payload.get("family_name") or payload.get("last_name"),
        role=UserRole.USER,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first request for the same user created the row
        db.rollback()
        return db.query(User).filter(User.external_id == external_id).one()

    db.refresh(user)
    logger.info(f"Created local user mirror {user.id} for external user {external_id}")
    return user


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from JWT access token.

    Raises:
        HTTPException 401: If token is invalid
        HTTPException 403: If the account is deactivated
    """
    payload = verify_access_token(credentials.credentials)

    external_id: Optional[str] = payload.get("sub")
    if not external_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _mirror_user(db, str(external_id), payload)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    return user


async def get_actor(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
) -> ActorContext:
    """
    Explicit actor context handed to every engine operation.

    Usage in routes:
        @router.put("/{appointment_id}/approve")
        async def approve(appointment_id: UUID, actor: ActorContext = Depends(get_actor)):
            ...
    """
    owned_vendor_id = None
    if current_user.role == UserRole.VENDOR_OWNER:
        vendor = VendorService.find_vendor_owned_by(db, current_user.id)
        owned_vendor_id = vendor.id if vendor else None

    worker_id = current_user.worker_profile.id if current_user.worker_profile else None

    return ActorContext(
        user_id=current_user.id,
        role=current_user.role,
        owned_vendor_id=owned_vendor_id,
        worker_id=worker_id
    )


# ============================================================================
# Role Dependencies
# ============================================================================

async def require_vendor_staff(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    """
    Dependency that requires a vendor owner or super admin.
    Which vendor they may touch is checked per operation.
    """
    if not (actor.is_super_admin or actor.is_vendor_owner):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Vendor owner or admin access required"
        )

    return actor


async def require_worker(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    if actor.worker_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Worker profile required"
        )

    return actor
