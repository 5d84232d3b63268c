#!/usr/bin/env python3
"""
Promote (or create) the local mirror of an identity-provider user to SUPER_ADMIN
Usage: python -m app.scripts.create_admin <external_id> <email> [first_name] [last_name]
"""
import sys
from sqlalchemy.orm import Session

from app.config.database import SessionLocal
from app.models.user import User, UserRole


def create_super_admin(external_id: str, email: str, first_name: str = None, last_name: str = None):
    db: Session = SessionLocal()

    try:
        user = db.query(User).filter(User.external_id == external_id).first()
        if user:
            user.role = UserRole.SUPER_ADMIN
            user.is_active = True
            print(f"Promoted existing user {user.email} to SUPER_ADMIN")
        else:
            user = User(
                external_id=external_id,
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=UserRole.SUPER_ADMIN,
                is_active=True
            )
            db.add(user)
            print(f"✅ Super admin created: {email} (external id {external_id})")

        db.commit()
        return str(user.id)
    except Exception as e:
        db.rollback()
        print(f"\n❌ Error creating super admin: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    create_super_admin(*sys.argv[1:5])
