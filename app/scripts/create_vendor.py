#!/usr/bin/env python3
"""
Script to create a demo salon with operating hours, services and workers
Usage: python -m app.scripts.create_vendor <owner_external_id> <owner_email>
"""
import sys
import traceback
from decimal import Decimal
from sqlalchemy.orm import Session

from app.config.database import SessionLocal
from app.models.service import Service
from app.models.user import User, UserRole
from app.models.vendor import Vendor, VendorStatus
from app.models.worker import Worker, WorkerAvailability
from app.schemas.vendor import DayHours, OperatingHours


def create_vendor_with_staff(owner_external_id: str, owner_email: str):
    """Create a demo salon owned by the given user"""
    db: Session = SessionLocal()

    try:
        owner = db.query(User).filter(User.external_id == owner_external_id).first()
        if not owner:
            owner = User(external_id=owner_external_id, email=owner_email)
            db.add(owner)
        owner.role = UserRole.VENDOR_OWNER

        weekday = DayHours(open="09:00", close="19:00")
        hours = OperatingHours(
            monday=weekday, tuesday=weekday, wednesday=weekday, thursday=weekday, friday=weekday,
            saturday=DayHours(open="10:00", close="17:00"),
            sunday=DayHours(is_closed=True),
        )

        vendor = Vendor(
            name="Studio Lumière",
            description="Hair, colour and nail studio",
            address="123 Main Street, Your City",
            phone_number="+1234567890",
            owner=owner,
            operating_hours=hours.to_storage(),
            timezone="America/New_York",
            status=VendorStatus.ACTIVE,
        )
        db.add(vendor)
        db.flush()  # Get the ID without committing

        print(f"\n✅ Created vendor: {vendor.name}")
        print(f"   Vendor ID: {vendor.id}")

        services = [
            Service(vendor_id=vendor.id, name="Haircut", price=Decimal("45.00"), duration=45),
            Service(vendor_id=vendor.id, name="Colour", price=Decimal("120.00"), duration=120),
            Service(vendor_id=vendor.id, name="Manicure", price=Decimal("35.00"), duration=30),
        ]
        db.add_all(services)

        # Weekly hours use 0=Sunday ... 6=Saturday
        staff = [
            ("Ana", services[:2], [(d, "09:00", "17:00") for d in range(1, 6)]),
            ("Marko", services[:1], [(d, "11:00", "19:00") for d in range(2, 7)]),
            ("Iva", services[2:], [(d, "09:00", "15:00") for d in (1, 3, 5, 6)]),
        ]
        for name, qualified, weekly in staff:
            worker = Worker(vendor_id=vendor.id, name=name, services=list(qualified))
            worker.availabilities = [
                WorkerAvailability(day_of_week=day, start_time=start, end_time=end)
                for day, start, end in weekly
            ]
            db.add(worker)

        db.commit()

        print(f"✅ Created {len(services)} services and {len(staff)} workers")
        print("\nOperating hours:")
        for day_name, entry in vendor.operating_hours.items():
            if entry["is_closed"]:
                print(f"  {day_name.title()}: CLOSED")
            else:
                print(f"  {day_name.title()}: {entry['open']} - {entry['close']}")
        print()

        return str(vendor.id)

    except Exception as e:
        db.rollback()
        print(f"\n❌ Error creating vendor: {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    create_vendor_with_staff(sys.argv[1], sys.argv[2])
