import threading
from datetime import datetime, timedelta, timezone

from uuid import uuid4

import pytest

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import UserRole
from app.services.appointment.booking_service import BookingService
from app.services.auth.access_policy import ActorContext
from app.utils.time_utils import as_utc

from conftest import DAY, NOW, OPEN_ALL_WEEK, at


def book(db, salon, start, worker_id=None, now=NOW, **kwargs):
    return BookingService.create_appointment(
        db, salon.customer.id, salon.vendor.id, salon.service.id, start, worker_id=worker_id, now=now, **kwargs
    )


def test_booking_creates_pending_appointment(db, salon):
    appointment = book(db, salon, at(10), worker_id=salon.worker.id, notes="  first visit  ")

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.worker_id == salon.worker.id
    assert as_utc(appointment.start_time) == at(10)
    assert as_utc(appointment.end_time) == at(10, 30)
    assert appointment.notes == "first visit"
    assert appointment.booking_source == "web"


def test_service_that_exactly_fills_the_day_end(db, salon):
    assert book(db, salon, at(16, 30)).status == AppointmentStatus.PENDING

    with pytest.raises(ConflictError) as exc:
        book(db, salon, at(16, 31))
    assert exc.value.code == "outside_operating_hours"
    assert exc.value.details["retry_hint"] == "refresh_slots"


def test_insufficient_lead_time(db, salon):
    with pytest.raises(ValidationError) as exc:
        book(db, salon, at(10), now=at(9, 30))

    assert exc.value.code == "insufficient_lead_time"
    assert "60 minutes" in exc.value.message


def test_lead_time_is_checked_before_operating_hours(db, salon):
    with pytest.raises(ValidationError) as exc:
        book(db, salon, at(6), now=at(5, 45))

    assert exc.value.code == "insufficient_lead_time"


def test_vendor_and_service_must_exist(db, make, salon):
    other_vendor = make.vendor()
    foreign_service = make.service(other_vendor)

    with pytest.raises(NotFoundError) as exc:
        BookingService.create_appointment(db, salon.customer.id, uuid4(), salon.service.id, at(10), now=NOW)
    assert exc.value.code == "vendor_not_found"

    with pytest.raises(NotFoundError) as exc:
        BookingService.create_appointment(
            db, salon.customer.id, salon.vendor.id, foreign_service.id, at(10), now=NOW
        )
    assert exc.value.code == "service_not_found"


def test_explicit_worker_must_be_qualified(db, make, salon):
    nails = make.service(salon.vendor, name="Nails")
    nail_tech = make.worker(salon.vendor, services=[nails])

    with pytest.raises(ValidationError) as exc:
        book(db, salon, at(10), worker_id=nail_tech.id)

    assert exc.value.code == "worker_not_qualified"


def test_explicit_worker_must_be_working(db, make, salon):
    part_timer = make.worker(salon.vendor, services=[salon.service], hours=("13:00", "17:00"))

    with pytest.raises(ConflictError) as exc:
        book(db, salon, at(10), worker_id=part_timer.id)

    assert exc.value.code == "worker_unavailable"


def test_explicit_worker_already_booked(db, make, salon):
    make.appointment(salon.customer, salon.service, at(10, 15), worker=salon.worker, status=AppointmentStatus.CONFIRMED)

    with pytest.raises(ConflictError) as exc:
        book(db, salon, at(10), worker_id=salon.worker.id)

    assert exc.value.code == "worker_unavailable"
    assert exc.value.details["retry_hint"] == "refresh_slots"


def test_auto_assignment_skips_busy_workers(db, make, salon):
    bob = make.worker(salon.vendor, services=[salon.service], name="Bob")
    make.appointment(salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED)

    appointment = book(db, salon, at(10))

    assert appointment.worker_id == bob.id


def test_no_worker_left(db, make, salon):
    make.appointment(salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.PENDING)

    with pytest.raises(ConflictError) as exc:
        book(db, salon, at(10))

    assert exc.value.code == "no_worker_available"


def test_naive_start_is_vendor_local_time(db, make):
    vendor = make.vendor(timezone_name="Europe/Berlin", operating_hours=OPEN_ALL_WEEK)
    service = make.service(vendor)
    make.worker(vendor, services=[service])
    customer = make.user()

    appointment = BookingService.create_appointment(
        db, customer.id, vendor.id, service.id, datetime(2030, 6, 3, 9, 0), now=NOW
    )

    # CEST is UTC+2
    assert as_utc(appointment.start_time) == datetime(2030, 6, 3, 7, 0, tzinfo=timezone.utc)


def test_concurrent_requests_for_one_worker_succeed_once(session_factory, salon):
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt():
        session = session_factory()
        try:
            barrier.wait()
            appointment = BookingService.create_appointment(
                session, salon.customer.id, salon.vendor.id, salon.service.id, at(10),
                worker_id=salon.worker.id, now=NOW
            )
            outcomes.append(("ok", appointment.id))
        except ConflictError as e:
            outcomes.append(("conflict", e.code))
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(kind for kind, _ in outcomes) == ["conflict", "ok"]
    assert ("conflict", "worker_unavailable") in outcomes

    check = session_factory()
    try:
        assert check.query(Appointment).filter(Appointment.worker_id == salon.worker.id).count() == 1
    finally:
        check.close()


def test_customer_and_owner_are_notified(db, salon, outbox):
    book(db, salon, at(10), worker_id=salon.worker.id)

    recipients = sorted(message.to for message in outbox)
    assert recipients == ["customer@example.com", "owner@example.com"]
    assert any("Alice" in message.body for message in outbox)


def test_notification_failure_does_not_undo_booking(db, salon, monkeypatch):
    from app.services.notification import notification_service

    class BrokenQueue:
        def delay(self, *args):
            raise ConnectionError("broker down")

    monkeypatch.setattr(notification_service, "send_appointment_email", BrokenQueue())

    appointment = book(db, salon, at(10))

    db.expire_all()
    assert db.query(Appointment).filter(Appointment.id == appointment.id).count() == 1


def test_disabled_notifications_send_nothing(db, salon, outbox, booking_settings):
    booking_settings.NOTIFICATIONS_ENABLED = False

    book(db, salon, at(10))

    assert outbox == []


def test_manual_booking_requires_vendor_access(db, make, salon):
    other_owner = make.user(role=UserRole.VENDOR_OWNER)
    other_vendor = make.vendor(owner=other_owner)
    outsider = ActorContext(user_id=other_owner.id, role=UserRole.VENDOR_OWNER, owned_vendor_id=other_vendor.id)

    with pytest.raises(AuthorizationError):
        BookingService.create_for_customer(
            db, outsider, salon.customer.id, salon.vendor.id, salon.service.id, at(10), now=NOW
        )

    appointment = BookingService.create_for_customer(
        db, salon.owner_actor, salon.customer.id, salon.vendor.id, salon.service.id, at(10), now=NOW
    )
    assert appointment.booking_source == "admin"
    assert appointment.user_id == salon.customer.id


def test_update_duration_revalidates_interval(db, make, salon):
    appointment = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)
    make.appointment(salon.customer, salon.service, at(11), worker=salon.worker, status=AppointmentStatus.CONFIRMED)

    updated = BookingService.update_duration(db, appointment, 60)
    assert as_utc(updated.end_time) == at(11)

    with pytest.raises(ConflictError) as exc:
        BookingService.update_duration(db, appointment, 75)
    assert exc.value.code == "worker_unavailable"

    with pytest.raises(ValidationError) as exc:
        BookingService.update_duration(db, appointment, 0)
    assert exc.value.code == "invalid_duration"


def test_update_duration_stays_within_opening_hours(db, make, salon):
    appointment = make.appointment(salon.customer, salon.service, at(16), worker=salon.worker)

    with pytest.raises(ConflictError) as exc:
        BookingService.update_duration(db, appointment, 90)

    assert exc.value.code == "outside_operating_hours"
    assert as_utc(appointment.end_time) == at(16) + timedelta(minutes=30)


def test_bookings_on_other_days_do_not_interfere(db, make, salon):
    make.appointment(
        salon.customer, salon.service, at(10, day=DAY + timedelta(days=1)),
        worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    assert book(db, salon, at(10), worker_id=salon.worker.id).worker_id == salon.worker.id
