from datetime import timedelta

import pytest

from app.core.exceptions import AuthorizationError, ValidationError
from app.models.appointment import AppointmentStatus
from app.models.user import UserRole
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.auth.access_policy import ActorContext

from conftest import DAY, NOW, at


@pytest.fixture
def booked(make, salon):
    return {
        "pending": make.appointment(salon.customer, salon.service, at(9), worker=salon.worker),
        "ended": make.appointment(
            salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
        ),
        "upcoming": make.appointment(
            salon.customer, salon.service, at(15), worker=salon.worker, status=AppointmentStatus.CONFIRMED
        ),
        "rejected": make.appointment(
            salon.customer, salon.service, at(11), worker=salon.worker, status=AppointmentStatus.REJECTED
        ),
        "next_week": make.appointment(
            salon.customer, salon.service, at(10, day=DAY + timedelta(days=7)), worker=salon.worker
        ),
    }


def test_dashboard_listing_reports_effective_status(db, salon, booked):
    result = AppointmentQueryService.list_appointments(
        db, salon.owner_actor, start_date=DAY, end_date=DAY, now=at(12)
    )

    assert result["vendor_id"] == str(salon.vendor.id)
    assert result["total_appointments"] == 4
    statuses = {appt["id"]: appt["status"] for appt in result["appointments"]}
    assert statuses[str(booked["ended"].id)] == "COMPLETED"
    assert statuses[str(booked["upcoming"].id)] == "CONFIRMED"
    assert result["appointments"][0]["customer_email"] == "customer@example.com"


@pytest.mark.parametrize("status, expected", [
    ("completed", {"ended"}),
    ("CONFIRMED", {"upcoming"}),
    ("pending", {"pending", "next_week"}),
])
def test_status_filter_uses_effective_status(db, salon, booked, status, expected):
    result = AppointmentQueryService.list_appointments(db, salon.owner_actor, status=status, now=at(12))

    assert {appt["id"] for appt in result["appointments"]} == {str(booked[name].id) for name in expected}


def test_unknown_status_is_rejected(db, salon):
    with pytest.raises(ValidationError) as exc:
        AppointmentQueryService.list_appointments(db, salon.owner_actor, status="LATE")

    assert exc.value.code == "invalid_status"


def test_pagination(db, salon, booked):
    result = AppointmentQueryService.list_appointments(db, salon.owner_actor, skip=1, limit=2, now=at(12))

    assert result["total_appointments"] == 5
    assert result["page"]["total_pages"] == 3
    assert [appt["id"] for appt in result["appointments"]] == [str(booked["ended"].id), str(booked["rejected"].id)]


def test_customers_cannot_use_dashboard_listing(db, salon):
    with pytest.raises(AuthorizationError):
        AppointmentQueryService.list_appointments(db, salon.customer_actor)


def test_customer_sees_own_appointments(db, make, salon, booked):
    someone_else = make.user()
    make.appointment(someone_else, salon.service, at(13), worker=salon.worker)

    everything = AppointmentQueryService.list_customer_appointments(db, salon.customer_actor, now=at(12))
    upcoming = AppointmentQueryService.list_customer_appointments(
        db, salon.customer_actor, upcoming_only=True, now=at(12)
    )

    assert everything["total_appointments"] == 5
    assert everything["appointments"][0]["id"] == str(booked["next_week"].id)
    assert {appt["id"] for appt in upcoming["appointments"]} == {
        str(booked["upcoming"].id), str(booked["next_week"].id)
    }


def test_worker_schedule_lists_active_upcoming_work(db, make, salon, booked):
    worker_user = make.user(role=UserRole.WORKER)
    salon.worker.user_id = worker_user.id
    db.commit()
    actor = ActorContext(user_id=worker_user.id, role=UserRole.WORKER, worker_id=salon.worker.id)

    schedule = AppointmentQueryService.get_worker_schedule(db, actor, start_date=DAY, days=1, now=at(12))

    assert schedule["period"] == {"start": DAY.isoformat(), "end": DAY.isoformat()}
    assert [appt["id"] for appt in schedule["appointments"]] == [str(booked["upcoming"].id)]

    week = AppointmentQueryService.get_worker_schedule(db, actor, start_date=DAY, days=8, now=at(12))
    assert week["total_appointments"] == 2


def test_worker_schedule_needs_worker_profile(db, salon):
    with pytest.raises(AuthorizationError):
        AppointmentQueryService.get_worker_schedule(db, salon.customer_actor)

    worker_actor = ActorContext(user_id=salon.customer.id, role=UserRole.WORKER, worker_id=salon.worker.id)
    with pytest.raises(ValidationError):
        AppointmentQueryService.get_worker_schedule(db, worker_actor, days=0)
