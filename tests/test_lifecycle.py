from datetime import timedelta

import pytest

from app.core.exceptions import AuthorizationError, ConflictError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import UserRole
from app.services.appointment.lifecycle import AppointmentLifecycle, effective_status
from app.services.availability.availability_service import AvailabilityService
from app.services.auth.access_policy import ActorContext
from app.utils.time_utils import as_utc

from conftest import DAY, NOW, at


def status_of(db, appointment_id):
    db.expire_all()
    return db.query(Appointment.status).filter(Appointment.id == appointment_id).scalar()


def pending_unassigned(db, salon, start=None):
    start = start or at(10)
    appointment = Appointment(
        user_id=salon.customer.id,
        vendor_id=salon.vendor.id,
        service_id=salon.service.id,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        status=AppointmentStatus.PENDING,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


# ----------------------------------------------------------------------------
# Approval
# ----------------------------------------------------------------------------

def test_approve_assigns_first_free_worker(db, salon, outbox):
    pending = pending_unassigned(db, salon)

    approved = AppointmentLifecycle.approve(db, salon.owner_actor, pending.id, now=NOW)

    assert approved.status == AppointmentStatus.CONFIRMED
    assert approved.worker_id == salon.worker.id
    assert [message.subject for message in outbox] == ["Appointment confirmed"]

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.approve(db, salon.owner_actor, pending.id, now=NOW)
    assert exc.value.code == "invalid_transition"
    assert exc.value.details["current_status"] == "CONFIRMED"


def test_auto_assignment_on_approve_skips_busy_worker(db, make, salon):
    bob = make.worker(salon.vendor, services=[salon.service], name="Bob")
    make.appointment(salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED)
    pending = pending_unassigned(db, salon)

    approved = AppointmentLifecycle.approve(db, salon.owner_actor, pending.id, now=NOW)

    assert approved.worker_id == bob.id


def test_approve_fails_when_nobody_is_free(db, make, salon):
    make.appointment(salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED)
    pending = pending_unassigned(db, salon)

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.approve(db, salon.owner_actor, pending.id, now=NOW)

    assert exc.value.code == "no_worker_available"
    assert status_of(db, pending.id) == AppointmentStatus.PENDING


def test_approve_keeps_assigned_worker(db, make, salon):
    pending = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)

    approved = AppointmentLifecycle.approve(db, salon.admin_actor, pending.id, now=NOW)

    assert approved.status == AppointmentStatus.CONFIRMED
    assert approved.worker_id == salon.worker.id


def test_approve_loses_to_a_concurrent_rejection(db, make, salon, session_factory):
    pending = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)

    other = session_factory()
    try:
        AppointmentLifecycle.reject(other, salon.owner_actor, pending.id, now=NOW)
    finally:
        other.close()

    # ``db`` still holds the PENDING copy it loaded earlier
    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.approve(db, salon.owner_actor, pending.id, now=NOW)

    assert exc.value.code == "invalid_transition"
    assert exc.value.details["current_status"] == "REJECTED"


def test_only_the_vendor_can_manage_its_appointments(db, make, salon):
    pending = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)
    other_owner = make.user(role=UserRole.VENDOR_OWNER)
    other_vendor = make.vendor(owner=other_owner)
    outsider = ActorContext(user_id=other_owner.id, role=UserRole.VENDOR_OWNER, owned_vendor_id=other_vendor.id)

    with pytest.raises(AuthorizationError):
        AppointmentLifecycle.approve(db, outsider, pending.id, now=NOW)
    with pytest.raises(AuthorizationError):
        AppointmentLifecycle.reject(db, salon.customer_actor, pending.id, now=NOW)


# ----------------------------------------------------------------------------
# Worker assignment and duration
# ----------------------------------------------------------------------------

def test_reassign_to_free_worker(db, make, salon):
    bob = make.worker(salon.vendor, services=[salon.service], name="Bob")
    appointment = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)

    moved = AppointmentLifecycle.assign_worker(db, salon.owner_actor, appointment.id, bob.id, now=NOW)

    assert moved.worker_id == bob.id
    assert moved.status == AppointmentStatus.PENDING


def test_reassign_to_busy_or_unqualified_worker(db, make, salon):
    bob = make.worker(salon.vendor, services=[salon.service], name="Bob")
    nails = make.service(salon.vendor, name="Nails")
    nail_tech = make.worker(salon.vendor, services=[nails])
    make.appointment(salon.customer, salon.service, at(10, 15), worker=bob, status=AppointmentStatus.CONFIRMED)
    appointment = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.assign_worker(db, salon.owner_actor, appointment.id, bob.id, now=NOW)
    assert exc.value.code == "worker_unavailable"

    with pytest.raises(ValidationError) as exc:
        AppointmentLifecycle.assign_worker(db, salon.owner_actor, appointment.id, nail_tech.id, now=NOW)
    assert exc.value.code == "worker_not_qualified"


def test_unassign_only_pending(db, make, salon):
    pending = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)
    confirmed = make.appointment(
        salon.customer, salon.service, at(12), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    assert AppointmentLifecycle.assign_worker(db, salon.owner_actor, pending.id, None, now=NOW).worker_id is None

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.assign_worker(db, salon.owner_actor, confirmed.id, None, now=NOW)
    assert exc.value.code == "unassign_not_allowed"
    assert exc.value.details["current_status"] == "CONFIRMED"
    assert "CONFIRMED to CONFIRMED" not in exc.value.message


def test_update_duration_through_dashboard(db, make, salon):
    appointment = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    updated = AppointmentLifecycle.update_duration(db, salon.owner_actor, appointment.id, 45, now=NOW)

    assert as_utc(updated.end_time) == at(10, 45)


# ----------------------------------------------------------------------------
# Rejection and cancellation
# ----------------------------------------------------------------------------

def test_reject_pending_with_reason(db, make, salon, outbox):
    pending = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker, notes="Short cut")

    rejected = AppointmentLifecycle.reject(db, salon.owner_actor, pending.id, reason="Fully booked", now=NOW)

    assert rejected.status == AppointmentStatus.REJECTED
    assert rejected.notes == "Short cut\n[Rejection reason] Fully booked"
    assert outbox[-1].to == "customer@example.com"
    assert "Reason: Fully booked" in outbox[-1].body


def test_reject_requires_pending(db, make, salon):
    confirmed = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.reject(db, salon.owner_actor, confirmed.id, now=NOW)

    assert exc.value.details["current_status"] == "CONFIRMED"


def test_dashboard_reject_cancels_confirmed(db, make, salon):
    confirmed = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    cancelled = AppointmentLifecycle.reject_or_cancel(db, salon.owner_actor, confirmed.id, now=NOW)

    assert cancelled.status == AppointmentStatus.CANCELLED_BY_VENDOR
    assert cancelled.cancelled_at is not None


def test_customer_cancels_own_appointment(db, make, salon, outbox):
    pending = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)

    cancelled = AppointmentLifecycle.cancel_by_user(
        db, salon.customer_actor, pending.id, reason="Sick", now=NOW
    )

    assert cancelled.status == AppointmentStatus.CANCELLED_BY_USER
    assert cancelled.notes == "[Customer cancellation] Sick"
    assert outbox[-1].to == "owner@example.com"


def test_customer_cannot_cancel_others_or_late(db, make, salon):
    appointment = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)
    stranger = make.user()

    with pytest.raises(AuthorizationError):
        AppointmentLifecycle.cancel_by_user(
            db, ActorContext(user_id=stranger.id, role=UserRole.USER), appointment.id, now=NOW
        )

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.cancel_by_user(db, salon.customer_actor, appointment.id, now=at(9, 30))
    assert exc.value.code == "cancellation_window_passed"


def test_cancellation_frees_the_slot(db, make, salon):
    appointment = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)
    AppointmentLifecycle.cancel_by_user(db, salon.customer_actor, appointment.id, now=NOW)

    result = AvailabilityService.get_available_slots(db, salon.vendor.id, salon.service.id, DAY, now=NOW)

    assert "10:00" in [slot["time"] for slot in result["slots"]]


def test_no_show_is_terminal(db, make, salon):
    confirmed = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    assert AppointmentLifecycle.mark_no_show(db, salon.owner_actor, confirmed.id, now=NOW).status == \
        AppointmentStatus.NO_SHOW

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.mark_no_show(db, salon.owner_actor, confirmed.id, now=NOW)
    assert exc.value.code == "invalid_transition"


# ----------------------------------------------------------------------------
# Completion
# ----------------------------------------------------------------------------

def test_effective_status_reports_completion(make, salon):
    confirmed = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    assert effective_status(confirmed, at(10, 15)) == AppointmentStatus.CONFIRMED
    assert effective_status(confirmed, at(10, 30)) == AppointmentStatus.COMPLETED


def test_ended_appointment_cannot_be_cancelled(db, make, salon):
    confirmed = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    with pytest.raises(ConflictError) as exc:
        AppointmentLifecycle.reject_or_cancel(db, salon.owner_actor, confirmed.id, now=at(11))

    assert exc.value.details["current_status"] == "COMPLETED"
    assert status_of(db, confirmed.id) == AppointmentStatus.COMPLETED


def test_completion_sweep(db, make, salon):
    ended = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )
    later = make.appointment(
        salon.customer, salon.service, at(15), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )
    pending = make.appointment(salon.customer, salon.service, at(9), worker=salon.worker)

    assert AppointmentLifecycle.complete_past_appointments(db, at(11)) == 1
    assert status_of(db, ended.id) == AppointmentStatus.COMPLETED
    assert status_of(db, later.id) == AppointmentStatus.CONFIRMED
    assert status_of(db, pending.id) == AppointmentStatus.PENDING


# ----------------------------------------------------------------------------
# Bulk operations
# ----------------------------------------------------------------------------

def test_bulk_approve_reports_each_failure(db, make, salon):
    first = pending_unassigned(db, salon, at(10))
    make.appointment(salon.customer, salon.service, at(12), worker=salon.worker, status=AppointmentStatus.CONFIRMED)
    clashing = pending_unassigned(db, salon, at(12))

    result = AppointmentLifecycle.bulk_approve(db, salon.owner_actor, now=NOW)

    assert result["approved"] == [str(first.id)]
    assert result["failed"] == [{
        "id": str(clashing.id),
        "code": "no_worker_available",
        "detail": "No qualified worker is available for this appointment",
    }]


def test_cleanup_removes_closed_appointments(db, make, salon):
    for status, hour in (
            (AppointmentStatus.REJECTED, 9),
            (AppointmentStatus.CANCELLED_BY_USER, 10),
            (AppointmentStatus.NO_SHOW, 11),
    ):
        make.appointment(salon.customer, salon.service, at(hour), worker=salon.worker, status=status)
    make.appointment(
        salon.customer, salon.service, at(10, day=DAY - timedelta(days=60)),
        worker=salon.worker, status=AppointmentStatus.COMPLETED
    )
    recent = make.appointment(
        salon.customer, salon.service, at(11, 30), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )
    upcoming = make.appointment(salon.customer, salon.service, at(15), worker=salon.worker)

    other_vendor = make.vendor()
    other_service = make.service(other_vendor)
    foreign = make.appointment(salon.customer, other_service, at(9), status=AppointmentStatus.REJECTED)

    result = AppointmentLifecycle.cleanup(db, salon.owner_actor, now=at(12))

    assert result == {"deleted": 4, "vendor_id": str(salon.vendor.id), "retention_days": 30}
    db.expire_all()
    remaining = {row[0] for row in db.query(Appointment.id).all()}
    assert remaining == {recent.id, upcoming.id, foreign.id}
    assert status_of(db, recent.id) == AppointmentStatus.COMPLETED


def test_owner_cannot_clean_another_vendor(db, make, salon):
    other_vendor = make.vendor()

    with pytest.raises(AuthorizationError):
        AppointmentLifecycle.cleanup(db, salon.owner_actor, vendor_id=other_vendor.id, now=NOW)
