from app.models.appointment import AppointmentStatus
from app.services.email.email_service import EmailService
from app.services.notification.notification_service import NotificationService

from conftest import at


class FakeSMTP:
    def __init__(self):
        self.sent = []
        self.closed = False

    def sendmail(self, sender, recipients, message):
        self.sent.append((sender, recipients, message))

    def quit(self):
        self.closed = True


def test_confirmation_mentions_service_time_and_worker(make, salon, outbox):
    appointment = make.appointment(
        salon.customer, salon.service, at(10), worker=salon.worker, status=AppointmentStatus.CONFIRMED
    )

    assert NotificationService.notify_customer(appointment, "confirmed")

    message = outbox[0]
    assert message.to == "customer@example.com"
    assert message.subject == "Appointment confirmed"
    assert message.body == (
        "Your appointment for Haircut at Studio on Monday 03 June 2030 at 10:00 is confirmed with Alice."
    )


def test_times_are_shown_in_salon_timezone(make, outbox):
    vendor = make.vendor(timezone_name="Europe/Berlin")
    service = make.service(vendor)
    customer = make.user()
    appointment = make.appointment(customer, service, at(8))

    NotificationService.notify_customer(appointment, "created")

    assert "at 10:00" in outbox[0].body


def test_missing_recipient_is_skipped(db, make, salon, outbox):
    salon.customer.email = None
    db.commit()
    appointment = make.appointment(salon.customer, salon.service, at(10), worker=salon.worker)

    assert not NotificationService.notify_customer(appointment, "created")
    assert NotificationService.notify_vendor_owner(appointment, "created")
    assert [message.to for message in outbox] == ["owner@example.com"]


def test_appointment_email_is_sent_as_text_and_html(monkeypatch):
    smtp = FakeSMTP()
    monkeypatch.setattr(EmailService, "_get_smtp_connection", staticmethod(lambda: smtp))

    assert EmailService.send_appointment_email("jane@example.com", "Appointment confirmed", "See you <soon>")

    sender, recipients, raw = smtp.sent[0]
    assert recipients == ["jane@example.com"]
    assert "Subject: Appointment confirmed" in raw
    assert "See you &lt;soon&gt;" in raw
    assert smtp.closed
