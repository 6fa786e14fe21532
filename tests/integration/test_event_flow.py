"""End-to-end event propagation across services over an in-memory bus"""
from datetime import datetime, timedelta, timezone

from shared.service_layer.dispatcher import Ack
from appointments import bootstrap as appointments_bootstrap
from appointments.domain.commands import CompleteAppointment
from appointments.domain.model import Appointment, AppointmentStatus
from notifications import bootstrap as notifications_bootstrap
from notifications.domain.model import NotificationDelivery
from payments import bootstrap as payments_bootstrap
from payments.domain.model import Subscription

START = datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)


def add_appointment(uow_factory, **fields):
    uow = uow_factory()
    with uow:
        uow.appointments.add(Appointment(start_time=START, end_time=START + timedelta(minutes=30), **fields))
        uow.commit()


def test_completed_appointment_requests_exactly_one_review(
    appointments_bus, appointments_uow_factory,
    notifications_bus, notifications_uow_factory,
    payments_bus, payments_uow_factory,
    publisher, sender,
):
    add_appointment(appointments_uow_factory, appointment_id=42, patient_id=3, provider_id=20,
                    patient_email="ana@example.com", provider_email="dr@example.com")
    payments = payments_bootstrap.build_dispatcher(payments_bus)
    notifications = notifications_bootstrap.build_dispatcher(notifications_bus)
    payments.dispatch(
        '{"eventId": "R1", "eventType": "USER_REGISTERED", "sourceUserId": 20, "role": "PROVIDER",'
        ' "payload": {"isTrial": "true"}}'
    )

    appointments_bus.handle(CompleteAppointment(42))
    [completed] = publisher.of_type("APPOINTMENT_COMPLETED")
    raw = completed.to_json()

    # At-least-once: every consumer sees the message twice
    for _ in range(2):
        assert notifications.dispatch(raw) is Ack.ACK
        assert payments.dispatch(raw) is Ack.ACK

    uow = appointments_uow_factory()
    with uow:
        assert uow.appointments.get(42).status == AppointmentStatus.COMPLETED

    [review_request] = publisher.of_type("REVIEW_REQUEST")
    assert review_request.payload["appointmentId"] == 42
    assert review_request.source_user_id == "3"

    uow = notifications_uow_factory()
    with uow:
        [delivery] = uow.session.query(NotificationDelivery).all()
        assert delivery.template == "review_request"
        assert delivery.recipient == "ana@example.com"
    assert len(sender.sent) == 1

    uow = payments_uow_factory()
    with uow:
        [subscription] = uow.session.query(Subscription).all()
        assert subscription.appointments_used == 1


def test_disabled_bus_keeps_services_working(appointments_uow_factory, monkeypatch):
    monkeypatch.setenv("EVENT_BUS_ENABLED", "false")
    bus = appointments_bootstrap.bootstrap(start_orm=False, uow_factory=appointments_uow_factory)
    add_appointment(appointments_uow_factory, appointment_id=7, patient_id=1, provider_id=2)

    assert bus.handle(CompleteAppointment(7)) == ["COMPLETED"]
