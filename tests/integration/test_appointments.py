"""Integration tests for the appointments service against SQLite"""
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import redis

from shared.adapters.publisher import RedisStreamPublisher
from shared.domain.exceptions import EntityNotFound, InvalidTransition
from shared.service_layer.dispatcher import Ack
from appointments import bootstrap
from appointments.domain import commands
from appointments.domain.model import AppointmentStatus

START = datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)


def schedule(bus, patient_id=1, provider_id=2, **kwargs):
    [appointment_id] = bus.handle(commands.ScheduleAppointment(
        patient_id=patient_id, provider_id=provider_id,
        start_time=START, end_time=START + timedelta(minutes=30),
        patient_email="ana@example.com", provider_email="dr@example.com", **kwargs
    ))
    return appointment_id


def status_of(uow_factory, appointment_id):
    uow = uow_factory()
    with uow:
        return uow.appointments.get(appointment_id).status


def user_deleted(user_id, role, event_id="del-1"):
    return json.dumps({
        "eventId": event_id, "eventType": "USER_DELETED", "sourceUserId": user_id, "role": role,
    })


def test_schedule_publishes_appointment_created(appointments_bus, publisher):
    appointment_id = schedule(appointments_bus)

    [created] = publisher.of_type("APPOINTMENT_CREATED")
    assert created.event_id
    assert created.payload["appointmentId"] == appointment_id
    assert created.payload["status"] == "SCHEDULED"
    assert created.source_provider_id == "2"


def test_complete_publishes_only_after_the_state_is_stored(appointments_bus, appointments_uow_factory, publisher):
    appointment_id = schedule(appointments_bus)

    [status] = appointments_bus.handle(commands.CompleteAppointment(appointment_id))

    assert status == "COMPLETED"
    assert status_of(appointments_uow_factory, appointment_id) == AppointmentStatus.COMPLETED
    [completed] = publisher.of_type("APPOINTMENT_COMPLETED")
    assert completed.payload["consumerEmail"] == "ana@example.com"


def test_complete_after_cancel_is_rejected_and_nothing_is_published(
    appointments_bus, appointments_uow_factory, publisher
):
    appointment_id = schedule(appointments_bus)
    appointments_bus.handle(commands.CancelAppointment(appointment_id, canceled_by="patient"))

    with pytest.raises(InvalidTransition):
        appointments_bus.handle(commands.CompleteAppointment(appointment_id))

    assert status_of(appointments_uow_factory, appointment_id) == AppointmentStatus.CANCELED_BY_PATIENT
    assert publisher.of_type("APPOINTMENT_COMPLETED") == []
    assert len(publisher.of_type("APPOINTMENT_CANCELED")) == 1


def test_unknown_appointment(appointments_bus):
    with pytest.raises(EntityNotFound):
        appointments_bus.handle(commands.CheckIn(999))


def test_reschedule_keeps_the_row(appointments_bus, appointments_uow_factory, publisher):
    appointment_id = schedule(appointments_bus)
    new_start = START + timedelta(days=2)

    appointments_bus.handle(commands.RescheduleAppointment(appointment_id, new_start, new_start + timedelta(hours=1)))

    assert status_of(appointments_uow_factory, appointment_id) == AppointmentStatus.RESCHEDULED
    [rescheduled] = publisher.of_type("APPOINTMENT_RESCHEDULED")
    assert rescheduled.payload["appointmentId"] == appointment_id


def test_publish_failure_does_not_undo_the_commit(appointments_uow_factory):
    client = Mock()
    client.xadd.side_effect = redis.exceptions.ConnectionError("bus down")
    bus = bootstrap.bootstrap(
        start_orm=False, uow_factory=appointments_uow_factory,
        publisher=RedisStreamPublisher(client, stream_for=lambda _: "s"),
    )
    appointment_id = schedule(bus)

    bus.handle(commands.CompleteAppointment(appointment_id))

    assert status_of(appointments_uow_factory, appointment_id) == AppointmentStatus.COMPLETED
    assert client.xadd.call_count == 2


def test_deleted_patient_has_open_appointments_canceled_once(appointments_bus, appointments_uow_factory, publisher):
    scheduled = schedule(appointments_bus)
    in_progress = schedule(appointments_bus)
    appointments_bus.handle(commands.StartAppointment(in_progress))
    completed = schedule(appointments_bus)
    appointments_bus.handle(commands.CompleteAppointment(completed))
    other_patient = schedule(appointments_bus, patient_id=5)
    dispatcher = bootstrap.build_dispatcher(appointments_bus)

    assert dispatcher.dispatch(user_deleted(1, "CONSUMER")) is Ack.ACK
    assert dispatcher.dispatch(user_deleted(1, "CONSUMER")) is Ack.ACK

    assert status_of(appointments_uow_factory, scheduled) == AppointmentStatus.CANCELED_BY_PATIENT
    assert status_of(appointments_uow_factory, in_progress) == AppointmentStatus.IN_PROGRESS
    assert status_of(appointments_uow_factory, completed) == AppointmentStatus.COMPLETED
    assert status_of(appointments_uow_factory, other_patient) == AppointmentStatus.SCHEDULED
    [canceled] = publisher.of_type("APPOINTMENT_CANCELED")
    assert canceled.payload["appointmentId"] == scheduled


def test_deleted_provider_cancels_as_provider(appointments_bus, appointments_uow_factory):
    appointment_id = schedule(appointments_bus, provider_id=8)
    dispatcher = bootstrap.build_dispatcher(appointments_bus)

    dispatcher.dispatch(user_deleted(8, "PROVIDER"))

    assert status_of(appointments_uow_factory, appointment_id) == AppointmentStatus.CANCELED_BY_PROVIDER


def test_user_deleted_without_user_id_is_acknowledged(appointments_bus):
    dispatcher = bootstrap.build_dispatcher(appointments_bus)
    raw = json.dumps({"eventId": "del-x", "eventType": "USER_DELETED"})
    assert dispatcher.dispatch(raw) is Ack.ACK
