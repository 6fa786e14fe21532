import logging
from typing import Callable

from shared.adapters.publisher import AbstractEventPublisher, envelope_from
from shared.domain.envelope import Envelope
from shared.domain.exceptions import EntityNotFound
from shared.domain.payload import role_of, user_id_of
from appointments.domain import commands, events, model
from appointments.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def schedule_appointment(command: commands.ScheduleAppointment, uow: AbstractUnitOfWork) -> int:
    """Book a new appointment and raise APPOINTMENT_CREATED."""
    with uow:
        appointment = model.Appointment(
            patient_id=command.patient_id,
            provider_id=command.provider_id,
            service_id=command.service_id,
            start_time=command.start_time,
            end_time=command.end_time,
            patient_email=command.patient_email,
            provider_email=command.provider_email,
        )
        uow.appointments.add(appointment)
        appointment.mark_created()
        uow.commit()
        appointment_id = appointment.appointment_id

    logger.info(f"Scheduled appointment {appointment_id} for patient {command.patient_id}")
    return appointment_id


def _apply(uow: AbstractUnitOfWork, appointment_id: int, action: Callable[[model.Appointment], None]) -> str:
    with uow:
        appointment = uow.appointments.get(appointment_id, lock=True)
        if appointment is None:
            raise EntityNotFound(f"appointment {appointment_id} does not exist")
        action(appointment)
        uow.commit()
        return appointment.status.value


def check_in(command: commands.CheckIn, uow: AbstractUnitOfWork) -> str:
    return _apply(uow, command.appointment_id, lambda a: a.check_in())


def start_appointment(command: commands.StartAppointment, uow: AbstractUnitOfWork) -> str:
    return _apply(uow, command.appointment_id, lambda a: a.start())


def complete_appointment(command: commands.CompleteAppointment, uow: AbstractUnitOfWork) -> str:
    status = _apply(uow, command.appointment_id, lambda a: a.complete())
    logger.info(f"Appointment {command.appointment_id} completed")
    return status


def cancel_appointment(command: commands.CancelAppointment, uow: AbstractUnitOfWork) -> str:
    canceled_by = model.CanceledBy(command.canceled_by.upper())
    return _apply(uow, command.appointment_id, lambda a: a.cancel(canceled_by, command.reason))


def mark_no_show(command: commands.MarkNoShow, uow: AbstractUnitOfWork) -> str:
    return _apply(uow, command.appointment_id, lambda a: a.mark_no_show())


def reschedule_appointment(command: commands.RescheduleAppointment, uow: AbstractUnitOfWork) -> str:
    return _apply(
        uow, command.appointment_id, lambda a: a.reschedule(command.start_time, command.end_time)
    )


def publish_appointment_event(event: events.AppointmentEvent, uow: AbstractUnitOfWork,
                              publisher: AbstractEventPublisher):
    """Hand a committed appointment change to the event bus."""
    publisher.publish(
        envelope_from(
            event,
            source_user_id=event.consumer_id,
            source_provider_id=event.provider_id,
            email=event.consumer_email,
        )
    )


# Consumer handlers: (envelope, uow) inside the dispatcher's transaction

def cancel_appointments_of_deleted_user(envelope: Envelope, uow: AbstractUnitOfWork):
    """A deleted account cancels every open appointment it takes part in."""
    user_id = user_id_of(envelope).unwrap()
    role = role_of(envelope)

    if role == "PROVIDER":
        operation, reason = "cancel_by_provider", "provider account deleted"
        appointments = uow.appointments.list_open_for(provider_id=user_id, lock=True)
    else:
        operation, reason = "cancel_by_patient", "patient account deleted"
        appointments = uow.appointments.list_open_for(patient_id=user_id, lock=True)

    canceled = 0
    for appointment in appointments:
        # Appointments already under way are left to finish
        if not model.APPOINTMENT_LIFECYCLE.allows(appointment.status, operation):
            continue
        getattr(appointment, operation)(reason)
        canceled += 1

    logger.info(f"Canceled {canceled} open appointment(s) of deleted {role or 'user'} {user_id}")
