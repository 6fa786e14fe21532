"""Handler tables for the appointments service."""

from typing import Callable, Dict, List, Type

from shared.domain.commands import Command, Event
from shared.domain.envelope import EventType
from appointments.domain import commands, events
from appointments.service_layer import handlers

# Event handlers - multiple handlers can respond to same event
EVENT_HANDLERS = {
    events.AppointmentCreated: [handlers.publish_appointment_event],
    events.AppointmentCompleted: [handlers.publish_appointment_event],
    events.AppointmentCanceled: [handlers.publish_appointment_event],
    events.AppointmentRescheduled: [handlers.publish_appointment_event],
}  # type: Dict[Type[Event], List[Callable]]

# Command handlers - single handler per command type
COMMAND_HANDLERS = {
    commands.ScheduleAppointment: handlers.schedule_appointment,
    commands.CheckIn: handlers.check_in,
    commands.StartAppointment: handlers.start_appointment,
    commands.CompleteAppointment: handlers.complete_appointment,
    commands.CancelAppointment: handlers.cancel_appointment,
    commands.MarkNoShow: handlers.mark_no_show,
    commands.RescheduleAppointment: handlers.reschedule_appointment,
}  # type: Dict[Type[Command], Callable]

# Inbound bus events, by wire event type
CONSUMER_HANDLERS = {
    EventType.USER_DELETED: handlers.cancel_appointments_of_deleted_user,
}  # type: Dict[str, Callable]

CONSUMED_TOPICS = ["user-events"]
