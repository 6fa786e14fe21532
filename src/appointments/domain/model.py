import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from shared.domain.commands import Event, utc_now
from shared.domain.exceptions import DomainError
from shared.domain.lifecycle import Lifecycle, transition
from appointments.domain import events


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    WAITING_ROOM = "WAITING_ROOM"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED_BY_PATIENT = "CANCELED_BY_PATIENT"
    CANCELED_BY_PROVIDER = "CANCELED_BY_PROVIDER"
    NO_SHOW = "NO_SHOW"
    RESCHEDULED = "RESCHEDULED"


class CanceledBy(str, enum.Enum):
    PATIENT = "PATIENT"
    PROVIDER = "PROVIDER"


S = AppointmentStatus

# An appointment is "open" until it reaches one of the terminal states
OPEN_STATES = (S.SCHEDULED, S.RESCHEDULED, S.WAITING_ROOM, S.IN_PROGRESS)

APPOINTMENT_LIFECYCLE = Lifecycle(
    "Appointment",
    {
        "check_in": ((S.SCHEDULED, S.RESCHEDULED), S.WAITING_ROOM),
        "start": ((S.SCHEDULED, S.RESCHEDULED, S.WAITING_ROOM), S.IN_PROGRESS),
        "complete": ((S.SCHEDULED, S.RESCHEDULED, S.WAITING_ROOM, S.IN_PROGRESS), S.COMPLETED),
        "cancel_by_patient": ((S.SCHEDULED, S.RESCHEDULED, S.WAITING_ROOM), S.CANCELED_BY_PATIENT),
        "cancel_by_provider": ((S.SCHEDULED, S.RESCHEDULED, S.WAITING_ROOM), S.CANCELED_BY_PROVIDER),
        "mark_no_show": ((S.SCHEDULED, S.RESCHEDULED, S.WAITING_ROOM), S.NO_SHOW),
        "reschedule": ((S.SCHEDULED, S.RESCHEDULED), S.RESCHEDULED),
    },
    terminal=(S.COMPLETED, S.CANCELED_BY_PATIENT, S.CANCELED_BY_PROVIDER, S.NO_SHOW),
)


@dataclass(eq=False)
class Appointment:
    patient_id: int
    provider_id: int
    start_time: datetime
    end_time: datetime
    service_id: Optional[int] = None
    patient_email: Optional[str] = None
    provider_email: Optional[str] = None
    appointment_id: Optional[int] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    canceled_by: Optional[CanceledBy] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    status_changed_at: datetime = field(default_factory=utc_now)
    events: List[Event] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if self.end_time <= self.start_time:
            raise DomainError("appointment must end after it starts")

    @property
    def current_state(self) -> AppointmentStatus:
        return self.status

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATES

    def mark_created(self) -> None:
        """Raise APPOINTMENT_CREATED once the row has its identifier."""
        self.events.append(events.AppointmentCreated(start_time=self.start_time, **self._event_fields()))

    def check_in(self) -> None:
        self._transition("check_in")

    def start(self) -> None:
        self._transition("start")

    def complete(self) -> None:
        self._transition("complete")
        self.events.append(events.AppointmentCompleted(**self._event_fields()))

    def cancel_by_patient(self, reason: Optional[str] = None) -> None:
        self._cancel("cancel_by_patient", CanceledBy.PATIENT, reason)

    def cancel_by_provider(self, reason: Optional[str] = None) -> None:
        self._cancel("cancel_by_provider", CanceledBy.PROVIDER, reason)

    def cancel(self, canceled_by: CanceledBy, reason: Optional[str] = None) -> None:
        if CanceledBy(canceled_by) is CanceledBy.PROVIDER:
            self.cancel_by_provider(reason)
        else:
            self.cancel_by_patient(reason)

    def mark_no_show(self) -> None:
        self._transition("mark_no_show")

    def reschedule(self, start_time: datetime, end_time: datetime) -> None:
        """Move the appointment to a new slot, keeping the same row."""
        if end_time <= start_time:
            raise DomainError("appointment must end after it starts")
        self._transition("reschedule")
        self.start_time = start_time
        self.end_time = end_time
        self.events.append(
            events.AppointmentRescheduled(start_time=start_time, end_time=end_time, **self._event_fields())
        )

    def _cancel(self, operation: str, canceled_by: CanceledBy, reason: Optional[str]) -> None:
        self._transition(operation)
        self.canceled_by = canceled_by
        self.cancellation_reason = reason
        self.events.append(
            events.AppointmentCanceled(canceled_by=canceled_by.value, reason=reason, **self._event_fields())
        )

    def _transition(self, operation: str) -> None:
        transition(self, APPOINTMENT_LIFECYCLE, operation, entity_id=self.appointment_id)

    def _event_fields(self) -> dict:
        return dict(
            appointment_id=self.appointment_id,
            provider_id=self.provider_id,
            consumer_id=self.patient_id,
            status=self.status.value,
            consumer_email=self.patient_email,
            provider_email=self.provider_email,
        )
