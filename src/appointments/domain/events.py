"""Domain events for the appointments service."""

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional

from shared.domain.commands import Event
from shared.domain.envelope import EventType


@dataclass
class AppointmentEvent(Event):
    """Fields every appointment event carries on the wire."""
    appointment_id: int
    provider_id: int
    consumer_id: int
    status: str
    consumer_email: Optional[str] = None
    provider_email: Optional[str] = None


@dataclass
class AppointmentCreated(AppointmentEvent):
    event_type: ClassVar[str] = EventType.APPOINTMENT_CREATED
    start_time: Optional[datetime] = None


@dataclass
class AppointmentCompleted(AppointmentEvent):
    """Triggers review requests and subscription usage accounting downstream."""
    event_type: ClassVar[str] = EventType.APPOINTMENT_COMPLETED


@dataclass
class AppointmentCanceled(AppointmentEvent):
    event_type: ClassVar[str] = EventType.APPOINTMENT_CANCELED
    canceled_by: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class AppointmentRescheduled(AppointmentEvent):
    event_type: ClassVar[str] = EventType.APPOINTMENT_RESCHEDULED
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
