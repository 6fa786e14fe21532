"""Commands for the appointments service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.commands import Command


@dataclass
class ScheduleAppointment(Command):
    patient_id: int
    provider_id: int
    start_time: datetime
    end_time: datetime
    service_id: Optional[int] = None
    patient_email: Optional[str] = None
    provider_email: Optional[str] = None


@dataclass
class CheckIn(Command):
    appointment_id: int


@dataclass
class StartAppointment(Command):
    appointment_id: int


@dataclass
class CompleteAppointment(Command):
    appointment_id: int


@dataclass
class CancelAppointment(Command):
    """Cancel on behalf of the patient or the provider (``canceled_by``)."""
    appointment_id: int
    canceled_by: str
    reason: Optional[str] = None


@dataclass
class MarkNoShow(Command):
    appointment_id: int


@dataclass
class RescheduleAppointment(Command):
    appointment_id: int
    start_time: datetime
    end_time: datetime
