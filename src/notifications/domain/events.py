"""Domain events for the notifications service."""

from dataclasses import dataclass
from typing import ClassVar, Optional

from shared.domain.commands import Event
from shared.domain.envelope import EventType


@dataclass
class DeliveryQueued(Event):
    """Internal: a delivery is ready for a send attempt."""
    delivery_id: int


@dataclass
class ReviewRequested(Event):
    event_type: ClassVar[str] = EventType.REVIEW_REQUEST
    appointment_id: int
    consumer_id: Optional[int] = None
    provider_id: Optional[int] = None
    email: Optional[str] = None
