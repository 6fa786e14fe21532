"""Domain events for the payments service."""

from dataclasses import dataclass
from typing import ClassVar, Optional

from shared.domain.commands import Event
from shared.domain.envelope import EventType


@dataclass
class PlanDowngraded(Event):
    event_type: ClassVar[str] = EventType.PLAN_DOWNGRADED
    provider_id: int
    subscription_id: str
    previous_plan_id: str
    plan_id: str
    email: Optional[str] = None
