"""Domain events for the onboarding service."""

from dataclasses import dataclass
from typing import ClassVar, Optional

from shared.domain.commands import Event
from shared.domain.envelope import EventType


@dataclass
class OnboardingStepCompleted(Event):
    event_type: ClassVar[str] = EventType.ONBOARDING_STEP_COMPLETED
    provider_id: int
    step: str
    email: Optional[str] = None


@dataclass
class OnboardingStepRejected(Event):
    event_type: ClassVar[str] = EventType.ONBOARDING_STEP_REJECTED
    provider_id: int
    step: str
    reason: Optional[str] = None
    email: Optional[str] = None
