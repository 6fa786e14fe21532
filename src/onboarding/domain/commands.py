"""Commands for the onboarding service. Each targets one step of a provider's checklist."""

from dataclasses import dataclass
from typing import Optional

from shared.domain.commands import Command


@dataclass
class StepCommand(Command):
    provider_id: int
    step: str


@dataclass
class StartStep(StepCommand):
    pass


@dataclass
class SubmitStep(StepCommand):
    pass


@dataclass
class RequestStepAction(StepCommand):
    reason: Optional[str] = None


@dataclass
class ApproveStep(StepCommand):
    pass


@dataclass
class RejectStep(StepCommand):
    reason: Optional[str] = None


@dataclass
class WaiveStep(StepCommand):
    pass
