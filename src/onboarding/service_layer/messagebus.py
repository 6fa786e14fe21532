"""Handler tables for the onboarding service."""

from typing import Callable, Dict, List, Type

from shared.domain.commands import Command, Event
from shared.domain.envelope import EventType
from onboarding.domain import commands, events
from onboarding.service_layer import handlers

EVENT_HANDLERS = {
    events.OnboardingStepCompleted: [handlers.publish_step_event],
    events.OnboardingStepRejected: [handlers.publish_step_event],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.StartStep: handlers.start_step,
    commands.SubmitStep: handlers.submit_step,
    commands.RequestStepAction: handlers.request_step_action,
    commands.ApproveStep: handlers.approve_step,
    commands.RejectStep: handlers.reject_step,
    commands.WaiveStep: handlers.waive_step,
}  # type: Dict[Type[Command], Callable]

CONSUMER_HANDLERS = {
    EventType.USER_REGISTERED: handlers.create_checklist,
}  # type: Dict[str, Callable]

CONSUMED_TOPICS = ["user-events"]
