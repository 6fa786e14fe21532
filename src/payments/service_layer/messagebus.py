"""Handler tables for the payments service."""

from typing import Callable, Dict, List, Type

from shared.domain.commands import Command, Event
from shared.domain.envelope import EventType
from payments.domain import commands, events
from payments.service_layer import handlers

EVENT_HANDLERS = {
    events.PlanDowngraded: [handlers.publish_plan_downgraded],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.StartSubscription: handlers.start_subscription,
    commands.DowngradePlan: handlers.downgrade_plan,
    commands.ApplyGatewayWebhook: handlers.apply_gateway_webhook,
}  # type: Dict[Type[Command], Callable]

CONSUMER_HANDLERS = {
    EventType.USER_REGISTERED: handlers.create_free_subscription,
    EventType.APPOINTMENT_COMPLETED: handlers.count_appointment_usage,
    EventType.USER_DELETED: handlers.cancel_subscription_of_deleted_user,
}  # type: Dict[str, Callable]

CONSUMED_TOPICS = ["user-events", "appointment-events"]
