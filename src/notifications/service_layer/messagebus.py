"""Handler tables for the notifications service."""

from typing import Callable, Dict, List, Type

from shared.domain.commands import Command, Event
from shared.domain.envelope import EventType
from notifications.domain import commands, events
from notifications.service_layer import handlers

EVENT_HANDLERS = {
    events.DeliveryQueued: [handlers.send_delivery],
    events.ReviewRequested: [handlers.publish_review_requested],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.ApplyDeliveryReceipt: handlers.apply_delivery_receipt,
    commands.RetryFailedDeliveries: handlers.retry_failed_deliveries,
}  # type: Dict[Type[Command], Callable]

CONSUMER_HANDLERS = {
    EventType.USER_REGISTERED: handlers.welcome_user,
    EventType.USER_DELETED: handlers.notify_account_deleted,
    EventType.APPOINTMENT_CREATED: handlers.notify_appointment_created,
    EventType.APPOINTMENT_CANCELED: handlers.notify_appointment_canceled,
    EventType.APPOINTMENT_COMPLETED: handlers.request_review,
    EventType.REVIEW_CREATED: handlers.notify_review_received,
    EventType.PROVIDER_REPLIED: handlers.notify_provider_replied,
    EventType.ONBOARDING_STEP_COMPLETED: handlers.notify_onboarding_step_completed,
    EventType.ONBOARDING_STEP_REJECTED: handlers.notify_onboarding_step_rejected,
}  # type: Dict[str, Callable]

CONSUMED_TOPICS = ["user-events", "appointment-events", "review-events", "onboarding-events"]
