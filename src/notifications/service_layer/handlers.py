import logging
from typing import Optional

from shared.adapters.publisher import AbstractEventPublisher, envelope_from
from shared.domain.envelope import Envelope
from shared.domain.exceptions import EntityNotFound, InvalidTransition
from shared.domain.payload import as_int, as_str, provider_id_of, role_of, user_id_of
from notifications.adapters.sender import AbstractNotificationSender, NotificationSendError
from notifications.domain import commands, events, model
from notifications.domain.templates import TEMPLATES
from notifications.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

RECEIPT_APPLIED = "applied"
RECEIPT_DUPLICATE = "duplicate"
RECEIPT_IGNORED = "ignored"


def _enqueue(
    uow: AbstractUnitOfWork,
    envelope: Envelope,
    template_name: str,
    recipient: Optional[str],
    user_id: Optional[int],
    role: model.TargetRole,
    channel: model.NotificationChannel,
    **values,
) -> Optional[model.NotificationDelivery]:
    """Create one PENDING delivery and ask for it to be sent after commit."""
    if not recipient:
        logger.debug(f"No recipient for {template_name} from {envelope.event_type} {envelope.event_id}")
        return None

    subject, body = TEMPLATES[template_name].render(values)
    delivery = model.NotificationDelivery(
        user_id=user_id,
        target_role=role,
        channel=channel,
        recipient=recipient,
        subject=subject,
        body=body,
        template=template_name,
        source_event_id=envelope.event_id,
    )
    uow.deliveries.add(delivery)
    delivery.queue()
    logger.info(f"Queued {template_name} delivery {delivery.delivery_id} for {role.value} {user_id}")
    return delivery


def _recipient(envelope: Envelope, key: str) -> Optional[str]:
    return as_str(envelope.payload, key).value or envelope.email


# Consumer handlers: one per inbound event type

def welcome_user(envelope: Envelope, uow: AbstractUnitOfWork, default_channel: model.NotificationChannel):
    role = model.TargetRole.PROVIDER if role_of(envelope) == "PROVIDER" else model.TargetRole.CONSUMER
    template = "welcome_provider" if role is model.TargetRole.PROVIDER else "welcome_consumer"
    _enqueue(
        uow, envelope, template, _recipient(envelope, "email"), user_id_of(envelope).value, role,
        default_channel, name=as_str(envelope.payload, "name").value or "",
    )


def notify_account_deleted(envelope: Envelope, uow: AbstractUnitOfWork, default_channel: model.NotificationChannel):
    role = model.TargetRole.PROVIDER if role_of(envelope) == "PROVIDER" else model.TargetRole.CONSUMER
    _enqueue(
        uow, envelope, "account_deleted", _recipient(envelope, "email"), user_id_of(envelope).value, role,
        default_channel,
    )


def notify_appointment_created(envelope: Envelope, uow: AbstractUnitOfWork,
                               default_channel: model.NotificationChannel):
    appointment_id = as_int(envelope.payload, "appointmentId", required=True).unwrap()
    _enqueue(
        uow, envelope, "appointment_confirmed", _recipient(envelope, "consumerEmail"),
        as_int(envelope.payload, "consumerId").value, model.TargetRole.CONSUMER, default_channel,
        appointmentId=appointment_id,
    )
    _enqueue(
        uow, envelope, "appointment_new_patient", as_str(envelope.payload, "providerEmail").value,
        provider_id_of(envelope).value, model.TargetRole.PROVIDER, default_channel,
        appointmentId=appointment_id,
    )


def notify_appointment_canceled(envelope: Envelope, uow: AbstractUnitOfWork,
                                default_channel: model.NotificationChannel):
    appointment_id = as_int(envelope.payload, "appointmentId", required=True).unwrap()
    _enqueue(
        uow, envelope, "appointment_canceled", _recipient(envelope, "consumerEmail"),
        as_int(envelope.payload, "consumerId").value, model.TargetRole.CONSUMER, default_channel,
        appointmentId=appointment_id,
    )
    _enqueue(
        uow, envelope, "appointment_canceled", as_str(envelope.payload, "providerEmail").value,
        provider_id_of(envelope).value, model.TargetRole.PROVIDER, default_channel,
        appointmentId=appointment_id,
    )


def request_review(envelope: Envelope, uow: AbstractUnitOfWork, default_channel: model.NotificationChannel):
    """A completed appointment asks the patient for a review, once per appointment event."""
    appointment_id = as_int(envelope.payload, "appointmentId", required=True).unwrap()
    consumer_id = as_int(envelope.payload, "consumerId").value
    recipient = _recipient(envelope, "consumerEmail")

    _enqueue(
        uow, envelope, "review_request", recipient, consumer_id, model.TargetRole.CONSUMER,
        default_channel, appointmentId=appointment_id,
    )
    uow.events.append(events.ReviewRequested(
        appointment_id=appointment_id,
        consumer_id=consumer_id,
        provider_id=provider_id_of(envelope).value,
        email=recipient,
    ))


def notify_review_received(envelope: Envelope, uow: AbstractUnitOfWork, default_channel: model.NotificationChannel):
    _enqueue(
        uow, envelope, "review_received", _recipient(envelope, "providerEmail"),
        provider_id_of(envelope).value, model.TargetRole.PROVIDER, default_channel,
        rating=as_int(envelope.payload, "rating").value or "",
    )


def notify_provider_replied(envelope: Envelope, uow: AbstractUnitOfWork, default_channel: model.NotificationChannel):
    _enqueue(
        uow, envelope, "provider_replied", _recipient(envelope, "consumerEmail"),
        as_int(envelope.payload, "consumerId").value or user_id_of(envelope).value,
        model.TargetRole.CONSUMER, default_channel,
        reply=as_str(envelope.payload, "reply").value or "",
    )


def notify_onboarding_step_completed(envelope: Envelope, uow: AbstractUnitOfWork,
                                     default_channel: model.NotificationChannel):
    _enqueue(
        uow, envelope, "onboarding_step_completed", _recipient(envelope, "email"),
        user_id_of(envelope).value, model.TargetRole.PROVIDER, default_channel,
        step=as_str(envelope.payload, "step").value or "",
    )


def notify_onboarding_step_rejected(envelope: Envelope, uow: AbstractUnitOfWork,
                                    default_channel: model.NotificationChannel):
    _enqueue(
        uow, envelope, "onboarding_step_rejected", _recipient(envelope, "email"),
        user_id_of(envelope).value, model.TargetRole.PROVIDER, default_channel,
        step=as_str(envelope.payload, "step").value or "",
        reason=as_str(envelope.payload, "reason").value or "no reason given",
    )


# Event handlers

def send_delivery(event: events.DeliveryQueued, uow: AbstractUnitOfWork, sender: AbstractNotificationSender):
    """
    Attempt to send a queued delivery.

    Runs after the transaction that queued it has committed. A provider
    refusal marks the delivery FAILED for the retry sweep; it is never
    raised further.
    """
    with uow:
        delivery = uow.deliveries.get(event.delivery_id, lock=True)
        if delivery is None or delivery.status != model.DeliveryStatus.PENDING:
            logger.info(f"Delivery {event.delivery_id} is no longer pending, not sending")
            return

        try:
            external_id = sender.send(delivery)
        except NotificationSendError as e:
            delivery.mark_failed(str(e))
            logger.warning(f"Delivery {delivery.delivery_id} failed (attempt {delivery.retry_count}): {e}")
        else:
            delivery.mark_sent(external_id)
            logger.info(f"Delivery {delivery.delivery_id} sent as {external_id}")

        uow.commit()


def publish_review_requested(event: events.ReviewRequested, uow: AbstractUnitOfWork,
                             publisher: AbstractEventPublisher):
    publisher.publish(
        envelope_from(
            event,
            source_user_id=event.consumer_id,
            source_provider_id=event.provider_id,
            email=event.email,
        )
    )


# Command handlers

def apply_delivery_receipt(command: commands.ApplyDeliveryReceipt, uow: AbstractUnitOfWork) -> str:
    """
    Apply a provider's delivery receipt to the delivery carrying its external id.

    Redelivered receipts are caught by the processed-events guard; a receipt
    for a delivery already in a terminal state is recorded and ignored.

    Raises:
        EntityNotFound: no delivery carries that external id
        PayloadError: the receipt status is not recognised
    """
    model.receipt_operation(command.status)

    with uow:
        if not uow.processed_events.claim(command.idempotency_key, "DELIVERY_RECEIPT"):
            return RECEIPT_DUPLICATE

        delivery = uow.deliveries.get_by_external_id(command.external_id, lock=True)
        if delivery is None:
            raise EntityNotFound(f"no delivery with external id {command.external_id}")

        try:
            delivery.apply_receipt(command.status, command.error_message)
        except InvalidTransition as e:
            logger.warning(f"Ignoring {command.provider} receipt: {e}")
            uow.commit()
            return RECEIPT_IGNORED

        uow.commit()
        status = delivery.status

    logger.info(f"Delivery {delivery.delivery_id} is now {status.value} ({command.provider} receipt)")
    return RECEIPT_APPLIED


def retry_failed_deliveries(command: commands.RetryFailedDeliveries, uow: AbstractUnitOfWork,
                            max_attempts: int) -> int:
    """Requeue FAILED deliveries below the attempt limit; each is sent again after commit."""
    max_attempts = command.max_attempts or max_attempts
    with uow:
        deliveries = uow.deliveries.list_retryable(max_attempts, limit=command.limit, lock=True)
        for delivery in deliveries:
            delivery.retry(max_attempts)
        uow.commit()

    logger.info(f"Requeued {len(deliveries)} failed deliveries (max attempts {max_attempts})")
    return len(deliveries)
