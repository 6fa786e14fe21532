import logging

from shared.adapters.publisher import AbstractEventPublisher, envelope_from
from shared.domain.envelope import Envelope
from shared.domain.exceptions import EntityNotFound, InvalidTransition
from shared.domain.payload import as_bool, provider_id_of, role_of, user_id_of
from payments.domain import commands, events, model
from payments.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

WEBHOOK_APPLIED = "applied"
WEBHOOK_UNCHANGED = "unchanged"
WEBHOOK_DUPLICATE = "duplicate"
WEBHOOK_IGNORED = "ignored"


def start_subscription(command: commands.StartSubscription, uow: AbstractUnitOfWork) -> str:
    with uow:
        subscription = model.Subscription(
            provider_id=command.provider_id,
            plan_id=command.plan_id,
            gateway=model.PaymentGateway(command.gateway.upper()),
            email=command.email,
            external_subscription_id=command.external_subscription_id,
            external_customer_id=command.external_customer_id,
        )
        if command.trial:
            subscription.start_trial()
        uow.subscriptions.add(subscription)
        uow.commit()
        subscription_id = subscription.subscription_id

    logger.info(f"Subscription {subscription_id} started for provider {command.provider_id} on plan {command.plan_id}")
    return subscription_id


def downgrade_plan(command: commands.DowngradePlan, uow: AbstractUnitOfWork):
    with uow:
        subscription = uow.subscriptions.get_current(command.provider_id, lock=True)
        if subscription is None:
            raise EntityNotFound(f"provider {command.provider_id} has no current subscription")
        subscription.downgrade(command.plan_id)
        uow.commit()


def apply_gateway_webhook(command: commands.ApplyGatewayWebhook, uow: AbstractUnitOfWork) -> str:
    """
    Apply a payment gateway callback to the subscription it names.

    The subscription is looked up by the gateway's external id. A redelivered
    callback is recognised through the same processed-events guard the bus
    consumers use, so it is applied at most once. A status the subscription can
    no longer move to is recorded and ignored: the gateway must not retry it.

    Raises:
        EntityNotFound: no subscription carries that external id
        PayloadError: the gateway or status string is not recognised
    """
    gateway = model.PaymentGateway(command.gateway.upper())
    target = model.status_from_gateway(gateway, command.status)

    with uow:
        subscription = uow.subscriptions.get_by_external_id(command.external_subscription_id, lock=True)
        if subscription is None:
            raise EntityNotFound(f"no subscription with external id {command.external_subscription_id}")

        key = command.idempotency_key(subscription.status.value)
        if not uow.processed_events.claim(key, "GATEWAY_WEBHOOK"):
            return WEBHOOK_DUPLICATE

        try:
            changed = subscription.apply_gateway_status(target, command.period_start, command.period_end)
        except InvalidTransition as e:
            logger.warning(f"Ignoring {gateway.value} webhook: {e}")
            uow.commit()
            return WEBHOOK_IGNORED

        uow.commit()

    logger.info(
        f"{gateway.value} webhook for {command.external_subscription_id}: "
        f"{target.value} ({'applied' if changed else 'no status change'})"
    )
    return WEBHOOK_APPLIED if changed else WEBHOOK_UNCHANGED


def publish_plan_downgraded(event: events.PlanDowngraded, uow: AbstractUnitOfWork,
                            publisher: AbstractEventPublisher):
    publisher.publish(
        envelope_from(event, source_user_id=event.provider_id, email=event.email, role="PROVIDER")
    )


# Consumer handlers

def create_free_subscription(envelope: Envelope, uow: AbstractUnitOfWork, free_plan_id: str):
    """A provider registering on the trial gets the free plan, active immediately."""
    role = role_of(envelope)
    is_trial = as_bool(envelope.payload, "isTrial")
    if role != "PROVIDER" or not is_trial.value:
        return

    provider_id = user_id_of(envelope).unwrap()
    if uow.subscriptions.get_current(provider_id, lock=True) is not None:
        logger.warning(f"Provider {provider_id} already has a subscription, not creating the free plan")
        return

    subscription = model.Subscription(
        provider_id=provider_id,
        plan_id=free_plan_id,
        gateway=model.PaymentGateway.FREE,
        email=envelope.email or envelope.payload.get("email"),
    )
    subscription.activate()
    uow.subscriptions.add(subscription)
    logger.info(f"Free subscription {subscription.subscription_id} created for provider {provider_id}")


def count_appointment_usage(envelope: Envelope, uow: AbstractUnitOfWork):
    provider_id = provider_id_of(envelope).unwrap()

    subscription = uow.subscriptions.get_current(provider_id, lock=True)
    if subscription is None:
        logger.info(f"Provider {provider_id} has no subscription, appointment usage not counted")
        return

    used = subscription.record_appointment_usage()
    logger.info(f"Provider {provider_id} has used {used} appointment(s) on plan {subscription.plan_id}")


def cancel_subscription_of_deleted_user(envelope: Envelope, uow: AbstractUnitOfWork):
    role = role_of(envelope)
    if role != "PROVIDER":
        return

    provider_id = user_id_of(envelope).unwrap()
    subscription = uow.subscriptions.get_current(provider_id, lock=True)
    if subscription is None:
        return

    subscription.cancel()
    logger.info(f"Subscription {subscription.subscription_id} canceled, provider {provider_id} deleted")
