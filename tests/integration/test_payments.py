"""Integration tests for subscriptions: free plans, usage, webhooks"""
import json
from datetime import datetime, timezone

import pytest

from shared.domain.exceptions import EntityNotFound, PayloadError
from shared.service_layer.dispatcher import Ack
from payments import bootstrap
from payments.domain import commands
from payments.domain.model import Subscription, SubscriptionStatus


def envelope(event_type, event_id, **fields):
    return json.dumps(dict(eventId=event_id, eventType=event_type, **fields))


def registered(event_id="R1", user_id=20, is_trial=True):
    return envelope("USER_REGISTERED", event_id, sourceUserId=user_id, role="PROVIDER",
                    email="dr@example.com", payload={"isTrial": is_trial})


def subscriptions(uow_factory):
    uow = uow_factory()
    with uow:
        return [
            (s.provider_id, s.plan_id, s.status, s.appointments_used)
            for s in uow.session.query(Subscription).order_by(Subscription.created_at).all()
        ]


@pytest.fixture
def dispatcher(payments_bus):
    return bootstrap.build_dispatcher(payments_bus)


def start(bus, external_id="sub_123", trial=False):
    [subscription_id] = bus.handle(commands.StartSubscription(
        provider_id=30, plan_id="pro", gateway="stripe", external_subscription_id=external_id, trial=trial,
    ))
    return subscription_id


def webhook(bus, status, webhook_id=None, external_id="sub_123", **kwargs):
    [outcome] = bus.handle(commands.ApplyGatewayWebhook(
        gateway="stripe", external_subscription_id=external_id, status=status, webhook_id=webhook_id, **kwargs
    ))
    return outcome


def test_trial_registration_gets_the_free_plan_once(dispatcher, payments_uow_factory):
    dispatcher.dispatch(registered())
    dispatcher.dispatch(registered())
    dispatcher.dispatch(registered(event_id="R2"))

    assert subscriptions(payments_uow_factory) == [(20, "5", SubscriptionStatus.ACTIVE, 0)]


def test_registration_without_trial_creates_nothing(dispatcher, payments_uow_factory):
    dispatcher.dispatch(registered(is_trial=False))
    assert subscriptions(payments_uow_factory) == []


def test_completed_appointments_are_counted_once_each(dispatcher, payments_uow_factory):
    dispatcher.dispatch(registered())
    completed = envelope("APPOINTMENT_COMPLETED", "A1", sourceProviderId=20, payload={"appointmentId": 1})

    dispatcher.dispatch(completed)
    dispatcher.dispatch(completed)
    dispatcher.dispatch(completed.replace('"A1"', '"A2"'))

    [(_, _, _, used)] = subscriptions(payments_uow_factory)
    assert used == 2


def test_usage_on_an_invalid_subscription_is_acknowledged_and_not_counted(payments_bus, dispatcher,
                                                                         payments_uow_factory):
    start(payments_bus, external_id="sub_9")
    completed = envelope("APPOINTMENT_COMPLETED", "A1", payload={"providerId": 30, "appointmentId": 1})

    assert dispatcher.dispatch(completed) is Ack.ACK

    [(_, _, status, used)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.INCOMPLETE
    assert used == 0


def test_deleted_provider_subscription_is_canceled(dispatcher, payments_uow_factory):
    dispatcher.dispatch(registered())
    dispatcher.dispatch(envelope("USER_DELETED", "D1", sourceUserId=20, role="PROVIDER"))

    [(_, _, status, _)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.CANCELED


def test_webhook_applies_status_and_period(payments_bus, payments_uow_factory):
    start(payments_bus)
    period_end = datetime(2024, 7, 1, tzinfo=timezone.utc)

    assert webhook(payments_bus, "active", webhook_id="wh_1", period_end=period_end) == "applied"
    assert webhook(payments_bus, "active", webhook_id="wh_1", period_end=period_end) == "duplicate"
    assert webhook(payments_bus, "active", webhook_id="wh_2") == "unchanged"

    [(_, _, status, _)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.ACTIVE


def test_webhooks_without_id_are_deduplicated_on_their_content(payments_bus, payments_uow_factory):
    start(payments_bus)
    assert webhook(payments_bus, "active") == "applied"
    assert webhook(payments_bus, "past_due") == "applied"
    assert webhook(payments_bus, "active") == "applied"
    assert webhook(payments_bus, "past_due") == "duplicate"

    [(_, _, status, _)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.ACTIVE


def test_redelivered_webhook_without_id_changes_nothing(payments_bus, payments_uow_factory):
    start(payments_bus)
    assert webhook(payments_bus, "active") == "applied"
    assert webhook(payments_bus, "active") == "unchanged"
    assert webhook(payments_bus, "active") == "duplicate"

    [(_, _, status, _)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.ACTIVE


def test_recovered_payment_is_applied_after_past_due(payments_bus, payments_uow_factory):
    start(payments_bus)
    webhook(payments_bus, "active")
    webhook(payments_bus, "past_due")

    assert webhook(payments_bus, "active") == "applied"
    [(_, _, status, _)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.ACTIVE


def test_out_of_order_webhook_is_ignored_not_applied(payments_bus, payments_uow_factory):
    start(payments_bus)
    assert webhook(payments_bus, "canceled", webhook_id="wh_2") == "applied"
    assert webhook(payments_bus, "active", webhook_id="wh_1") == "ignored"
    assert webhook(payments_bus, "active", webhook_id="wh_1") == "duplicate"

    [(_, _, status, _)] = subscriptions(payments_uow_factory)
    assert status == SubscriptionStatus.CANCELED


def test_webhook_for_unknown_subscription_can_be_retried(payments_bus):
    with pytest.raises(EntityNotFound):
        webhook(payments_bus, "active", webhook_id="wh_1", external_id="sub_missing")
    start(payments_bus, external_id="sub_missing")
    assert webhook(payments_bus, "active", webhook_id="wh_1", external_id="sub_missing") == "applied"


def test_unrecognised_webhook_status(payments_bus):
    start(payments_bus)
    with pytest.raises(PayloadError):
        webhook(payments_bus, "on_fire")


def test_downgrade_publishes_plan_downgraded(payments_bus, publisher):
    start(payments_bus, trial=True)

    payments_bus.handle(commands.DowngradePlan(provider_id=30, plan_id="5"))

    [downgraded] = publisher.of_type("PLAN_DOWNGRADED")
    assert downgraded.payload["previousPlanId"] == "pro"
    assert downgraded.payload["planId"] == "5"
    assert downgraded.role == "PROVIDER"
