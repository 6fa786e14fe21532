"""Webhook API tests through FastAPI's TestClient"""
import pytest
from fastapi.testclient import TestClient

from payments.domain.commands import StartSubscription
from payments.entrypoints import payment_api
from notifications.entrypoints import notification_api
from notifications import bootstrap as notifications_bootstrap


@pytest.fixture
def payments_client(payments_bus):
    payment_api.app.dependency_overrides[payment_api.get_bus] = lambda: payments_bus
    payments_bus.handle(StartSubscription(provider_id=30, plan_id="pro", gateway="stripe",
                                          external_subscription_id="sub_123"))
    yield TestClient(payment_api.app)
    payment_api.app.dependency_overrides.clear()


@pytest.fixture
def notifications_client(notifications_bus):
    notification_api.app.dependency_overrides[notification_api.get_bus] = lambda: notifications_bus
    yield TestClient(notification_api.app)
    notification_api.app.dependency_overrides.clear()


def test_payments_health(payments_client):
    response = payments_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_gateway_webhook_is_applied_once(payments_client):
    body = {"externalSubscriptionId": "sub_123", "status": "active", "webhookId": "evt_1"}

    first = payments_client.post("/api/v1/webhooks/stripe", json=body)
    second = payments_client.post("/api/v1/webhooks/stripe", json=body)

    assert first.status_code == 200
    assert first.json() == {"status": "applied", "external_subscription_id": "sub_123"}
    assert second.json()["status"] == "duplicate"
    subscription = payments_client.get("/api/v1/subscriptions/30").json()
    assert subscription["status"] == "ACTIVE"


def test_gateway_webhook_after_cancellation_is_ignored(payments_client):
    payments_client.post("/api/v1/webhooks/stripe",
                         json={"externalSubscriptionId": "sub_123", "status": "canceled", "webhookId": "evt_2"})

    response = payments_client.post("/api/v1/webhooks/stripe",
                                    json={"externalSubscriptionId": "sub_123", "status": "active", "webhookId": "evt_1"})

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"


def test_gateway_webhook_for_unknown_subscription(payments_client):
    response = payments_client.post("/api/v1/webhooks/stripe",
                                    json={"externalSubscriptionId": "sub_nope", "status": "active"})
    assert response.status_code == 404


@pytest.mark.parametrize("gateway, status", [("stripe", "on_fire"), ("paypal", "active")])
def test_gateway_webhook_with_unknown_gateway_or_status(payments_client, gateway, status):
    response = payments_client.post(f"/api/v1/webhooks/{gateway}",
                                    json={"externalSubscriptionId": "sub_123", "status": status})
    assert response.status_code == 400


def test_subscription_not_found(payments_client):
    assert payments_client.get("/api/v1/subscriptions/999").status_code == 404


def test_delivery_receipt_flow(notifications_client, notifications_bus):
    notifications_bootstrap.build_dispatcher(notifications_bus).dispatch(
        '{"eventId": "U1", "eventType": "USER_REGISTERED", "sourceUserId": 3, "email": "ana@example.com"}'
    )
    body = {"externalId": "ext-1", "status": "bounced", "webhookId": "wh_1", "errorMessage": "mailbox full"}

    first = notifications_client.post("/api/v1/webhooks/resend", json=body)
    second = notifications_client.post("/api/v1/webhooks/resend", json=body)

    assert first.json() == {"status": "applied", "external_id": "ext-1"}
    assert second.json()["status"] == "duplicate"
    delivery = notifications_client.get("/api/v1/deliveries/1").json()
    assert delivery["status"] == "BOUNCED"
    assert delivery["retry_count"] == 1


def test_delivery_receipt_for_unknown_message(notifications_client):
    response = notifications_client.post("/api/v1/webhooks/resend",
                                         json={"externalId": "nope", "status": "delivered"})
    assert response.status_code == 404


def test_delivery_receipt_with_unknown_status(notifications_client):
    response = notifications_client.post("/api/v1/webhooks/resend",
                                         json={"externalId": "ext-1", "status": "opened"})
    assert response.status_code == 400


def test_retry_endpoint(notifications_client):
    response = notifications_client.post("/api/v1/deliveries/retry", json={"maxAttempts": 5})
    assert response.status_code == 200
    assert response.json() == {"requeued": 0}


def test_delivery_not_found(notifications_client):
    assert notifications_client.get("/api/v1/deliveries/12").status_code == 404
