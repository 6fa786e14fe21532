"""
Payments API Entrypoint - gateway webhooks dispatched as commands
"""
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

import config
from shared.domain.exceptions import EntityNotFound, PayloadError
from shared.service_layer.messagebus import MessageBus
from payments import bootstrap
from payments.domain.commands import ApplyGatewayWebhook
from payments.service_layer import views

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Payments API",
    description="Subscription state driven by payment gateway webhooks",
    version="1.0.0"
)


@lru_cache(maxsize=None)
def get_bus() -> MessageBus:
    return bootstrap.bootstrap()


class GatewayWebhook(BaseModel):
    """Normalised gateway callback; gateway-specific fields are ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    external_subscription_id: str
    status: str
    webhook_id: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


class WebhookResponse(BaseModel):
    status: str
    external_subscription_id: str


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "payments-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/api/v1/webhooks/{gateway}", response_model=WebhookResponse)
def receive_gateway_webhook(gateway: str, webhook: GatewayWebhook, bus: MessageBus = Depends(get_bus)):
    """
    Apply a gateway webhook to the subscription carrying its external id.

    Redeliveries answer ``duplicate`` and transitions the subscription can no
    longer take answer ``ignored``; both are 200 so the gateway stops retrying.
    """
    cmd = ApplyGatewayWebhook(
        gateway=gateway,
        external_subscription_id=webhook.external_subscription_id,
        status=webhook.status,
        webhook_id=webhook.webhook_id,
        period_start=webhook.period_start,
        period_end=webhook.period_end,
    )
    try:
        [outcome] = bus.handle(cmd)
    except EntityNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (PayloadError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"{gateway} webhook for {webhook.external_subscription_id}: {outcome}")
    return WebhookResponse(status=outcome, external_subscription_id=webhook.external_subscription_id)


@app.get("/api/v1/subscriptions/{provider_id}")
def get_subscription(provider_id: int, bus: MessageBus = Depends(get_bus)):
    subscription = views.current_subscription(provider_id, bus.uow_factory())
    if subscription is None:
        raise HTTPException(status_code=404, detail=f"Provider {provider_id} has no subscription")
    return subscription


def main():
    uvicorn.run(app, host="0.0.0.0", port=config.get_api_port())
