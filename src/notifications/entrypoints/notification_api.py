"""
Notifications API Entrypoint - provider delivery receipts and the retry sweep
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
from notifications import bootstrap
from notifications.domain.commands import ApplyDeliveryReceipt, RetryFailedDeliveries
from notifications.service_layer import views

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Notifications API",
    description="Delivery receipts from email/SMS providers",
    version="1.0.0"
)


@lru_cache(maxsize=None)
def get_bus() -> MessageBus:
    return bootstrap.bootstrap()


class DeliveryReceipt(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    external_id: str
    status: str
    webhook_id: Optional[str] = None
    error_message: Optional[str] = None


class ReceiptResponse(BaseModel):
    status: str
    external_id: str


class RetryRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_attempts: Optional[int] = None
    limit: int = 100


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "notifications-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/api/v1/webhooks/{provider}", response_model=ReceiptResponse)
def receive_delivery_receipt(provider: str, receipt: DeliveryReceipt, bus: MessageBus = Depends(get_bus)):
    """
    Apply a provider receipt (delivered, bounced, ...) to the delivery it names.

    Redelivered receipts answer ``duplicate``; receipts for deliveries already
    settled answer ``ignored``.
    """
    cmd = ApplyDeliveryReceipt(
        provider=provider,
        external_id=receipt.external_id,
        status=receipt.status,
        webhook_id=receipt.webhook_id,
        error_message=receipt.error_message,
    )
    try:
        [outcome] = bus.handle(cmd)
    except EntityNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"{provider} receipt for {receipt.external_id}: {outcome}")
    return ReceiptResponse(status=outcome, external_id=receipt.external_id)


@app.post("/api/v1/deliveries/retry")
def retry_failed(request: Optional[RetryRequest] = None, bus: MessageBus = Depends(get_bus)):
    request = request or RetryRequest()
    [requeued] = bus.handle(RetryFailedDeliveries(max_attempts=request.max_attempts, limit=request.limit))
    return {"requeued": requeued}


@app.get("/api/v1/deliveries/{delivery_id}")
def get_delivery(delivery_id: int, bus: MessageBus = Depends(get_bus)):
    delivery = views.delivery(delivery_id, bus.uow_factory())
    if delivery is None:
        raise HTTPException(status_code=404, detail=f"Delivery {delivery_id} not found")
    return delivery


def main():
    uvicorn.run(app, host="0.0.0.0", port=config.get_api_port())
