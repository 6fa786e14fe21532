"""Commands for the payments service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.commands import Command


@dataclass
class StartSubscription(Command):
    """Record a subscription created at a gateway checkout."""
    provider_id: int
    plan_id: str
    gateway: str
    external_subscription_id: Optional[str] = None
    external_customer_id: Optional[str] = None
    email: Optional[str] = None
    trial: bool = False


@dataclass
class DowngradePlan(Command):
    provider_id: int
    plan_id: str


@dataclass
class ApplyGatewayWebhook(Command):
    """A gateway callback about one subscription, identified by the gateway's own id."""
    gateway: str
    external_subscription_id: str
    status: str
    webhook_id: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    def idempotency_key(self, current_status: str) -> str:
        """Without a webhook id the key is the move itself, so returning to an earlier status is a new key."""
        if self.webhook_id:
            return f"{self.gateway.upper()}:{self.webhook_id}"
        period_end = self.period_end.isoformat() if self.period_end else ""
        return (
            f"{self.gateway.upper()}:{self.external_subscription_id}:"
            f"{current_status.lower()}->{self.status.lower()}:{period_end}"
        )
