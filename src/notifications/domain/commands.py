"""Commands for the notifications service."""

from dataclasses import dataclass
from typing import Optional

from shared.domain.commands import Command


@dataclass
class ApplyDeliveryReceipt(Command):
    """Provider webhook reporting what happened to a message it accepted."""
    provider: str
    external_id: str
    status: str
    webhook_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def idempotency_key(self) -> str:
        if self.webhook_id:
            return f"{self.provider.upper()}:{self.webhook_id}"
        return f"{self.provider.upper()}:{self.external_id}:{self.status.lower()}"


@dataclass
class RetryFailedDeliveries(Command):
    max_attempts: Optional[int] = None
    limit: int = 100
