import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from shared.domain.commands import Event, utc_now
from shared.domain.exceptions import InvalidTransition, PayloadError
from shared.domain.lifecycle import Lifecycle, transition
from notifications.domain import events


class DeliveryStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    BOUNCED = "BOUNCED"


class NotificationChannel(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"
    PUSH_NOTIFICATION = "PUSH_NOTIFICATION"


class TargetRole(str, enum.Enum):
    CONSUMER = "CONSUMER"
    PROVIDER = "PROVIDER"


S = DeliveryStatus

DELIVERY_LIFECYCLE = Lifecycle(
    "NotificationDelivery",
    {
        "mark_sent": ((S.PENDING,), S.SENT),
        "mark_failed": ((S.PENDING,), S.FAILED),
        "mark_delivered": ((S.SENT,), S.DELIVERED),
        "mark_bounced": ((S.SENT,), S.BOUNCED),
    },
    terminal=(S.DELIVERED, S.FAILED, S.BOUNCED),
)

# Provider receipt statuses, lower-cased, and the operation each one triggers
RECEIPT_OPERATIONS = {
    "delivered": "mark_delivered",
    "email.delivered": "mark_delivered",
    "bounced": "mark_bounced",
    "email.bounced": "mark_bounced",
    "undelivered": "mark_bounced",
    "failed": "mark_bounced",
    "complained": "mark_bounced",
    "email.complained": "mark_bounced",
}


def receipt_operation(raw_status: str) -> str:
    operation = RECEIPT_OPERATIONS.get((raw_status or "").strip().lower())
    if operation is None:
        raise PayloadError(f"unknown delivery receipt status {raw_status!r}")
    return operation


@dataclass(eq=False)
class NotificationDelivery:
    """One message to one recipient over one channel, from queueing to the provider's receipt."""

    user_id: Optional[int]
    target_role: TargetRole
    channel: NotificationChannel
    recipient: str
    subject: str
    body: str
    template: Optional[str] = None
    source_event_id: Optional[str] = None
    delivery_id: Optional[int] = None
    status: DeliveryStatus = DeliveryStatus.PENDING
    external_id: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    created_at: datetime = field(default_factory=utc_now)
    status_changed_at: datetime = field(default_factory=utc_now)
    events: List[Event] = field(default_factory=list, repr=False)

    @property
    def current_state(self) -> DeliveryStatus:
        return self.status

    def queue(self) -> None:
        """Ask for a send attempt once the row is committed."""
        self.events.append(events.DeliveryQueued(delivery_id=self.delivery_id))

    def mark_sent(self, external_id: Optional[str]) -> None:
        self._transition("mark_sent")
        self.external_id = external_id
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self._transition("mark_failed")
        self.error_message = error_message
        self.retry_count += 1

    def mark_delivered(self) -> None:
        self._transition("mark_delivered")

    def mark_bounced(self, error_message: Optional[str] = None) -> None:
        # A bounce is a failed attempt as far as the retry budget goes
        self._transition("mark_bounced")
        self.error_message = error_message
        self.retry_count += 1

    def can_retry(self, max_attempts: int) -> bool:
        return self.status == S.FAILED and self.retry_count < max_attempts

    def retry(self, max_attempts: int) -> None:
        """Requeue a failed send.

        FAILED is terminal for every provider-driven operation; the retry
        sweep is the only way out of it, and only under ``max_attempts``.
        """
        if not self.can_retry(max_attempts):
            raise InvalidTransition(
                "NotificationDelivery", self.delivery_id, self.status,
                f"retry (attempt {self.retry_count} of {max_attempts})",
            )
        self.status = S.PENDING
        self.status_changed_at = utc_now()
        self.queue()

    def apply_receipt(self, raw_status: str, error_message: Optional[str] = None) -> None:
        operation = receipt_operation(raw_status)
        if operation == "mark_bounced":
            self.mark_bounced(error_message)
        else:
            self.mark_delivered()

    def _transition(self, operation: str) -> None:
        transition(self, DELIVERY_LIFECYCLE, operation, entity_id=self.delivery_id)
