import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from shared.domain.commands import Event, as_utc, utc_now
from shared.domain.exceptions import DomainError, InvalidTransition, PayloadError
from shared.domain.lifecycle import Lifecycle, transition
from payments.domain import events


class SubscriptionStatus(str, enum.Enum):
    INCOMPLETE = "INCOMPLETE"
    TRIALING = "TRIALING"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    PENDING = "PENDING"
    UNPAID = "UNPAID"
    CANCELED = "CANCELED"


class PaymentGateway(str, enum.Enum):
    STRIPE = "STRIPE"
    MERCADOPAGO = "MERCADOPAGO"
    MANUAL = "MANUAL"
    FREE = "FREE"


S = SubscriptionStatus

SUBSCRIPTION_LIFECYCLE = Lifecycle(
    "Subscription",
    {
        "start_trial": ((S.INCOMPLETE,), S.TRIALING),
        "activate": ((S.INCOMPLETE, S.TRIALING, S.PAST_DUE, S.PENDING), S.ACTIVE),
        "mark_pending": ((S.INCOMPLETE,), S.PENDING),
        "mark_past_due": ((S.ACTIVE, S.TRIALING), S.PAST_DUE),
        "mark_unpaid": ((S.PAST_DUE,), S.UNPAID),
        "cancel": ((S.INCOMPLETE, S.TRIALING, S.ACTIVE, S.PAST_DUE, S.PENDING), S.CANCELED),
    },
    terminal=(S.CANCELED, S.UNPAID),
)

# Operation that moves a subscription into each status reported by a gateway
OPERATION_FOR_STATUS = {
    S.TRIALING: "start_trial",
    S.ACTIVE: "activate",
    S.PENDING: "mark_pending",
    S.PAST_DUE: "mark_past_due",
    S.UNPAID: "mark_unpaid",
    S.CANCELED: "cancel",
}

# Provider-specific status strings, lower-cased
GATEWAY_STATUSES = {
    PaymentGateway.STRIPE: {
        "trialing": S.TRIALING,
        "active": S.ACTIVE,
        "past_due": S.PAST_DUE,
        "unpaid": S.UNPAID,
        "canceled": S.CANCELED,
        "incomplete_expired": S.CANCELED,
        "incomplete": S.INCOMPLETE,
    },
    PaymentGateway.MERCADOPAGO: {
        "pending": S.PENDING,
        "authorized": S.ACTIVE,
        "paused": S.PAST_DUE,
        "cancelled": S.CANCELED,
    },
}


def status_from_gateway(gateway: PaymentGateway, raw_status: str) -> SubscriptionStatus:
    """Translate a gateway's status string; our own status names are accepted for any gateway."""
    key = (raw_status or "").strip()
    mapped = GATEWAY_STATUSES.get(gateway, {}).get(key.lower())
    if mapped is not None:
        return mapped
    try:
        return SubscriptionStatus(key.upper())
    except ValueError:
        raise PayloadError(f"unknown {gateway.value} subscription status {raw_status!r}") from None


@dataclass(eq=False)
class Subscription:
    provider_id: int
    plan_id: str
    gateway: PaymentGateway
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: SubscriptionStatus = SubscriptionStatus.INCOMPLETE
    email: Optional[str] = None
    external_subscription_id: Optional[str] = None
    external_customer_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    appointments_used: int = 0
    created_at: datetime = field(default_factory=utc_now)
    status_changed_at: datetime = field(default_factory=utc_now)
    events: List[Event] = field(default_factory=list, repr=False)

    @property
    def current_state(self) -> SubscriptionStatus:
        return self.status

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Grants access: active or trialing, or canceled but still inside the paid period."""
        if self.status in (S.ACTIVE, S.TRIALING):
            return True
        if self.status == S.CANCELED and self.current_period_end is not None:
            return as_utc(self.current_period_end) > (now or utc_now())
        return False

    def start_trial(self, period_end: Optional[datetime] = None) -> None:
        self._transition("start_trial")
        self._set_period(None, period_end)

    def activate(self, period_start: Optional[datetime] = None, period_end: Optional[datetime] = None) -> None:
        self._transition("activate")
        self._set_period(period_start, period_end)

    def mark_pending(self) -> None:
        self._transition("mark_pending")

    def mark_past_due(self) -> None:
        self._transition("mark_past_due")

    def mark_unpaid(self) -> None:
        self._transition("mark_unpaid")

    def cancel(self) -> None:
        self._transition("cancel")
        self.canceled_at = self.status_changed_at

    def apply_gateway_status(self, target: SubscriptionStatus, period_start: Optional[datetime] = None,
                             period_end: Optional[datetime] = None) -> bool:
        """Move to the status a gateway reports.

        Reporting the current status again only refreshes the billing period
        (renewals) and returns False.
        """
        if target == self.status:
            self._set_period(period_start, period_end)
            return False
        operation = OPERATION_FOR_STATUS.get(target)
        if operation is None:
            raise InvalidTransition("Subscription", self.subscription_id, self.status, f"return to {target.value}")
        self._transition(operation)
        if target == S.CANCELED:
            self.canceled_at = self.status_changed_at
        self._set_period(period_start, period_end)
        return True

    def record_appointment_usage(self) -> int:
        if not self.is_valid():
            raise DomainError(f"subscription {self.subscription_id} is {self.status.value}, usage not counted")
        self.appointments_used += 1
        return self.appointments_used

    def downgrade(self, plan_id: str) -> None:
        if self.status not in (S.ACTIVE, S.TRIALING):
            raise InvalidTransition("Subscription", self.subscription_id, self.status, "downgrade")
        if plan_id == self.plan_id:
            return
        previous_plan_id, self.plan_id = self.plan_id, plan_id
        self.events.append(events.PlanDowngraded(
            provider_id=self.provider_id,
            subscription_id=self.subscription_id,
            previous_plan_id=previous_plan_id,
            plan_id=plan_id,
            email=self.email,
        ))

    def _set_period(self, period_start: Optional[datetime], period_end: Optional[datetime]) -> None:
        if period_start is not None:
            self.current_period_start = period_start
        if period_end is not None:
            self.current_period_end = period_end

    def _transition(self, operation: str) -> None:
        transition(self, SUBSCRIPTION_LIFECYCLE, operation, entity_id=self.subscription_id)
