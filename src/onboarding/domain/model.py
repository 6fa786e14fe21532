import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from shared.domain.commands import Event, utc_now
from shared.domain.exceptions import DomainError
from shared.domain.lifecycle import Lifecycle, transition
from onboarding.domain import events


class OnboardingStepStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    UNDER_REVIEW = "UNDER_REVIEW"
    ACTION_REQUIRED = "ACTION_REQUIRED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    NOT_REQUIRED = "NOT_REQUIRED"

    @property
    def is_blocking(self) -> bool:
        """Step still keeps the provider out of the marketplace and needs their attention."""
        return self in (OnboardingStepStatus.PENDING, OnboardingStepStatus.ACTION_REQUIRED,
                        OnboardingStepStatus.REJECTED)

    @property
    def is_finished(self) -> bool:
        return self in (OnboardingStepStatus.COMPLETED, OnboardingStepStatus.NOT_REQUIRED)


S = OnboardingStepStatus

STEPS = ("profile", "kyc", "license", "fiscal", "marketplace")

ONBOARDING_STEP_LIFECYCLE = Lifecycle(
    "OnboardingStep",
    {
        "start": ((S.PENDING, S.ACTION_REQUIRED), S.IN_PROGRESS),
        "submit": ((S.PENDING, S.IN_PROGRESS, S.ACTION_REQUIRED), S.UNDER_REVIEW),
        "request_action": ((S.UNDER_REVIEW,), S.ACTION_REQUIRED),
        "approve": ((S.UNDER_REVIEW,), S.COMPLETED),
        "reject": ((S.UNDER_REVIEW, S.ACTION_REQUIRED), S.REJECTED),
        "waive": ((S.PENDING, S.IN_PROGRESS, S.ACTION_REQUIRED), S.NOT_REQUIRED),
    },
    terminal=(S.COMPLETED, S.REJECTED, S.NOT_REQUIRED),
)


@dataclass(eq=False)
class OnboardingChecklist:
    """A provider's onboarding progress: one status per step, created once at registration."""

    provider_id: int
    selected_plan_id: Optional[int] = None
    email: Optional[str] = None
    profile_status: OnboardingStepStatus = OnboardingStepStatus.PENDING
    kyc_status: OnboardingStepStatus = OnboardingStepStatus.PENDING
    license_status: OnboardingStepStatus = OnboardingStepStatus.PENDING
    fiscal_status: OnboardingStepStatus = OnboardingStepStatus.PENDING
    marketplace_status: OnboardingStepStatus = OnboardingStepStatus.PENDING
    profile_changed_at: Optional[datetime] = None
    kyc_changed_at: Optional[datetime] = None
    license_changed_at: Optional[datetime] = None
    fiscal_changed_at: Optional[datetime] = None
    marketplace_changed_at: Optional[datetime] = None
    rejection_reasons: Optional[Dict[str, str]] = None
    attempt_count: int = 0
    created_at: datetime = field(default_factory=utc_now)
    events: List[Event] = field(default_factory=list, repr=False)

    def status_of(self, step: str) -> OnboardingStepStatus:
        return getattr(self, self._status_attr(step))

    def is_blocking(self, step: str) -> bool:
        return self.status_of(step).is_blocking

    def is_finished(self, step: str) -> bool:
        return self.status_of(step).is_finished

    @property
    def blocking_steps(self) -> List[str]:
        return [step for step in STEPS if self.is_blocking(step)]

    @property
    def is_complete(self) -> bool:
        return all(self.is_finished(step) for step in STEPS)

    def start(self, step: str) -> None:
        self._leave(step, "start")

    def submit(self, step: str) -> None:
        """Send a step for review; a resubmission after ACTION_REQUIRED counts as a new attempt."""
        self._leave(step, "submit")

    def _leave(self, step: str, operation: str) -> None:
        # Reworking a step after ACTION_REQUIRED is one attempt, whether or not it is started first
        resubmission = self.status_of(step) == OnboardingStepStatus.ACTION_REQUIRED
        self._transition(step, operation)
        if resubmission:
            self.attempt_count += 1

    def request_action(self, step: str, reason: Optional[str] = None) -> None:
        self._transition(step, "request_action")
        self._record_reason(step, reason)

    def approve(self, step: str) -> None:
        self._transition(step, "approve")
        self._clear_reason(step)
        self.events.append(events.OnboardingStepCompleted(
            provider_id=self.provider_id, step=step, email=self.email,
        ))

    def reject(self, step: str, reason: Optional[str] = None) -> None:
        self._transition(step, "reject")
        self._record_reason(step, reason)
        self.events.append(events.OnboardingStepRejected(
            provider_id=self.provider_id, step=step, reason=reason, email=self.email,
        ))

    def waive(self, step: str) -> None:
        self._transition(step, "waive")

    def _transition(self, step: str, operation: str) -> None:
        transition(
            self, ONBOARDING_STEP_LIFECYCLE, operation,
            entity_id=f"{self.provider_id}/{step}",
            status_attr=self._status_attr(step),
            changed_attr=f"{step}_changed_at",
        )

    # The JSON column only notices reassignment, never in-place mutation
    def _record_reason(self, step: str, reason: Optional[str]) -> None:
        if reason:
            self.rejection_reasons = {**(self.rejection_reasons or {}), step: reason}

    def _clear_reason(self, step: str) -> None:
        if self.rejection_reasons and step in self.rejection_reasons:
            self.rejection_reasons = {k: v for k, v in self.rejection_reasons.items() if k != step}

    @staticmethod
    def _status_attr(step: str) -> str:
        if step not in STEPS:
            raise DomainError(f"unknown onboarding step {step!r}")
        return f"{step}_status"
