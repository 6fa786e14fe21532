"""Message templates, keyed by template name."""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass(frozen=True)
class Template:
    name: str
    subject: str
    body: str

    def render(self, values: Mapping[str, object]):
        """Subject and body with ``{placeholders}`` filled; unknown ones render empty."""
        safe = _Blank(values)
        return self.subject.format_map(safe), self.body.format_map(safe)


class _Blank(dict):
    def __missing__(self, key):
        return ""


TEMPLATES = {
    t.name: t for t in (
        Template("welcome_consumer", "Welcome to QuHealthy",
                 "Hi {name}, your account is ready. Book your first appointment whenever you like."),
        Template("welcome_provider", "Welcome to QuHealthy, {name}",
                 "Your provider account is ready. Complete your onboarding to appear in the marketplace."),
        Template("account_deleted", "Account deleted",
                 "Your account has been permanently deleted. We hope to see you again."),
        Template("appointment_confirmed", "Appointment confirmed",
                 "Your appointment #{appointmentId} has been scheduled."),
        Template("appointment_new_patient", "New appointment booked",
                 "You have a new patient in your agenda (appointment #{appointmentId})."),
        Template("appointment_canceled", "Appointment canceled",
                 "Appointment #{appointmentId} has been canceled."),
        Template("review_request", "Tell us about your experience",
                 "Your appointment has finished. How was the service? Rate it at /reviews/rate/{appointmentId}"),
        Template("review_received", "You received a new review",
                 "A patient rated your service {rating}/5."),
        Template("provider_replied", "The provider replied to your review",
                 "Your provider answered: {reply}"),
        Template("onboarding_step_completed", "Onboarding step approved",
                 "Your {step} step has been approved."),
        Template("onboarding_step_rejected", "Onboarding step rejected",
                 "Your {step} step was rejected: {reason}"),
    )
}  # type: Dict[str, Template]
