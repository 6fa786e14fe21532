"""Outbound notification senders - adapters hiding the email/SMS providers."""

import abc
import logging
import uuid
from typing import Optional

import requests

import config
from notifications.domain.model import NotificationDelivery

logger = logging.getLogger(__name__)


class NotificationSendError(Exception):
    """The provider refused the message or could not be reached."""
    pass


class AbstractNotificationSender(abc.ABC):
    """Abstract base class for notification sender implementations."""

    @abc.abstractmethod
    def send(self, delivery: NotificationDelivery) -> Optional[str]:
        """
        Hand one delivery to the provider.

        Args:
            delivery: The delivery to send

        Returns:
            The provider's id for the message, used to match its webhooks

        Raises:
            NotificationSendError: If the provider did not accept the message
        """
        raise NotImplementedError


class LoggingNotificationSender(AbstractNotificationSender):
    """Sends nothing; logs the message and makes up a provider id."""

    def send(self, delivery: NotificationDelivery) -> Optional[str]:
        external_id = f"log-{uuid.uuid4()}"
        logger.info(
            f"[{delivery.channel.value}] to {delivery.recipient}: {delivery.subject} ({external_id})"
        )
        return external_id


class HTTPRelaySender(AbstractNotificationSender):
    """Posts deliveries to an HTTP relay that fronts the email/SMS providers."""

    def __init__(self, base_url: str, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def send(self, delivery: NotificationDelivery) -> Optional[str]:
        url = f"{self.base_url}/messages"
        try:
            response = requests.post(
                url,
                json=dict(
                    channel=delivery.channel.value,
                    to=delivery.recipient,
                    subject=delivery.subject,
                    body=delivery.body,
                    reference=str(delivery.delivery_id),
                ),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json().get("id")

        except requests.exceptions.HTTPError as e:
            logger.error(f"Relay rejected delivery {delivery.delivery_id}: {e}")
            raise NotificationSendError(f"Relay rejected message: {e}") from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Network error sending delivery {delivery.delivery_id}: {e}")
            raise NotificationSendError(f"Network error: {e}") from e

        except ValueError as e:
            raise NotificationSendError(f"Relay answered with invalid JSON: {e}") from e


def make_sender(notification_config=None) -> AbstractNotificationSender:
    notification_config = notification_config or config.get_notification_config()
    if notification_config.get("relay_url"):
        return HTTPRelaySender(notification_config["relay_url"])
    return LoggingNotificationSender()
