# pylint: disable=broad-except
"""Event publishers: turn a domain fact into an Envelope and hand it to the bus.

Publishing is fire-and-forget and fail-open. Nothing raised while
serializing or talking to Redis ever reaches the caller, whose own commit
has already happened.
"""

import abc
import enum
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Callable, Optional

import redis
from pydantic.alias_generators import to_camel

import config
from shared.domain.commands import Event
from shared.domain.envelope import Envelope

logger = logging.getLogger(__name__)


def _wire_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def envelope_from(event: Event, source_user_id=None, source_provider_id=None,
                  email: Optional[str] = None, role: Optional[str] = None) -> Envelope:
    """Build an Envelope from a domain event dataclass.

    Dataclass fields become camelCase payload keys.
    """
    payload = {to_camel(key): _wire_value(value) for key, value in asdict(event).items()}
    return Envelope(
        event_type=event.event_type,
        source_user_id=source_user_id,
        source_provider_id=source_provider_id,
        email=email,
        role=role,
        payload=payload,
    )


class AbstractEventPublisher(abc.ABC):
    def publish(self, envelope: Envelope) -> None:
        """Assign the event id if missing and hand the envelope off. Never raises."""
        try:
            envelope.ensure_event_id()
            self._publish(envelope)
        except Exception as e:
            logger.error(
                f"Failed to publish {envelope.event_type} event {envelope.event_id}, dropped: {e}"
            )

    @abc.abstractmethod
    def _publish(self, envelope: Envelope) -> None:
        raise NotImplementedError


class RedisStreamPublisher(AbstractEventPublisher):
    """Appends envelopes to the Redis stream routed for their event type."""

    def __init__(self, client: redis.Redis, stream_for: Callable[[str], str] = config.get_stream_for,
                 maxlen: Optional[int] = None):
        self.client = client
        self.stream_for = stream_for
        self.maxlen = maxlen

    def _publish(self, envelope: Envelope) -> None:
        stream = self.stream_for(envelope.event_type)
        message = envelope.to_json()
        self.client.xadd(stream, {"data": message}, maxlen=self.maxlen, approximate=True)
        logger.info(
            "published: stream=%s, type=%s, event_id=%s",
            stream, envelope.event_type, envelope.event_id,
        )


class NoOpEventPublisher(AbstractEventPublisher):
    """Stands in for the bus when it is disabled; logs and performs no I/O."""

    def _publish(self, envelope: Envelope) -> None:
        logger.debug(
            "[no-op] event bus disabled, not publishing %s (%s)",
            envelope.event_type, envelope.event_id,
        )


def make_publisher(bus_config=None, client: Optional[redis.Redis] = None) -> AbstractEventPublisher:
    """Select the publisher once at process start from configuration."""
    bus_config = bus_config or config.get_bus_config()
    if not bus_config["enabled"]:
        logger.info("Event bus disabled, using no-op publisher")
        return NoOpEventPublisher()

    client = client or redis.Redis(**config.get_redis_host_and_port())
    logger.info("Event bus enabled, publishing to Redis streams")
    return RedisStreamPublisher(client)
