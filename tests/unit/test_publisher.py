"""Unit tests for event publishers"""
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar
from unittest.mock import Mock

import fakeredis
import pytest
import redis

from shared.adapters.publisher import (
    NoOpEventPublisher,
    RedisStreamPublisher,
    envelope_from,
    make_publisher,
)
from shared.domain.commands import Event
from shared.domain.envelope import Envelope


@dataclass
class SomethingHappened(Event):
    event_type: ClassVar[str] = "APPOINTMENT_COMPLETED"
    appointment_id: int
    consumer_email: str
    at: datetime


def bus_config(enabled):
    return dict(enabled=enabled)


@pytest.fixture
def client():
    return fakeredis.FakeRedis()


def test_envelope_from_event_uses_camel_case_payload():
    at = datetime(2024, 1, 2, 3, 4, tzinfo=timezone.utc)
    envelope = envelope_from(SomethingHappened(42, "ana@example.com", at), source_user_id=1)

    assert envelope.event_type == "APPOINTMENT_COMPLETED"
    assert envelope.payload == {"appointmentId": 42, "consumerEmail": "ana@example.com", "at": at.isoformat()}
    assert envelope.source_user_id == "1"
    assert envelope.event_id is None


def test_redis_publisher_appends_to_the_routed_stream(client):
    publisher = RedisStreamPublisher(client, stream_for=lambda event_type: f"test:{event_type}")
    envelope = Envelope(event_type="USER_REGISTERED", payload={"planId": 5})

    publisher.publish(envelope)

    [(_, fields)] = client.xrange("test:USER_REGISTERED")
    data = json.loads(fields[b"data"])
    assert data["eventId"] == envelope.event_id
    assert data["payload"] == {"planId": 5}


def test_retry_after_failure_keeps_the_event_id():
    failing = Mock()
    failing.xadd.side_effect = redis.exceptions.ConnectionError("down")
    envelope = Envelope(event_type="USER_REGISTERED")

    RedisStreamPublisher(failing, stream_for=lambda _: "s").publish(envelope)
    first_id = envelope.event_id
    RedisStreamPublisher(failing, stream_for=lambda _: "s").publish(envelope)

    assert first_id is not None
    assert envelope.event_id == first_id


def test_transport_failure_never_reaches_the_caller():
    failing = Mock()
    failing.xadd.side_effect = redis.exceptions.ConnectionError("down")
    publisher = RedisStreamPublisher(failing, stream_for=lambda _: "s")

    publisher.publish(Envelope(event_type="USER_REGISTERED"))

    failing.xadd.assert_called_once()


def test_routing_failure_never_reaches_the_caller(client):
    publisher = RedisStreamPublisher(client, stream_for=Mock(side_effect=KeyError("no topic")))
    publisher.publish(Envelope(event_type="USER_REGISTERED"))


def test_noop_publisher_performs_no_io():
    envelope = Envelope(event_type="USER_REGISTERED")
    NoOpEventPublisher().publish(envelope)
    assert envelope.event_id is not None


def test_disabled_bus_selects_noop_publisher():
    assert isinstance(make_publisher(bus_config(False)), NoOpEventPublisher)


def test_enabled_bus_selects_redis_publisher(client):
    assert isinstance(make_publisher(bus_config(True), client=client), RedisStreamPublisher)


def test_missing_switch_means_disabled(monkeypatch):
    monkeypatch.delenv("EVENT_BUS_ENABLED", raising=False)
    assert isinstance(make_publisher(), NoOpEventPublisher)
