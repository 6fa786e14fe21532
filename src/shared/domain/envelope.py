"""Wire-level event envelope shared by every producer and consumer.

One JSON object per message::

    {
      "eventId": "<uuid>",
      "eventType": "<UPPER_SNAKE_CASE>",
      "payload": {"<key>": <any>, ...},
      "timestamp": "<ISO-8601 UTC>"
    }

Unknown top-level and payload fields are ignored so older consumers keep
working when producers add fields.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from shared.domain.commands import utc_now


class EventType:
    """Event type tags recognised across services."""

    USER_REGISTERED = "USER_REGISTERED"
    USER_DELETED = "USER_DELETED"
    APPOINTMENT_CREATED = "APPOINTMENT_CREATED"
    APPOINTMENT_COMPLETED = "APPOINTMENT_COMPLETED"
    APPOINTMENT_CANCELED = "APPOINTMENT_CANCELED"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
    REVIEW_CREATED = "REVIEW_CREATED"
    PROVIDER_REPLIED = "PROVIDER_REPLIED"
    REVIEW_REQUEST = "REVIEW_REQUEST"
    ITEM_CREATED = "ITEM_CREATED"
    ITEM_UPDATED = "ITEM_UPDATED"
    ITEM_ARCHIVED = "ITEM_ARCHIVED"
    PLAN_DOWNGRADED = "PLAN_DOWNGRADED"
    ONBOARDING_STEP_COMPLETED = "ONBOARDING_STEP_COMPLETED"
    ONBOARDING_STEP_REJECTED = "ONBOARDING_STEP_REJECTED"


class EnvelopeDecodeError(Exception):
    """Raw message could not be turned into an Envelope."""


class Envelope(BaseModel):
    """A domain fact wrapped for transport across services."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    event_id: Optional[str] = None
    event_type: str = Field(min_length=1)
    source_user_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sourceUserId", "userId", "source_user_id"),
        serialization_alias="sourceUserId",
    )
    source_provider_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sourceProviderId", "providerId", "source_provider_id"),
        serialization_alias="sourceProviderId",
    )
    email: Optional[str] = None
    role: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("event_id", "source_user_id", "source_provider_id", mode="before")
    @classmethod
    def _identifier_as_text(cls, value):
        if isinstance(value, bool):
            raise ValueError("identifier must be a string or an integer")
        if isinstance(value, int):
            return str(value)
        if value == "":
            return None
        return value

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_defaults_to_empty(cls, value):
        return {} if value is None else value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_in_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def ensure_event_id(self) -> str:
        """Assign an event id on first publish attempt; keep it on every retry."""
        if not self.event_id:
            self.event_id = str(uuid4())
        return self.event_id

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw) -> "Envelope":
        """Decode an inbound message.

        Raises EnvelopeDecodeError for anything that is not a JSON object with
        an ``eventType`` and an ``eventId``.
        """
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise EnvelopeDecodeError(f"message is not UTF-8: {e}") from e

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise EnvelopeDecodeError(f"message is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise EnvelopeDecodeError(f"message is a JSON {type(data).__name__}, expected an object")

        try:
            envelope = cls.model_validate(data)
        except ValidationError as e:
            raise EnvelopeDecodeError(f"invalid envelope: {e.errors(include_url=False)}") from e

        if not envelope.event_id:
            raise EnvelopeDecodeError("envelope has no eventId, idempotency cannot be enforced")

        return envelope
