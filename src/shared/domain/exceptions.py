"""Error taxonomy for event handling.

DomainError and its subclasses are permanent: retrying the same message will
never succeed, so consumers acknowledge and log them. TransientError marks
failures the bus should redeliver.
"""


class DomainError(Exception):
    """Business-rule violation. Never retried."""


class InvalidTransition(DomainError):
    """Operation is not legal from the entity's current state."""

    def __init__(self, entity: str, entity_id, current, operation: str):
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.operation = operation
        current_name = getattr(current, "value", current)
        super().__init__(f"{entity} {entity_id}: cannot {operation} from {current_name}")


class PayloadError(DomainError):
    """Event payload lacks a required field or carries a malformed value."""


class EntityNotFound(DomainError):
    """Referenced entity does not exist in the local store."""


class TransientError(Exception):
    """Failure worth redelivering (storage down, deadline exceeded)."""


class HandlerTimeout(TransientError):
    """Handler did not finish within its deadline."""
