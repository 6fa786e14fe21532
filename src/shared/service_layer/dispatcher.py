# pylint: disable=broad-except
"""Routes inbound envelopes to consumer handlers and decides ack/nack.

Consumer handlers are plain functions ``handler(envelope, uow)`` registered
per event type. Each runs inside its own unit of work, after the idempotency
guard has claimed the event id in that same transaction.
"""

from __future__ import annotations
import enum
import logging
from typing import Callable, Dict, Optional, TYPE_CHECKING

from shared.domain.envelope import Envelope, EnvelopeDecodeError
from shared.domain.exceptions import DomainError, InvalidTransition

if TYPE_CHECKING:
    from shared.service_layer.messagebus import MessageBus
    from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class Ack(enum.Enum):
    ACK = "ACK"
    NACK = "NACK"
    DEAD_LETTER = "DEAD_LETTER"


ConsumerHandler = Callable[[Envelope, "AbstractUnitOfWork"], None]


class Dispatcher:
    def __init__(
        self,
        consumer: str,
        uow_factory: Callable[[], AbstractUnitOfWork],
        bus: Optional[MessageBus] = None,
    ):
        self.consumer = consumer
        self.uow_factory = uow_factory
        self.bus = bus
        self.handlers = {}  # type: Dict[str, ConsumerHandler]

    def register(self, event_type: str, handler: ConsumerHandler) -> None:
        if event_type in self.handlers:
            raise ValueError(f"[{self.consumer}] handler already registered for {event_type}")
        self.handlers[event_type] = handler

    def register_all(self, handlers: Dict[str, ConsumerHandler]) -> "Dispatcher":
        for event_type, handler in handlers.items():
            self.register(event_type, handler)
        return self

    def dispatch(self, raw) -> Ack:
        """Decode and handle one raw message. Never raises."""
        try:
            envelope = Envelope.from_json(raw)
        except EnvelopeDecodeError as e:
            logger.error(f"[{self.consumer}] undecodable message, dead-lettering: {e}")
            return Ack.DEAD_LETTER

        return self.dispatch_envelope(envelope)

    def dispatch_envelope(self, envelope: Envelope) -> Ack:
        handler = self.handlers.get(envelope.event_type)
        if handler is None:
            logger.debug(f"[{self.consumer}] no handler for {envelope.event_type}, acknowledging")
            return Ack.ACK

        try:
            new_events = self._apply(handler, envelope)
        except InvalidTransition as e:
            logger.warning(f"[{self.consumer}] ignoring {envelope.event_type} {envelope.event_id}: {e}")
            return Ack.ACK
        except DomainError as e:
            logger.warning(
                f"[{self.consumer}] permanent failure on {envelope.event_type} {envelope.event_id}, "
                f"acknowledging: {e}"
            )
            return Ack.ACK
        except Exception:
            logger.exception(
                "[%s] transient failure on %s %s, will be redelivered",
                self.consumer, envelope.event_type, envelope.event_id,
            )
            return Ack.NACK

        if new_events is None:
            return Ack.ACK

        # Follow-on events run only once the state change that raised them is committed
        if self.bus is not None and new_events:
            self.bus.handle_events(new_events)
        return Ack.ACK

    def _apply(self, handler: ConsumerHandler, envelope: Envelope):
        """Run ``handler`` in a fresh transaction; None means duplicate."""
        uow = self.uow_factory()
        with uow:
            if not uow.processed_events.claim(envelope.event_id, envelope.event_type):
                return None
            handler(envelope, uow)
            uow.commit()
            return uow.collect_new_events()
