"""Idempotency guard: per-consumer deduplication on event id."""

import abc
import logging

from sqlalchemy import Table, insert, select
from sqlalchemy.exc import IntegrityError

from shared.domain.commands import utc_now

logger = logging.getLogger(__name__)


class AbstractIdempotencyGuard(abc.ABC):
    def __init__(self, consumer: str):
        self.consumer = consumer

    def claim(self, event_id: str, event_type: str) -> bool:
        """Check and record ``event_id`` in one step.

        Returns True when the event has not been handled by this consumer
        yet; False for a duplicate. Must be the first statement of the
        transaction that applies the event.
        """
        claimed = self._claim(event_id, event_type)
        if not claimed:
            logger.info(f"[{self.consumer}] event {event_id} ({event_type}) already processed")
        return claimed

    @abc.abstractmethod
    def seen(self, event_id: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def _claim(self, event_id: str, event_type: str) -> bool:
        raise NotImplementedError


class SqlAlchemyIdempotencyGuard(AbstractIdempotencyGuard):
    """Relies on the processed_events primary key to reject a second insert.

    Two concurrent deliveries of one id both attempt the insert; the loser
    blocks on the index until the winner commits and then fails.
    """

    def __init__(self, session, table: Table, consumer: str):
        super().__init__(consumer)
        self.session = session
        self.table = table

    def seen(self, event_id: str) -> bool:
        row = self.session.execute(
            select(self.table.c.event_id).where(
                self.table.c.consumer == self.consumer,
                self.table.c.event_id == event_id,
            )
        ).first()
        return row is not None

    def _claim(self, event_id: str, event_type: str) -> bool:
        try:
            self.session.execute(
                insert(self.table).values(
                    consumer=self.consumer,
                    event_id=event_id,
                    event_type=event_type,
                    processed_at=utc_now(),
                )
            )
        except IntegrityError:
            self.session.rollback()
            return False
        return True

