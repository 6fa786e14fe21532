import logging
from sqlalchemy import (
    Table,
    MetaData,
    Column,
    String,
    DateTime,
    inspect,
)

logger = logging.getLogger(__name__)


def processed_events_table(metadata: MetaData) -> Table:
    """Per-consumer record of handled event ids.

    The composite primary key is the idempotency constraint: a second insert
    of the same (consumer, event_id) fails inside the handler's transaction.
    """
    return Table(
        "processed_events",
        metadata,
        Column("consumer", String(128), primary_key=True),
        Column("event_id", String(255), primary_key=True),
        Column("event_type", String(128), nullable=False),
        Column("processed_at", DateTime(timezone=True), nullable=False),
    )


def receive_load(entity, _):
    """Aggregates loaded from the database start with an empty event list."""
    entity.events = []


def is_mapped(cls) -> bool:
    """Mappers are process-wide; tests and entrypoints may both try to start them."""
    return inspect(cls, raiseerr=False) is not None
