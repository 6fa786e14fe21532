import logging
from sqlalchemy import (
    Table,
    Column,
    BigInteger,
    Integer,
    String,
    Text,
    DateTime,
    Enum,
    event,
)
from sqlalchemy.orm import registry

from shared.adapters import orm as shared_orm
from notifications.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

notification_deliveries = Table(
    "notification_deliveries",
    metadata,
    Column("delivery_id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", BigInteger, index=True),
    Column("target_role", Enum(model.TargetRole, native_enum=False, length=16), nullable=False),
    Column("channel", Enum(model.NotificationChannel, native_enum=False, length=32), nullable=False),
    Column("recipient", String(255), nullable=False),
    Column("subject", String(255), nullable=False),
    Column("body", Text, nullable=False),
    Column("template", String(64)),
    Column("source_event_id", String(255), index=True),
    Column("status", Enum(model.DeliveryStatus, native_enum=False, length=16), nullable=False, index=True),
    # Provider-assigned message id; receipts are matched on it
    Column("external_id", String(255), unique=True),
    Column("error_message", Text),
    Column("retry_count", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("status_changed_at", DateTime(timezone=True), nullable=False),
)

processed_events = shared_orm.processed_events_table(metadata)


def start_mappers():
    if shared_orm.is_mapped(model.NotificationDelivery):
        return
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.NotificationDelivery, notification_deliveries)
    event.listen(model.NotificationDelivery, "load", shared_orm.receive_load)
