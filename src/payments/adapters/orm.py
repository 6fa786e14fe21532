import logging
from sqlalchemy import (
    Table,
    Column,
    BigInteger,
    Integer,
    String,
    DateTime,
    Enum,
    event,
)
from sqlalchemy.orm import registry

from shared.adapters import orm as shared_orm
from payments.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("subscription_id", String(36), primary_key=True),
    Column("provider_id", BigInteger, nullable=False, index=True),
    Column("plan_id", String(255), nullable=False),
    Column("gateway", Enum(model.PaymentGateway, native_enum=False, length=16), nullable=False),
    Column("status", Enum(model.SubscriptionStatus, native_enum=False, length=32), nullable=False),
    Column("email", String(255)),
    # Webhooks find their subscription through this column
    Column("external_subscription_id", String(255), unique=True),
    Column("external_customer_id", String(255)),
    Column("current_period_start", DateTime(timezone=True)),
    Column("current_period_end", DateTime(timezone=True)),
    Column("canceled_at", DateTime(timezone=True)),
    Column("appointments_used", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("status_changed_at", DateTime(timezone=True), nullable=False),
)

processed_events = shared_orm.processed_events_table(metadata)


def start_mappers():
    if shared_orm.is_mapped(model.Subscription):
        return
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.Subscription, subscriptions)
    event.listen(model.Subscription, "load", shared_orm.receive_load)
