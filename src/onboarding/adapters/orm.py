import logging
from sqlalchemy import (
    Table,
    Column,
    BigInteger,
    Integer,
    String,
    DateTime,
    Enum,
    JSON,
    event,
)
from sqlalchemy.orm import registry

from shared.adapters import orm as shared_orm
from onboarding.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata


def _step_columns():
    columns = []
    for step in model.STEPS:
        columns.append(Column(
            f"{step}_status",
            Enum(model.OnboardingStepStatus, native_enum=False, length=32),
            nullable=False,
        ))
        columns.append(Column(f"{step}_changed_at", DateTime(timezone=True)))
    return columns


# Keyed by provider id: one checklist per provider, never overwritten
provider_onboarding = Table(
    "provider_onboarding",
    metadata,
    Column("provider_id", BigInteger, primary_key=True, autoincrement=False),
    Column("selected_plan_id", Integer),
    Column("email", String(255)),
    *_step_columns(),
    Column("rejection_reasons", JSON),
    Column("attempt_count", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

processed_events = shared_orm.processed_events_table(metadata)


def start_mappers():
    if shared_orm.is_mapped(model.OnboardingChecklist):
        return
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.OnboardingChecklist, provider_onboarding)
    event.listen(model.OnboardingChecklist, "load", shared_orm.receive_load)
