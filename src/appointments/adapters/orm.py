import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    DateTime,
    Enum,
    event,
)
from sqlalchemy.orm import registry

from shared.adapters import orm as shared_orm
from appointments.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

appointments = Table(
    "appointments",
    metadata,
    Column("appointment_id", Integer, primary_key=True, autoincrement=True),
    Column("patient_id", Integer, nullable=False, index=True),
    Column("provider_id", Integer, nullable=False, index=True),
    Column("service_id", Integer),
    Column("patient_email", String(255)),
    Column("provider_email", String(255)),
    Column("start_time", DateTime(timezone=True), nullable=False),
    Column("end_time", DateTime(timezone=True), nullable=False),
    Column(
        "status",
        Enum(model.AppointmentStatus, native_enum=False, length=32),
        nullable=False,
    ),
    Column("canceled_by", Enum(model.CanceledBy, native_enum=False, length=16)),
    Column("cancellation_reason", String(500)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("status_changed_at", DateTime(timezone=True), nullable=False),
)

processed_events = shared_orm.processed_events_table(metadata)


def start_mappers():
    if shared_orm.is_mapped(model.Appointment):
        return
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.Appointment, appointments)
    event.listen(model.Appointment, "load", shared_orm.receive_load)
