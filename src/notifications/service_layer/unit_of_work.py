# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from shared.adapters.idempotency import SqlAlchemyIdempotencyGuard
from shared.service_layer import unit_of_work
from notifications.adapters import orm, repository

CONSUMER = "notifications"


@lru_cache(maxsize=None)
def default_session_factory():
    return sessionmaker(
        bind=create_engine(
            config.get_postgres_uri(config.get_service_db_name("notifications")),
            isolation_level="REPEATABLE READ",
        ),
        expire_on_commit=False,
    )


class AbstractUnitOfWork(unit_of_work.AbstractUnitOfWork):
    deliveries: repository.AbstractDeliveryRepository


class SqlAlchemyUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork, AbstractUnitOfWork):
    default_session_factory = staticmethod(default_session_factory)

    def start_repositories(self, session: Session):
        self.deliveries = repository.SqlAlchemyDeliveryRepository(session)
        self.processed_events = SqlAlchemyIdempotencyGuard(session, orm.processed_events, CONSUMER)
        return [self.deliveries]
