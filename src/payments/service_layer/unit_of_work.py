# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from shared.adapters.idempotency import SqlAlchemyIdempotencyGuard
from shared.service_layer import unit_of_work
from payments.adapters import orm, repository

CONSUMER = "payments"


@lru_cache(maxsize=None)
def default_session_factory():
    return sessionmaker(
        bind=create_engine(
            config.get_postgres_uri(config.get_service_db_name("payments")),
            isolation_level="REPEATABLE READ",
        ),
        expire_on_commit=False,
    )


class AbstractUnitOfWork(unit_of_work.AbstractUnitOfWork):
    subscriptions: repository.AbstractSubscriptionRepository


class SqlAlchemyUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork, AbstractUnitOfWork):
    default_session_factory = staticmethod(default_session_factory)

    def start_repositories(self, session: Session):
        self.subscriptions = repository.SqlAlchemySubscriptionRepository(session)
        self.processed_events = SqlAlchemyIdempotencyGuard(session, orm.processed_events, CONSUMER)
        return [self.subscriptions]
