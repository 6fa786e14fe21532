# pylint: disable=attribute-defined-outside-init
"""Abstract Unit of Work pattern for coordinating operations across repositories."""

from __future__ import annotations


import abc
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import Session

from shared.adapters.idempotency import AbstractIdempotencyGuard
from shared.adapters.repository import AbstractRepository
from shared.domain.commands import Event


class AbstractUnitOfWork(abc.ABC):
    """Unit of Work for one service: its repositories plus its idempotency guard."""

    processed_events: AbstractIdempotencyGuard

    def __enter__(self) -> AbstractUnitOfWork:
        self.events = []  # type: List[Event]
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self) -> List[Event]:
        """Drain events raised by aggregates and by handlers directly."""
        collected = list(getattr(self, "events", []))
        self.events = []
        for repository in self.repositories():
            for entity in repository.seen:
                while entity.events:
                    collected.append(entity.events.pop(0))
        return collected

    @abc.abstractmethod
    def repositories(self) -> Iterable[AbstractRepository]:
        raise NotImplementedError

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """Opens a session per ``with`` block; subclasses attach their repositories."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self.session_factory = session_factory or self.default_session_factory()
        self._repositories = []  # type: List[AbstractRepository]

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self._repositories = list(self.start_repositories(self.session))
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def repositories(self):
        return self._repositories

    def _commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    @abc.abstractmethod
    def start_repositories(self, session: Session) -> Iterable[AbstractRepository]:
        """Attach repositories to the session and return them."""
        raise NotImplementedError

    @classmethod
    @abc.abstractmethod
    def default_session_factory(cls) -> Callable[[], Session]:
        raise NotImplementedError
