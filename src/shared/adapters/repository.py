import abc
from typing import Iterable, Optional, Set


class AbstractRepository(abc.ABC):
    """Tracks every aggregate it hands out so the unit of work can collect their events."""

    def __init__(self):
        self.seen = set()  # type: Set[object]

    def add(self, entity):
        self._add(entity)
        self.seen.add(entity)
        return entity

    def get(self, key, lock: bool = False) -> Optional[object]:
        entity = self._get(key, lock)
        if entity is not None:
            self.seen.add(entity)
        return entity

    def _track(self, entities: Iterable[object]) -> list:
        entities = list(entities)
        for entity in entities:
            self.seen.add(entity)
        return entities

    @abc.abstractmethod
    def _add(self, entity):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, key, lock: bool):
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):
    """Loads rows through a session; ``lock=True`` selects FOR UPDATE."""

    entity_class = None
    key_attribute = None

    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, entity):
        self.session.add(entity)
        # Populate generated primary keys before domain events reference them
        self.session.flush()

    def _get(self, key, lock):
        return self._query(lock).filter_by(**{self.key_attribute: key}).first()

    def _query(self, lock: bool = False):
        query = self.session.query(self.entity_class)
        if lock:
            query = query.with_for_update()
        return query
