"""Legal-transition tables for entity status fields."""

import enum
from typing import Dict, FrozenSet, Iterable, Tuple

from shared.domain.commands import utc_now
from shared.domain.exceptions import InvalidTransition


class Lifecycle:
    """Maps each operation to the states it may start from and the state it ends in.

    A terminal state admits no operation at all; the constructor refuses a
    table that says otherwise.
    """

    def __init__(
        self,
        entity: str,
        transitions: Dict[str, Tuple[Iterable[enum.Enum], enum.Enum]],
        terminal: Iterable[enum.Enum],
    ):
        self.entity = entity
        self.terminal: FrozenSet[enum.Enum] = frozenset(terminal)
        self.transitions: Dict[str, Tuple[FrozenSet[enum.Enum], enum.Enum]] = {
            operation: (frozenset(sources), target)
            for operation, (sources, target) in transitions.items()
        }
        for operation, (sources, _) in self.transitions.items():
            leaking = sources & self.terminal
            if leaking:
                raise ValueError(f"{entity}.{operation} starts from terminal states {sorted(s.name for s in leaking)}")

    @property
    def operations(self):
        return sorted(self.transitions)

    def allows(self, current: enum.Enum, operation: str) -> bool:
        sources, _ = self.transitions[operation]
        return current in sources

    def target(self, current: enum.Enum, operation: str, entity_id=None) -> enum.Enum:
        """State reached by ``operation`` from ``current``, or InvalidTransition."""
        if operation not in self.transitions:
            raise KeyError(f"{self.entity} has no operation {operation!r}")
        sources, target = self.transitions[operation]
        if current not in sources:
            raise InvalidTransition(self.entity, entity_id, current, operation)
        return target


def transition(entity, lifecycle: Lifecycle, operation: str, entity_id=None,
               status_attr: str = "status", changed_attr: str = "status_changed_at"):
    """Move ``entity`` through ``operation``, stamping the change time.

    On an illegal operation nothing on the entity is touched.
    """
    current = getattr(entity, status_attr)
    new_status = lifecycle.target(current, operation, entity_id=entity_id)
    setattr(entity, status_attr, new_status)
    setattr(entity, changed_attr, utc_now())
    return new_status
