# pylint: disable=broad-except
"""Message bus for commands and domain events, following the Cosmic Python pattern."""

from __future__ import annotations
import logging
from typing import Callable, Dict, List, Type, Union, TYPE_CHECKING

from shared.domain.commands import Command, Event

if TYPE_CHECKING:
    from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[Command, Event]


def handler_name(handler: Callable) -> str:
    return getattr(getattr(handler, "func", handler), "__name__", repr(handler))


class MessageBus:
    """Routes commands to one handler and events to every subscribed handler.

    Events raised while handling a message are queued and handled in the
    same call, after the transaction that raised them has committed.
    """

    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        event_handlers: Dict[Type[Event], List[Callable]],
        command_handlers: Dict[Type[Command], Callable],
        dependencies: Dict[str, object] = None,
    ):
        self.uow_factory = uow_factory
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers
        self.dependencies = dependencies or {}

    def handle(self, message: Message, uow: AbstractUnitOfWork = None):
        """Handle a command or event plus everything it raises; returns command results."""
        uow = uow or self.uow_factory()
        results = []
        queue = [message]

        while queue:
            message = queue.pop(0)

            if isinstance(message, Event):
                self.handle_event(message, queue, uow)
            elif isinstance(message, Command):
                cmd_result = self.handle_command(message, queue, uow)
                results.append(cmd_result)
            else:
                raise Exception(f"{message} was not an Event or Command")

        return results

    def handle_events(self, events: List[Event], uow: AbstractUnitOfWork = None):
        for event in events:
            self.handle(event, uow)

    def handle_event(self, event: Event, queue: List[Message], uow: AbstractUnitOfWork):
        """Handle event by calling all registered event handlers."""
        for handler in self.event_handlers.get(type(event), []):
            try:
                logger.debug(f"handling event {type(event).__name__} with {handler_name(handler)}")
                handler(event, uow=uow)
                queue.extend(uow.collect_new_events())
            except Exception:
                logger.exception("Exception handling event %s", event)
                continue

    def handle_command(self, command: Command, queue: List[Message], uow: AbstractUnitOfWork):
        """Handle command by calling the registered command handler."""
        logger.info(f"handling command {type(command).__name__}")
        try:
            handler = self.command_handlers[type(command)]
            result = handler(command, uow=uow)
            queue.extend(uow.collect_new_events())
            return result
        except Exception:
            logger.exception("Exception handling command %s", command)
            raise
