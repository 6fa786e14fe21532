"""Wiring helpers used by each service's bootstrap module."""

import inspect
from functools import partial
from typing import Callable, Dict, List, Type

from shared.domain.commands import Command, Event
from shared.service_layer.dispatcher import Dispatcher
from shared.service_layer.messagebus import MessageBus


def inject_dependencies(handler: Callable, dependencies: Dict[str, object]) -> Callable:
    """Bind the dependencies a handler asks for by parameter name."""
    params = inspect.signature(handler).parameters
    deps = {name: dependency for name, dependency in dependencies.items() if name in params}
    if not deps:
        return handler
    return partial(handler, **deps)


def inject_event_handlers(
    handlers: Dict[Type[Event], List[Callable]], dependencies: Dict[str, object]
) -> Dict[Type[Event], List[Callable]]:
    return {
        event_type: [inject_dependencies(handler, dependencies) for handler in event_handlers]
        for event_type, event_handlers in handlers.items()
    }


def inject_command_handlers(
    handlers: Dict[Type[Command], Callable], dependencies: Dict[str, object]
) -> Dict[Type[Command], Callable]:
    return {
        command_type: inject_dependencies(handler, dependencies)
        for command_type, handler in handlers.items()
    }


def inject_consumer_handlers(
    handlers: Dict[str, Callable], dependencies: Dict[str, object]
) -> Dict[str, Callable]:
    return {
        event_type: inject_dependencies(handler, dependencies)
        for event_type, handler in handlers.items()
    }


def build_bus(uow_factory: Callable, handler_tables, dependencies: Dict[str, object]) -> MessageBus:
    """MessageBus over a service's EVENT_HANDLERS/COMMAND_HANDLERS with dependencies bound."""
    return MessageBus(
        uow_factory=uow_factory,
        event_handlers=inject_event_handlers(handler_tables.EVENT_HANDLERS, dependencies),
        command_handlers=inject_command_handlers(handler_tables.COMMAND_HANDLERS, dependencies),
        dependencies=dependencies,
    )


def build_dispatcher(consumer: str, bus: MessageBus, consumer_handlers: Dict[str, Callable]) -> Dispatcher:
    dispatcher = Dispatcher(consumer, bus.uow_factory, bus=bus)
    return dispatcher.register_all(inject_consumer_handlers(consumer_handlers, bus.dependencies))
