"""Composition root for the onboarding service."""

from typing import Callable, Optional

from shared import bootstrap as wiring
from shared.adapters.publisher import AbstractEventPublisher, make_publisher
from shared.service_layer.dispatcher import Dispatcher
from shared.service_layer.messagebus import MessageBus
from onboarding.adapters import orm
from onboarding.service_layer import messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow_factory: Callable[[], unit_of_work.AbstractUnitOfWork] = unit_of_work.SqlAlchemyUnitOfWork,
    publisher: Optional[AbstractEventPublisher] = None,
) -> MessageBus:
    if start_orm:
        orm.start_mappers()

    dependencies = dict(publisher=publisher or make_publisher())
    return wiring.build_bus(uow_factory, messagebus, dependencies)


def build_dispatcher(bus: MessageBus) -> Dispatcher:
    return wiring.build_dispatcher(unit_of_work.CONSUMER, bus, messagebus.CONSUMER_HANDLERS)
