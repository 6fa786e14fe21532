"""Composition root for the payments service."""

from typing import Callable, Optional

import config
from shared import bootstrap as wiring
from shared.adapters.publisher import AbstractEventPublisher, make_publisher
from shared.service_layer.dispatcher import Dispatcher
from shared.service_layer.messagebus import MessageBus
from payments.adapters import orm
from payments.service_layer import messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow_factory: Callable[[], unit_of_work.AbstractUnitOfWork] = unit_of_work.SqlAlchemyUnitOfWork,
    publisher: Optional[AbstractEventPublisher] = None,
    free_plan_id: Optional[str] = None,
) -> MessageBus:
    if start_orm:
        orm.start_mappers()

    dependencies = dict(
        publisher=publisher or make_publisher(),
        free_plan_id=free_plan_id or config.get_payment_config()["free_plan_id"],
    )
    return wiring.build_bus(uow_factory, messagebus, dependencies)


def build_dispatcher(bus: MessageBus) -> Dispatcher:
    return wiring.build_dispatcher(unit_of_work.CONSUMER, bus, messagebus.CONSUMER_HANDLERS)
