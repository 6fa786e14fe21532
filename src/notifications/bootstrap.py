"""Composition root for the notifications service."""

from typing import Callable, Optional

import config
from shared import bootstrap as wiring
from shared.adapters.publisher import AbstractEventPublisher, make_publisher
from shared.service_layer.dispatcher import Dispatcher
from shared.service_layer.messagebus import MessageBus
from notifications.adapters import orm
from notifications.adapters.sender import AbstractNotificationSender, make_sender
from notifications.domain.model import NotificationChannel
from notifications.service_layer import messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow_factory: Callable[[], unit_of_work.AbstractUnitOfWork] = unit_of_work.SqlAlchemyUnitOfWork,
    publisher: Optional[AbstractEventPublisher] = None,
    sender: Optional[AbstractNotificationSender] = None,
    max_attempts: Optional[int] = None,
) -> MessageBus:
    if start_orm:
        orm.start_mappers()

    notification_config = config.get_notification_config()
    dependencies = dict(
        publisher=publisher or make_publisher(),
        sender=sender or make_sender(notification_config),
        max_attempts=max_attempts or notification_config["max_attempts"],
        default_channel=NotificationChannel(notification_config["default_channel"].upper()),
    )
    return wiring.build_bus(uow_factory, messagebus, dependencies)


def build_dispatcher(bus: MessageBus) -> Dispatcher:
    return wiring.build_dispatcher(unit_of_work.CONSUMER, bus, messagebus.CONSUMER_HANDLERS)
