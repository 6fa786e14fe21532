"""Redis event consumer for the notifications service - turns marketplace events into deliveries."""

import logging

from shared.entrypoints.redis_eventconsumer import run_consumer
from notifications import bootstrap
from notifications.service_layer import messagebus
from notifications.service_layer.unit_of_work import CONSUMER

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the notifications Redis stream consumer."""
    logger.info("Notifications Redis stream consumer starting")
    bus = bootstrap.bootstrap()
    run_consumer(CONSUMER, bootstrap.build_dispatcher(bus), messagebus.CONSUMED_TOPICS)


if __name__ == "__main__":
    main()
