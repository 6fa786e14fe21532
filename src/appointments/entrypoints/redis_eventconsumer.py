"""Redis event consumer for the appointments service - cancels appointments of deleted users."""

import logging

from shared.entrypoints.redis_eventconsumer import run_consumer
from appointments import bootstrap
from appointments.service_layer import messagebus
from appointments.service_layer.unit_of_work import CONSUMER

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the appointments Redis stream consumer."""
    logger.info("Appointments Redis stream consumer starting")
    bus = bootstrap.bootstrap()
    run_consumer(CONSUMER, bootstrap.build_dispatcher(bus), messagebus.CONSUMED_TOPICS)


if __name__ == "__main__":
    main()
