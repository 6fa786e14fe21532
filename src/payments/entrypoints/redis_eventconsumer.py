"""Redis event consumer for the payments service - free plans, usage accounting, cancellations."""

import logging

from shared.entrypoints.redis_eventconsumer import run_consumer
from payments import bootstrap
from payments.service_layer import messagebus
from payments.service_layer.unit_of_work import CONSUMER

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the payments Redis stream consumer."""
    logger.info("Payments Redis stream consumer starting")
    bus = bootstrap.bootstrap()
    run_consumer(CONSUMER, bootstrap.build_dispatcher(bus), messagebus.CONSUMED_TOPICS)


if __name__ == "__main__":
    main()
