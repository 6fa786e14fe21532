"""Redis event consumer for the onboarding service - creates provider checklists on registration."""

import logging

from shared.entrypoints.redis_eventconsumer import run_consumer
from onboarding import bootstrap
from onboarding.service_layer import messagebus
from onboarding.service_layer.unit_of_work import CONSUMER

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the onboarding Redis stream consumer."""
    logger.info("Onboarding Redis stream consumer starting")
    bus = bootstrap.bootstrap()
    run_consumer(CONSUMER, bootstrap.build_dispatcher(bus), messagebus.CONSUMED_TOPICS)


if __name__ == "__main__":
    main()
