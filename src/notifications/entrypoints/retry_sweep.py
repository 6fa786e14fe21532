"""One-shot sweep requeueing failed deliveries; meant to run from a scheduler."""

import argparse
import logging

from notifications import bootstrap
from notifications.domain.commands import RetryFailedDeliveries

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Requeue FAILED notification deliveries")
    parser.add_argument("--max-attempts", type=int, default=None,
                        help="attempt limit (default: NOTIFICATION_MAX_ATTEMPTS)")
    parser.add_argument("--limit", type=int, default=100, help="deliveries per run")
    args = parser.parse_args(argv)

    bus = bootstrap.bootstrap()
    [requeued] = bus.handle(RetryFailedDeliveries(max_attempts=args.max_attempts, limit=args.limit))
    logger.info(f"Retry sweep done, {requeued} deliveries requeued")
    return requeued


if __name__ == "__main__":
    main()
