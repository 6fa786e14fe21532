# pylint: disable=broad-except
"""Redis Streams consumer shared by every service.

Each service reads its topics through one consumer group named after the
service. A message is acknowledged (XACK) only once the dispatcher says so;
NACKed messages stay in the group's pending list and are reclaimed by any
worker after ``claim_idle_ms``. A message delivered ``max_deliveries`` times,
or one that cannot be decoded, is copied to ``<dlq_prefix>:<stream>`` and
acknowledged so it cannot block the stream.
"""

import logging
import signal
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Dict, List, Optional, Tuple

import redis
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential, before_sleep_log

import config
from shared.service_layer.dispatcher import Ack, Dispatcher

logger = logging.getLogger(__name__)

StreamMessage = Tuple[str, str, Dict]


def _text(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


def _message_data(fields: Dict):
    if not fields:
        return None
    data = fields.get(b"data")
    if data is None:
        data = fields.get("data")
    return data


class RedisStreamConsumer:
    def __init__(
        self,
        client: redis.Redis,
        dispatcher: Dispatcher,
        streams: List[str],
        group: str,
        consumer_name: Optional[str] = None,
        bus_config: Optional[dict] = None,
    ):
        bus_config = bus_config or config.get_bus_config()
        self.client = client
        self.dispatcher = dispatcher
        self.streams = list(streams)
        self.group = group
        self.consumer_name = consumer_name or bus_config["consumer_name"]
        self.max_deliveries = bus_config["max_deliveries"]
        self.handler_timeout = bus_config["handler_timeout"]
        self.claim_idle_ms = bus_config["claim_idle_ms"]
        self.block_ms = bus_config["block_ms"]
        self.dlq_prefix = bus_config["dlq_prefix"]
        self.executor = ThreadPoolExecutor(
            max_workers=bus_config["workers"], thread_name_prefix=f"{group}-worker"
        )
        self.batch_size = bus_config["workers"]
        self._running = False

    def ensure_groups(self):
        """Create the consumer group on every stream, creating streams as needed."""
        for stream in self.streams:
            try:
                self.client.xgroup_create(stream, self.group, id="0", mkstream=True)
                logger.info(f"Created consumer group {self.group} on {stream}")
            except redis.exceptions.ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    def run_forever(self):
        logger.info(f"[{self.group}] consuming {', '.join(self.streams)} as {self.consumer_name}")
        self.ensure_groups()
        self._running = True
        while self._running:
            try:
                self.reclaim_stale()
                self.poll_once()
            except redis.exceptions.RedisError:
                logger.exception("[%s] Redis unavailable, retrying", self.group)
        self.executor.shutdown(wait=True)
        logger.info(f"[{self.group}] consumer stopped")

    def stop(self, *_):
        logger.info(f"[{self.group}] stop requested")
        self._running = False

    def poll_once(self) -> int:
        """Read new messages for this consumer and settle each one."""
        response = self._read()
        batch = [
            (_text(stream), _text(message_id), fields)
            for stream, messages in response or []
            for message_id, fields in messages
        ]
        self.process(batch)
        return len(batch)

    def reclaim_stale(self) -> int:
        """Take over messages left pending longer than ``claim_idle_ms``."""
        batch = []
        for stream in self.streams:
            response = self.client.xautoclaim(
                stream, self.group, self.consumer_name,
                min_idle_time=self.claim_idle_ms, start_id="0-0", count=self.batch_size,
            )
            claimed = response[1] if response and len(response) > 1 else []
            for message_id, fields in claimed:
                # Entries trimmed from the stream come back without fields
                if fields is None:
                    self.client.xack(stream, self.group, message_id)
                    continue
                batch.append((stream, _text(message_id), fields))
        if batch:
            logger.info(f"[{self.group}] reclaimed {len(batch)} stale message(s)")
        self.process(batch)
        return len(batch)

    def process(self, batch: List[StreamMessage]) -> Dict[str, Ack]:
        """Dispatch a batch concurrently; a message not done within ``handler_timeout`` of submission is NACKed."""
        deadline = time.monotonic() + self.handler_timeout
        futures = [
            (stream, message_id, fields, self.executor.submit(self.dispatcher.dispatch, _message_data(fields)))
            for stream, message_id, fields in batch
        ]
        outcomes = {}
        for stream, message_id, fields, future in futures:
            try:
                outcome = future.result(timeout=max(0, deadline - time.monotonic()))
            except FutureTimeout:
                logger.error(
                    f"[{self.group}] message {message_id} on {stream} exceeded "
                    f"{self.handler_timeout}s, will be redelivered"
                )
                outcome = Ack.NACK
            except Exception:
                logger.exception("[%s] dispatcher crashed on %s", self.group, message_id)
                outcome = Ack.NACK
            self._settle(stream, message_id, fields, outcome)
            outcomes[message_id] = outcome
        return outcomes

    @retry(
        retry=retry_if_exception_type(redis.exceptions.ConnectionError),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _read(self):
        return self.client.xreadgroup(
            self.group, self.consumer_name,
            {stream: ">" for stream in self.streams},
            count=self.batch_size, block=self.block_ms,
        )

    def _settle(self, stream: str, message_id: str, fields: Dict, outcome: Ack):
        if outcome is Ack.ACK:
            self.client.xack(stream, self.group, message_id)
        elif outcome is Ack.DEAD_LETTER:
            self._dead_letter(stream, message_id, fields, "undecodable message")
        else:
            deliveries = self._delivery_count(stream, message_id)
            if deliveries >= self.max_deliveries:
                self._dead_letter(stream, message_id, fields, f"gave up after {deliveries} deliveries")
            else:
                logger.info(f"[{self.group}] {message_id} left pending (delivery {deliveries})")

    def _delivery_count(self, stream: str, message_id: str) -> int:
        pending = self.client.xpending_range(stream, self.group, min=message_id, max=message_id, count=1)
        if not pending:
            return 0
        return int(pending[0]["times_delivered"])

    def _dead_letter(self, stream: str, message_id: str, fields: Dict, reason: str):
        dlq_stream = f"{self.dlq_prefix}:{stream}"
        data = _message_data(fields)
        self.client.xadd(dlq_stream, {
            "data": data if data is not None else "",
            "error": reason,
            "originalStream": stream,
            "originalId": message_id,
            "group": self.group,
        })
        self.client.xack(stream, self.group, message_id)
        logger.error(f"[{self.group}] {message_id} from {stream} moved to {dlq_stream}: {reason}")


def run_consumer(group: str, dispatcher: Dispatcher, topics: List[str], client: redis.Redis = None):
    """Block consuming ``topics`` until SIGINT/SIGTERM."""
    client = client or redis.Redis(**config.get_redis_host_and_port())
    consumer = RedisStreamConsumer(client, dispatcher, config.get_streams(*topics), group)
    signal.signal(signal.SIGINT, consumer.stop)
    signal.signal(signal.SIGTERM, consumer.stop)
    consumer.run_forever()
