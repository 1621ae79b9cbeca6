from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from amqp.exceptions import AMQPError
from kombu import Connection, Producer, Queue
from kombu.exceptions import KombuError, OperationalError

from identity_service.errors import DeliveryFailed

LOGGER = logging.getLogger(__name__)

PERSISTENT_DELIVERY_MODE = 2
BASE_BROKER_ERRORS = (OperationalError, KombuError, AMQPError, OSError)


def broker_errors(connection: Connection) -> tuple:
    return BASE_BROKER_ERRORS + tuple(connection.connection_errors) + tuple(
        connection.channel_errors
    )


class QueuePublisher:
    """Publishes JSON messages to durable queues on the default exchange.

    After a failed connect, publishes fail fast with ``DeliveryFailed`` until
    ``reconnect_cooldown`` seconds have passed.
    """

    def __init__(
        self, url: str, connect_timeout: int = 5, reconnect_cooldown: float = 30.0
    ) -> None:
        self._url = url
        self._connect_timeout = connect_timeout
        self._reconnect_cooldown = reconnect_cooldown
        self._last_failed_connect: Optional[float] = None
        self._connection: Optional[Connection] = None
        self._producer: Optional[Producer] = None
        self._declared: dict[str, Queue] = {}
        self._lock = threading.Lock()

    @property
    def connection(self) -> Optional[Connection]:
        return self._connection

    def connect(self) -> bool:
        with self._lock:
            return self._connect()

    def _connect(self) -> bool:
        connection = Connection(self._url, connect_timeout=self._connect_timeout)
        try:
            connection.ensure_connection(max_retries=1, interval_start=0)
            producer = Producer(connection.default_channel, serializer="json")
        except broker_errors(connection) as exc:
            LOGGER.error("Failed to connect to message broker: %s", exc)
            connection.release()
            self._last_failed_connect = time.monotonic()
            return False
        self._connection = connection
        self._producer = producer
        self._declared = {}
        self._last_failed_connect = None
        LOGGER.info("Connected to message broker")
        return True

    def _in_cooldown(self) -> bool:
        if self._last_failed_connect is None:
            return False
        return time.monotonic() - self._last_failed_connect < self._reconnect_cooldown

    def publish(self, queue_name: str, message: dict) -> None:
        with self._lock:
            if self._producer is None:
                if self._in_cooldown():
                    raise DeliveryFailed("Message broker is unavailable")
                if not self._connect():
                    raise DeliveryFailed("Message broker is not connected")
            queue = self._declared.get(queue_name)
            if queue is None:
                queue = Queue(queue_name, routing_key=queue_name, durable=True)
            try:
                self._producer.publish(
                    message,
                    exchange="",
                    routing_key=queue_name,
                    declare=[queue],
                    delivery_mode=PERSISTENT_DELIVERY_MODE,
                    retry=True,
                    retry_policy={"max_retries": 1, "interval_start": 0, "interval_step": 1},
                )
            except broker_errors(self._connection) as exc:
                LOGGER.error("Publish to %s failed: %s", queue_name, exc)
                self._reset()
                raise DeliveryFailed(f"Failed to publish to {queue_name}") from exc
            self._declared[queue_name] = queue

    def close(self) -> None:
        with self._lock:
            self._reset()
        LOGGER.info("Message broker connection closed")

    def _reset(self) -> None:
        if self._connection is not None:
            try:
                self._connection.release()
            except broker_errors(self._connection) as exc:
                LOGGER.warning("Error while releasing broker connection: %s", exc)
        self._connection = None
        self._producer = None
        self._declared = {}
