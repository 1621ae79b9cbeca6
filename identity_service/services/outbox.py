from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

import redis

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboxEntry:
    queue: str
    message: dict

    def dumps(self) -> str:
        return json.dumps({"queue": self.queue, "message": self.message})

    @classmethod
    def loads(cls, raw: str) -> "OutboxEntry":
        data = json.loads(raw)
        return cls(queue=data["queue"], message=data["message"])


class DeliveryOutbox:
    """Redis list of delivery messages whose publish failed.

    FIFO: ``push`` adds on the left, ``pop`` takes from the right, and
    ``requeue`` puts an entry back on the right so it is retried first.
    """

    def __init__(self, client: redis.Redis, key: str) -> None:
        self._client = client
        self._key = key

    def push(self, entry: OutboxEntry) -> bool:
        try:
            self._client.lpush(self._key, entry.dumps())
        except redis.RedisError:
            LOGGER.exception("Failed to push to outbox %s", self._key)
            return False
        LOGGER.info("Queued message for %s in outbox", entry.queue)
        return True

    def requeue(self, entry: OutboxEntry) -> bool:
        try:
            self._client.rpush(self._key, entry.dumps())
        except redis.RedisError:
            LOGGER.exception("Failed to requeue into outbox %s", self._key)
            return False
        return True

    def pop(self) -> Optional[OutboxEntry]:
        try:
            raw = self._client.rpop(self._key)
        except redis.RedisError:
            LOGGER.exception("Failed to pop from outbox %s", self._key)
            return None
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return OutboxEntry.loads(raw)
        except (ValueError, KeyError):
            LOGGER.error("Dropping malformed outbox entry: %s", raw)
            return None

    def length(self) -> int:
        try:
            return int(self._client.llen(self._key))
        except redis.RedisError:
            LOGGER.exception("Failed to get outbox length for %s", self._key)
            return 0
