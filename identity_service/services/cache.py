from __future__ import annotations

import logging
from typing import Optional

import redis

from identity_service.errors import CacheUnavailable

LOGGER = logging.getLogger(__name__)

# Deletes KEYS[1] only when it still holds ARGV[1]; returns 1 on delete, 0 otherwise.
COMPARE_AND_DELETE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


def build_redis_client(url: str, socket_timeout: int) -> redis.Redis:
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )


class RedisCache:
    """Thin wrapper over a Redis client with per-key TTL helpers.

    Every Redis failure is re-raised as ``CacheUnavailable`` so callers only
    deal with the service error taxonomy.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._compare_and_delete = client.register_script(COMPARE_AND_DELETE_SCRIPT)

    @property
    def client(self) -> redis.Redis:
        return self._client

    def ping(self) -> None:
        try:
            self._client.ping()
        except redis.RedisError as exc:
            raise CacheUnavailable("Cache is unreachable") from exc
        LOGGER.info("Connected to redis")

    def close(self) -> None:
        self._client.close()
        LOGGER.info("Redis connection closed")

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            LOGGER.error("Cache read failed for %s: %s", key, exc)
            raise CacheUnavailable() from exc

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            LOGGER.error("Cache write failed for %s: %s", key, exc)
            raise CacheUnavailable() from exc

    def exists(self, key: str) -> bool:
        try:
            return bool(self._client.exists(key))
        except redis.RedisError as exc:
            LOGGER.error("Cache lookup failed for %s: %s", key, exc)
            raise CacheUnavailable() from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            LOGGER.error("Cache delete failed for %s: %s", key, exc)
            raise CacheUnavailable() from exc

    def compare_and_delete(self, key: str, expected: str) -> bool:
        try:
            deleted = self._compare_and_delete(keys=[key], args=[expected])
        except redis.RedisError as exc:
            LOGGER.error("Cache compare-and-delete failed for %s: %s", key, exc)
            raise CacheUnavailable() from exc
        return bool(deleted)

    def increment(self, key: str, ttl_seconds: int) -> int:
        try:
            count = self._client.incr(key)
            if count == 1:
                self._client.expire(key, ttl_seconds)
        except redis.RedisError as exc:
            LOGGER.error("Cache increment failed for %s: %s", key, exc)
            raise CacheUnavailable() from exc
        return int(count)
