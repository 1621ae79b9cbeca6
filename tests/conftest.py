"""Shared fixtures: an in-memory Redis stand-in, SQLite database and wired services."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from identity_service.config import Settings
from identity_service.container import Services
from identity_service.database import Database
from identity_service.main import create_app
from identity_service.services.cache import COMPARE_AND_DELETE_SCRIPT, RedisCache
from identity_service.services.queue import QueuePublisher


class FakeRedis:
    """Implements the subset of redis-py used by the service, with a manual clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._values: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._lists: dict[str, list[str]] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def ttl(self, name: str) -> float | None:
        self._purge(name)
        if name not in self._expiry:
            return None
        return self._expiry[name] - self.now

    def _purge(self, name: str) -> None:
        expires_at = self._expiry.get(name)
        if expires_at is not None and expires_at <= self.now:
            self._values.pop(name, None)
            self._expiry.pop(name, None)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass

    def get(self, name: str) -> str | None:
        self._purge(name)
        return self._values.get(name)

    def set(self, name: str, value, ex: int | None = None) -> bool:
        self._values[name] = str(value)
        if ex is None:
            self._expiry.pop(name, None)
        else:
            self._expiry[name] = self.now + ex
        return True

    def exists(self, *names: str) -> int:
        count = 0
        for name in names:
            self._purge(name)
            if name in self._values or name in self._lists:
                count += 1
        return count

    def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            self._purge(name)
            if self._values.pop(name, None) is not None:
                removed += 1
            self._expiry.pop(name, None)
            if self._lists.pop(name, None) is not None:
                removed += 1
        return removed

    def incr(self, name: str) -> int:
        self._purge(name)
        value = int(self._values.get(name, "0")) + 1
        self._values[name] = str(value)
        return value

    def expire(self, name: str, seconds: int) -> bool:
        self._purge(name)
        if name not in self._values:
            return False
        self._expiry[name] = self.now + seconds
        return True

    def lpush(self, name: str, *values: str) -> int:
        items = self._lists.setdefault(name, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    def rpush(self, name: str, *values: str) -> int:
        items = self._lists.setdefault(name, [])
        items.extend(values)
        return len(items)

    def rpop(self, name: str) -> str | None:
        items = self._lists.get(name)
        if not items:
            return None
        return items.pop()

    def llen(self, name: str) -> int:
        return len(self._lists.get(name, []))

    def register_script(self, script: str):
        assert script == COMPARE_AND_DELETE_SCRIPT

        def compare_and_delete(keys=(), args=()):
            key, expected = keys[0], args[0]
            if self.get(key) == expected:
                return self.delete(key)
            return 0

        return compare_and_delete


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> RedisCache:
    return RedisCache(fake_redis)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        redis_url="redis://unused",
        rabbitmq_url="memory://",
        jwt_secret="test-secret",
        jwt_algorithm="HS256",
        jwt_expire_days=15,
        otp_length=6,
        otp_ttl_seconds=300,
        otp_rate_limit_seconds=60,
        otp_max_verify_attempts=0,
        otp_queue_name="send-otp",
        otp_email_subject="Your otp code",
        outbox_key="otp:outbox",
        cors_origins=("*",),
        log_level="INFO",
    )


@pytest.fixture
def database() -> Database:
    database = Database("sqlite://")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def publisher() -> MagicMock:
    publisher = MagicMock(spec=QueuePublisher)
    publisher.connect.return_value = True
    return publisher


@pytest.fixture
def services(settings, database, cache, publisher) -> Services:
    return Services.build(settings, database, cache, publisher)


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services)
    with TestClient(app) as test_client:
        yield test_client
