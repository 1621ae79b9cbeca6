from __future__ import annotations

import logging
from dataclasses import dataclass

from identity_service.config import Settings
from identity_service.database import Database
from identity_service.services.auth import AuthService
from identity_service.services.cache import RedisCache, build_redis_client
from identity_service.services.otp import OtpStore
from identity_service.services.outbox import DeliveryOutbox
from identity_service.services.queue import QueuePublisher
from identity_service.services.tokens import SessionIssuer
from identity_service.services.users import UserStore

LOGGER = logging.getLogger(__name__)


@dataclass
class Services:
    """Long-lived clients shared by every request, plus the services built on them."""

    settings: Settings
    database: Database
    cache: RedisCache
    publisher: QueuePublisher
    outbox: DeliveryOutbox
    users: UserStore
    issuer: SessionIssuer
    auth: AuthService

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        database = Database(settings.database_url)
        cache = RedisCache(
            build_redis_client(settings.redis_url, settings.redis_socket_timeout)
        )
        publisher = QueuePublisher(
            settings.rabbitmq_url,
            connect_timeout=settings.rabbitmq_connect_timeout,
            reconnect_cooldown=settings.rabbitmq_reconnect_cooldown,
        )
        return cls.build(settings, database, cache, publisher)

    @classmethod
    def build(
        cls,
        settings: Settings,
        database: Database,
        cache: RedisCache,
        publisher: QueuePublisher,
    ) -> "Services":
        outbox = DeliveryOutbox(cache.client, settings.outbox_key)
        users = UserStore(database)
        issuer = SessionIssuer(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_days=settings.jwt_expire_days,
        )
        otp_store = OtpStore(
            cache,
            ttl_seconds=settings.otp_ttl_seconds,
            rate_limit_seconds=settings.otp_rate_limit_seconds,
            code_length=settings.otp_length,
            max_verify_attempts=settings.otp_max_verify_attempts,
        )
        auth = AuthService(
            otp_store,
            users,
            issuer,
            publisher,
            outbox=outbox,
            queue_name=settings.otp_queue_name,
            email_subject=settings.otp_email_subject,
        )
        return cls(
            settings=settings,
            database=database,
            cache=cache,
            publisher=publisher,
            outbox=outbox,
            users=users,
            issuer=issuer,
            auth=auth,
        )

    def start(self) -> None:
        if not self.settings.jwt_secret:
            raise RuntimeError("JWT_SECRET is not configured")
        self.database.init_db()
        self.cache.ping()
        if not self.publisher.connect():
            LOGGER.warning("Starting without a message broker; OTP emails will be queued in the outbox")
            return
        self.auth.redeliver_pending()

    def close(self) -> None:
        self.publisher.close()
        self.cache.close()
        self.database.dispose()
