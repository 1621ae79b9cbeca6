from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from identity_service.errors import (
    BadRequest,
    DeliveryFailed,
    InvalidOrExpiredOtp,
    RateLimited,
)
from identity_service.schemas.users import UserResponse
from identity_service.services.otp import OtpStore, normalize_email
from identity_service.services.outbox import DeliveryOutbox, OutboxEntry
from identity_service.services.queue import QueuePublisher
from identity_service.services.tokens import SessionIssuer
from identity_service.services.users import UserStore

LOGGER = logging.getLogger(__name__)

LOGIN_MESSAGE = "OTP sent to your mail"
REDELIVERY_BATCH = 10


@dataclass(frozen=True)
class UserSession:
    user: UserResponse
    token: str
    created: bool = False


def build_otp_message(email: str, code: str, subject: str, ttl_seconds: int) -> dict:
    minutes = max(1, ttl_seconds // 60)
    return {
        "to": email,
        "subject": subject,
        "body": f"Your OTP is {code}. It is valid for {minutes} minutes",
    }


class AuthService:
    """OTP email login: request a code, verify it, and manage the profile name.

    Cache writes always happen before the delivery message is published. A
    failed publish never undoes them; the message is parked in the outbox and
    retried later.
    """

    def __init__(
        self,
        otp_store: OtpStore,
        users: UserStore,
        issuer: SessionIssuer,
        publisher: QueuePublisher,
        outbox: Optional[DeliveryOutbox] = None,
        queue_name: str = "send-otp",
        email_subject: str = "Your otp code",
    ) -> None:
        self._otp_store = otp_store
        self._users = users
        self._issuer = issuer
        self._publisher = publisher
        self._outbox = outbox
        self._queue_name = queue_name
        self._email_subject = email_subject

    def request_login(self, email: str) -> str:
        email = normalize_email(email or "")
        if not email:
            raise BadRequest("Email is required")

        if self._otp_store.is_rate_limited(email):
            LOGGER.info("OTP request rate limited for %s", email)
            raise RateLimited()

        code = self._otp_store.issue(email)
        LOGGER.info("Issued OTP for %s", email)

        message = build_otp_message(
            email, code, self._email_subject, self._otp_store.ttl_seconds
        )
        if self._deliver(message):
            self.redeliver_pending(REDELIVERY_BATCH)
        return LOGIN_MESSAGE

    def verify_login(
        self, email: Optional[str], code: Optional[Union[str, int]]
    ) -> UserSession:
        if not email or not email.strip() or not code:
            raise BadRequest("Email and OTP Required")
        email = normalize_email(email)

        if self._otp_store.is_locked_out(email):
            LOGGER.warning("OTP verification locked for %s", email)
            raise RateLimited("Too many failed attempts. Please request a new otp")

        if not isinstance(code, str) or not self._otp_store.consume(email, code):
            attempts = self._otp_store.record_failed_attempt(email)
            LOGGER.info("Rejected OTP for %s (failed attempts: %s)", email, attempts)
            raise InvalidOrExpiredOtp()

        user, existed = self._users.ensure_user_for_email(email)
        token = self._issuer.issue(user)
        return UserSession(user=user, token=token, created=not existed)

    def update_name(self, user_id: int, name: str) -> UserSession:
        if not name or not name.strip():
            raise BadRequest("Name is required")
        user = self._users.update_name(user_id, name.strip())
        return UserSession(user=user, token=self._issuer.issue(user))

    def redeliver_pending(self, limit: int = 100) -> int:
        if self._outbox is None:
            return 0
        delivered = 0
        while delivered < limit:
            entry = self._outbox.pop()
            if entry is None:
                break
            try:
                self._publisher.publish(entry.queue, entry.message)
            except DeliveryFailed as exc:
                LOGGER.warning("Outbox redelivery failed: %s", exc)
                self._outbox.requeue(entry)
                break
            delivered += 1
        if delivered:
            LOGGER.info("Redelivered %s message(s) from the outbox", delivered)
        return delivered

    def _deliver(self, message: dict) -> bool:
        try:
            self._publisher.publish(self._queue_name, message)
        except DeliveryFailed as exc:
            LOGGER.error("OTP delivery to %s failed: %s", message["to"], exc)
            if self._outbox is not None:
                self._outbox.push(OutboxEntry(queue=self._queue_name, message=message))
            return False
        return True
