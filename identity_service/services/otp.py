import secrets

from identity_service.services.cache import RedisCache

OTP_KEY_PREFIX = "otp:"
RATE_LIMIT_KEY_PREFIX = "otp:ratelimit:"
ATTEMPTS_KEY_PREFIX = "otp:attempts:"
RATE_LIMIT_SENTINEL = "true"


def normalize_email(email: str) -> str:
    return email.strip()


def otp_key(email: str) -> str:
    return f"{OTP_KEY_PREFIX}{email}"


def rate_limit_key(email: str) -> str:
    return f"{RATE_LIMIT_KEY_PREFIX}{email}"


def attempts_key(email: str) -> str:
    return f"{ATTEMPTS_KEY_PREFIX}{email}"


def generate_code(length: int = 6) -> str:
    """Return a code drawn uniformly from [10**(length-1), 10**length - 1]."""
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))


class OtpStore:
    """Cache-backed OTP records, rate-limit markers and verify-attempt counters."""

    def __init__(
        self,
        cache: RedisCache,
        ttl_seconds: int = 300,
        rate_limit_seconds: int = 60,
        code_length: int = 6,
        max_verify_attempts: int = 0,
    ) -> None:
        self._cache = cache
        self._ttl_seconds = ttl_seconds
        self._rate_limit_seconds = rate_limit_seconds
        self._code_length = code_length
        self._max_verify_attempts = max_verify_attempts

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def lockout_enabled(self) -> bool:
        return self._max_verify_attempts > 0

    def is_rate_limited(self, email: str) -> bool:
        return self._cache.exists(rate_limit_key(email))

    def issue(self, email: str) -> str:
        code = generate_code(self._code_length)
        self._cache.set(otp_key(email), code, self._ttl_seconds)
        self._cache.set(rate_limit_key(email), RATE_LIMIT_SENTINEL, self._rate_limit_seconds)
        if self.lockout_enabled:
            self._cache.delete(attempts_key(email))
        return code

    def consume(self, email: str, code: str) -> bool:
        return self._cache.compare_and_delete(otp_key(email), code)

    def is_locked_out(self, email: str) -> bool:
        if not self.lockout_enabled:
            return False
        raw_count = self._cache.get(attempts_key(email))
        return raw_count is not None and int(raw_count) >= self._max_verify_attempts

    def record_failed_attempt(self, email: str) -> int:
        if not self.lockout_enabled:
            return 0
        return self._cache.increment(attempts_key(email), self._ttl_seconds)
