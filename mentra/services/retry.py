"""Retry policy for provider calls.

Rate-limit failures are retried: first by rotating through the credential
pool with a short pause, then with exponential backoff. Anything else is
treated as fatal by the gateway.
"""
import random
from dataclasses import dataclass, field

from google.api_core import exceptions as google_exceptions

from mentra.config.settings import (
    MAX_ATTEMPTS,
    ROTATION_PAUSE_SECONDS,
    BACKOFF_BASE_SECONDS,
    MAX_JITTER_SECONDS,
)
from mentra.core.errors import TransientRateLimit

RATE_LIMIT_MARKERS = ("429", "quota", "resource_exhausted", "resource exhausted")


def is_rate_limit_error(error: BaseException) -> bool:
    """Does this provider error mean "slow down" rather than "bad request"?"""
    if isinstance(error, (TransientRateLimit, google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
        return True
    if getattr(error, "code", None) == 429 or getattr(error, "status_code", None) == 429:
        return True
    message = str(error).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


@dataclass
class RetryPolicy:
    max_attempts: int = MAX_ATTEMPTS
    rotation_pause: float = ROTATION_PAUSE_SECONDS
    backoff_base: float = BACKOFF_BASE_SECONDS
    max_jitter: float = MAX_JITTER_SECONDS
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def backoff_delay(self, backoff_index: int) -> float:
        """2^i seconds (scaled by backoff_base) plus jitter in [0, max_jitter)."""
        jitter = self.rng.uniform(0, self.max_jitter) if self.max_jitter > 0 else 0.0
        return self.backoff_base * (2 ** backoff_index) + jitter
