# storefront/utils/retry.py
import random

import redis
import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from tenacity.wait import wait_base

#statusy po ktorych warto ponowic zapytanie
RETRYABLE_STATUSES = frozenset({429, 502, 503})


class RetryableStatusError(Exception):
    """Upstream odpowiedzial 429/502/503, opcjonalnie z naglowkiem Retry-After."""

    def __init__(self, status_code: int, retry_after: float | None = None, message: str = ""):
        super().__init__(message or f"Upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.retry_after = retry_after


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        #format HTTP-date pomijamy, wtedy backoff wykladniczy
        return None
    return max(seconds, 0.0)


class wait_retry_after(wait_base):
    """
    Czeka tyle ile kaze Retry-After, a bez naglowka
    backoff wykladniczy z malym jitterem.
    """

    def __init__(self, multiplier: float = 0.5, max_wait: float = 30.0, jitter: float = 0.25):
        self.multiplier = multiplier
        self.max_wait = max_wait
        self.jitter = jitter

    def __call__(self, retry_state) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is not None:
            return min(retry_after, self.max_wait)
        backoff = self.multiplier * (2 ** (retry_state.attempt_number - 1))
        return min(backoff + random.uniform(0, self.jitter), self.max_wait)


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )
