"""Tests for Retry-After parsing and the tenacity wait strategy."""

import pytest

from storefront.utils.retry import RetryableStatusError, parse_retry_after, wait_retry_after


class FakeOutcome:
    def __init__(self, exc):
        self._exc = exc

    def exception(self):
        return self._exc


class FakeRetryState:
    def __init__(self, attempt_number, exc=None):
        self.attempt_number = attempt_number
        self.outcome = FakeOutcome(exc)


@pytest.mark.parametrize(
    "value, expected",
    [("5", 5.0), ("0.5", 0.5), ("-2", 0.0), (None, None), ("", None), ("Wed, 21 Oct 2026 07:28:00 GMT", None)],
)
def test_parse_retry_after(value, expected):
    assert parse_retry_after(value) == expected


def test_wait_uses_retry_after():
    wait = wait_retry_after()
    state = FakeRetryState(1, RetryableStatusError(429, retry_after=4.0))
    assert wait(state) == 4.0


def test_retry_after_capped():
    wait = wait_retry_after(max_wait=10)
    state = FakeRetryState(1, RetryableStatusError(429, retry_after=120.0))
    assert wait(state) == 10


def test_exponential_backoff_without_header():
    wait = wait_retry_after(multiplier=1.0, jitter=0)
    assert [wait(FakeRetryState(n, RetryableStatusError(503))) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
