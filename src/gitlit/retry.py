"""Retry policy for outbound calls.

Transient failures (429, 5xx, timeouts, dropped connections) are retried with
capped exponential backoff. Any other 4xx goes straight back to the caller.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import requests

from gitlit.clients.errors import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a call and how long to wait in between."""

    max_attempts: int = 3
    base_delay: float = 1.5
    max_delay: float = 4.0
    retryable_status: frozenset[int] = field(default=RETRYABLE_STATUS)

    def is_retryable(self, status_code: int | None) -> bool:
        if not isinstance(status_code, int):
            return False
        return status_code in self.retryable_status or 500 <= status_code < 600

    def delay(self, attempt: int) -> float:
        """Backoff before the retry following ``attempt`` (0-based)."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` until it succeeds or the policy gives up.

    ``fn`` either returns a response-like object (anything with a
    ``status_code``) or raises. A retryable response on the last attempt is
    returned as-is so the caller can surface its status; a retryable
    exception on the last attempt is re-raised.
    """
    for attempt in range(policy.max_attempts):
        is_last = attempt == policy.max_attempts - 1
        try:
            result = fn()
        except UpstreamError as e:
            if not policy.is_retryable(e.status_code) or is_last:
                raise
            reason = f"status {e.status_code}"
        except (requests.Timeout, requests.ConnectionError) as e:
            if is_last:
                raise
            reason = repr(e)
        else:
            status = getattr(result, "status_code", None)
            if is_last or not policy.is_retryable(status):
                return result
            reason = f"status {status}"

        delay = policy.delay(attempt)
        logger.info("Retrying after %s in %.1fs (attempt %d/%d)", reason, delay, attempt + 1, policy.max_attempts)
        sleep(delay)

    # max_attempts < 1
    raise ValueError("RetryPolicy.max_attempts must be at least 1")
