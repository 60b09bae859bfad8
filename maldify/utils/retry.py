"""
Retry with exponential backoff for Shopify Admin API calls.

Shopify throttles REST calls with HTTP 429 (leaky bucket, with a Retry-After
header) and GraphQL calls with a THROTTLED error. Those, 5xx responses and
network failures are retried; anything else is raised on the first attempt.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from maldify.utils.logger import log

TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 504)

TRANSIENT_MESSAGES = (
    "throttled",
    "exceeded 2 calls per second",
    "too many requests",
    "timed out",
    "timeout",
    "connection reset",
    "connection refused",
)


@dataclass
class RetryPolicy:
    """Attempt limit and backoff curve for one kind of call"""
    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 60.0
    jitter: bool = True

    def backoff(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Seconds to wait after a failed attempt (1-indexed)"""
        if retry_after is not None:
            return min(retry_after, self.max_delay)
        delay = min(self.base_delay * 2 ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay += delay * random.uniform(0, 0.25)
        return delay


@dataclass
class RetryStats:
    retries: int = 0
    total_delay_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)


def _status_code(error: Exception) -> Optional[int]:
    # pyactiveresource errors carry the HTTP response
    response = getattr(error, "response", None)
    status = getattr(response, "code", None) or getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def retry_after_seconds(error: Exception) -> Optional[float]:
    """Retry-After header of a throttled response, if present"""
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if not hasattr(headers, "get"):
        return None
    try:
        value = headers.get("Retry-After")
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def is_retryable_error(error: Exception) -> bool:
    """True for throttling, 5xx and network failures"""
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    if _status_code(error) in TRANSIENT_STATUS_CODES:
        return True
    text = str(error).lower()
    return any(message in text for message in TRANSIENT_MESSAGES)


async def call_with_retry(
    operation: Callable[[], Any],
    policy: RetryPolicy,
    label: str = "operation",
    stats: Optional[RetryStats] = None
) -> Any:
    """
    Run a zero-argument callable (sync or async) under a retry policy.

    Args:
        operation: Callable to run; coroutine results are awaited
        policy: Attempt limit and backoff
        label: Name used in log lines
        stats: Mutated in place with retries, delay and error strings

    Returns:
        Result of the first successful attempt
    """
    stats = stats if stats is not None else RetryStats()

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = operation()
            if asyncio.iscoroutine(result):
                result = await result
            if attempt > 1:
                log.info(f"{label} succeeded on attempt {attempt}")
            return result
        except Exception as e:
            stats.errors.append(f"{type(e).__name__}: {str(e)}")
            if attempt >= policy.max_attempts or not is_retryable_error(e):
                raise

            delay = policy.backoff(attempt, retry_after_seconds(e))
            stats.retries += 1
            stats.total_delay_seconds += delay
            log.warning(f"{label} attempt {attempt} failed: {e}. Retrying in {delay:.1f}s...")
            await asyncio.sleep(delay)
