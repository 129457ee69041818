"""
Retry with exponential backoff and jitter for model API calls.

Only rate-limit failures are retried by default. Every other error, and the
last rate-limit error once the ceiling is reached, propagates unchanged.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from openai import RateLimitError

from ...exceptions import ModelCallError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429


@dataclass(frozen=True)
class RetryPolicy:
    """Retry ceiling and base delay (seconds) for model calls."""

    retries: int = 5
    initial_delay: float = 1.0


def _status_of(error: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _error_type_of(error: BaseException) -> str | None:
    body: Any = getattr(error, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict):
            return inner.get("type") or inner.get("code")
    return None


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Decide whether an error signals provider rate limiting.

    Structured signals are checked first: the `rate_limited` flag of
    ModelCallError, openai.RateLimitError, an HTTP 429 status on the error or
    its response, and a provider error type of `rate_limit_error`. Matching
    "429" or "rate_limit" in the message is a last-resort fallback for errors
    that carry no structured status.
    """
    if isinstance(error, ModelCallError) and error.rate_limited:
        return True

    if isinstance(error, RateLimitError):
        return True

    status = _status_of(error)
    if status is not None:
        return status == RATE_LIMIT_STATUS

    if _error_type_of(error) in ("rate_limit_error", "rate_limit_exceeded"):
        return True

    # Fallback: no structured status available
    message = str(error)
    return "429" in message or "rate_limit" in message


def backoff_delay(attempt: int, initial_delay: float) -> float:
    """Delay before retry number `attempt` (1-based): doubling base plus up to 1s jitter."""
    return initial_delay * (2 ** (attempt - 1)) + random.uniform(0, 1)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int = 5,
    initial_delay: float = 1.0,
    should_retry: Callable[[BaseException], bool] = is_rate_limit_error,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run `operation`, retrying retryable failures with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        retries: Maximum number of retries after the first attempt.
        initial_delay: Base delay in seconds for the first retry.
        should_retry: Classifier deciding whether an error is retryable.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        The result of the first successful attempt.

    Raises:
        The original exception when it is not retryable or retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            attempt += 1
            if not should_retry(e) or attempt > retries:
                raise

            delay = backoff_delay(attempt, initial_delay)
            logger.warning(
                "Model API rate limit hit. Retrying attempt %d/%d in %.0fms...",
                attempt,
                retries,
                delay * 1000,
            )
            await sleep(delay)
