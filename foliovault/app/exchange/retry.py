"""Retry with exponential backoff for exchange HTTP calls.

Binance answers 429 when its own weight limits are hit and 5xx when it is
degraded; both are worth retrying, as are transport failures.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

import httpx

from foliovault.app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay between retries in seconds (default: 1.0)
        max_delay: Maximum delay between retries in seconds (default: 10.0)
        exponential_base: Base for exponential calculation (default: 2.0)
        retryable_exceptions: Tuple of exception types that trigger a retry

    Example:
        >>> policy = RetryPolicy(max_retries=3, base_delay=1.0)
        >>> delay = policy.calculate_delay(attempt=2)  # Returns 4.0
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        httpx.HTTPStatusError,
        httpx.TransportError,
    )

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the delay for a given retry attempt (0-indexed).

        delay = min(base_delay * (exponential_base ^ attempt), max_delay)
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)

    def is_retryable(self, exception: Exception) -> bool:
        """Check if an exception should trigger a retry.

        For HTTPStatusError, only 429 and 5xx status codes are retryable.
        """
        if isinstance(exception, httpx.HTTPStatusError):
            status = exception.response.status_code
            return status == 429 or status >= 500

        return isinstance(exception, self.retryable_exceptions)


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: RetryPolicy,
    description: str = "",
    **kwargs: Any,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying per ``policy``.

    The last exception is re-raised once retries are exhausted.
    """
    name = description or getattr(func, "__name__", "call")

    for attempt in range(policy.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not policy.is_retryable(e):
                logger.debug(f"Non-retryable exception in {name}: {type(e).__name__}: {e}")
                raise

            if attempt >= policy.max_retries:
                logger.warning(
                    f"Max retries ({policy.max_retries}) exceeded for {name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            delay = policy.calculate_delay(attempt)
            logger.warning(
                f"Retry {attempt + 1}/{policy.max_retries} for {name} "
                f"after {type(e).__name__}: {e}. Waiting {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")
