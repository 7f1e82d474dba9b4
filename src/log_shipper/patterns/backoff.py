"""Bounded retry with deterministic exponential backoff."""

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

import opensearchpy

from log_shipper.errors import StoreResponseError, StoreUnavailableError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryExecutionResult(Generic[T]):
    """Result of a retry execution with per-call attempt count."""

    value: T
    attempt_count: int


class RetryExhaustedError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.attempt_count: int = 0


def _is_transient_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient store error.

    Transient errors are those that may succeed on retry, such as:
    - Store unreachable
    - HTTP 5xx and 429 responses
    - Connection errors
    - Timeout errors

    Args:
        exc: The exception to check.

    Returns:
        bool: True if the error is transient and worth retrying.
    """
    if isinstance(exc, StoreUnavailableError):
        return True

    if isinstance(exc, StoreResponseError):
        return exc.status >= 500 or exc.status == 429

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True

    if isinstance(exc, opensearchpy.ConnectionError):
        return True

    if isinstance(exc, opensearchpy.TransportError) and isinstance(exc.status_code, int):
        return exc.status_code >= 500 or exc.status_code == 429

    return False


class BackoffPolicy:
    """
    Retry policy with exponential backoff and no jitter.

    Formula:
        delay = min(min_delay × factor^retry, max_delay)

    ``retry`` counts from 0, so the first retry waits ``min_delay``. Delays are
    non-decreasing and never exceed ``max_delay``.

    Args:
        max_retries: Attempts after the first one.
        factor: Multiplier applied per retry.
        min_delay: First retry delay in seconds.
        max_delay: Delay cap in seconds.
        is_transient: Callable to determine if an error is worth retrying.

    Example:
        ```python
        policy = BackoffPolicy(max_retries=3, factor=3.0, min_delay=1.0)

        result = await policy.execute_with_metrics(store.ping)
        print(result.attempt_count)
        ```
    """

    def __init__(
        self,
        max_retries: int = 3,
        factor: float = 3.0,
        min_delay: float = 1.0,
        max_delay: float = 60.0,
        is_transient: Callable[[BaseException], bool] | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if factor < 1:
            raise ValueError("factor must be >= 1")
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("delays must satisfy 0 <= min_delay <= max_delay")

        self._max_retries = max_retries
        self._factor = factor
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._is_transient = is_transient or _is_transient_error

    @property
    def max_attempts(self) -> int:
        """Total number of attempts including the initial one."""
        return self._max_retries + 1

    @property
    def max_delay(self) -> float:
        """Maximum delay between attempts in seconds."""
        return self._max_delay

    def calculate_delay(self, retry: int) -> float:
        """Calculate the delay before a given retry.

        Args:
            retry: Retry number (0-indexed).

        Returns:
            float: Delay in seconds.
        """
        delay = self._min_delay * (self._factor**retry)
        return max(self._min_delay, min(delay, self._max_delay))

    def delays(self) -> Iterator[float]:
        """Yield every delay this policy may wait, in order."""
        for retry in range(self._max_retries):
            yield self.calculate_delay(retry)

    async def execute(self, func: Callable[[], Awaitable[T]]) -> T:
        """Execute a function with retry logic.

        Args:
            func: Callable returning an awaitable.

        Returns:
            T: Result of the function call.

        Raises:
            RetryExhaustedError: If all attempts failed with transient errors.
        """
        result = await self.execute_with_metrics(func)
        return result.value

    async def execute_with_metrics(
        self,
        func: Callable[[], Awaitable[T]],
    ) -> RetryExecutionResult[T]:
        """Execute a function with retry logic and return the attempt count.

        Non-transient errors are re-raised immediately.

        Args:
            func: Callable returning an awaitable.

        Returns:
            RetryExecutionResult[T]: Result value and attempt count for this call.

        Raises:
            RetryExhaustedError: If all attempts failed with transient errors.
        """
        for attempt in range(self.max_attempts):
            attempt_count = attempt + 1
            try:
                result = await func()
                return RetryExecutionResult(value=result, attempt_count=attempt_count)

            except Exception as exc:
                if not self._is_transient(exc):
                    raise

                if attempt >= self._max_retries:
                    error = RetryExhaustedError(
                        f"All {self.max_attempts} attempts exhausted. Last error: {exc}"
                    )
                    error.attempt_count = attempt_count
                    raise error from exc

                await asyncio.sleep(self.calculate_delay(attempt))

        # Unreachable: the loop either returns or raises.
        raise RetryExhaustedError("All retry attempts exhausted")


__all__ = [
    "BackoffPolicy",
    "RetryExecutionResult",
    "RetryExhaustedError",
]
