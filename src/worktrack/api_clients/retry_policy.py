"""Retry policy with exponential backoff for the worktrack API clients.

The policy retries only rate-limit and transient network failures. The delay
before a retry is the server-supplied hint when there is one, otherwise an
exponential backoff with optional jitter. Sleeping, the clock and the random
source are injectable so the policy can be tested without real waiting.
"""

import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from .errors import (
    APIClientError,
    ConfigurationError,
    OperationCancelledError,
    RateLimitError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Methods that are safe to repeat without an explicit opt-in.
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "PATCH", "DELETE"})

JITTER_FRACTION = 0.1


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry logic with exponential backoff."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter_enabled: bool = True
    max_retry_after: float = 300.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be zero or positive")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("Retry delays must be zero or positive")
        if self.max_delay < self.initial_delay:
            raise ConfigurationError("max_delay must not be lower than initial_delay")
        if self.backoff_multiplier < 1.0:
            raise ConfigurationError("backoff_multiplier must be at least 1.0")
        if self.max_retry_after <= 0:
            raise ConfigurationError("max_retry_after must be positive")


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """Value produced by a successful attempt and the attempts it took."""

    value: T
    attempts: int


class RetryPolicy:
    """Runs an operation and retries it on rate limits and transient failures."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        random_func: Callable[[], float] = random.random,
    ):
        """Initialize the policy.

        Args:
            config: Retry configuration, defaults to ``RetryConfig()``
            sleep: Coroutine used to wait between attempts
            clock: Monotonic clock used for deadlines
            random_func: Source of jitter in ``[0, 1)``
        """
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._clock = clock
        self._random = random_func

    def is_retryable(
        self, error: Exception, method: str, retry_safe: Optional[bool] = None
    ) -> bool:
        """Determine if an error may be retried for the given request method."""
        if not isinstance(error, (RateLimitError, TransientNetworkError)):
            return False
        if retry_safe is not None:
            return retry_safe
        return method.upper() in IDEMPOTENT_METHODS

    def compute_delay(self, attempt: int, error: Exception) -> float:
        """Delay before the retry that follows failed attempt number ``attempt``."""
        if (
            isinstance(error, RateLimitError)
            and error.retry_after is not None
            and math.isfinite(error.retry_after)
        ):
            return min(max(error.retry_after, 0.0), self.config.max_retry_after)

        delay = min(
            self.config.initial_delay
            * (self.config.backoff_multiplier ** (attempt - 1)),
            self.config.max_delay,
        )
        if self.config.jitter_enabled:
            delay += delay * JITTER_FRACTION * self._random()
        return float(delay)

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        method: str = "GET",
        retry_safe: Optional[bool] = None,
        cancel_event: Optional[asyncio.Event] = None,
        deadline: Optional[float] = None,
    ) -> RetryResult[T]:
        """Execute operation with retry logic and exponential backoff.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            method: HTTP method of the request the operation sends
            retry_safe: Explicit opt-in/opt-out, overrides the method default
            cancel_event: When set, the call is aborted and no attempt starts
            deadline: Time budget in seconds for the whole call

        Returns:
            RetryResult with the operation's value and the attempt count

        Raises:
            OperationCancelledError: If cancelled or the deadline expires mid-attempt
            APIClientError: The last classified error, with ``attempts`` set
        """
        expires_at = self._clock() + deadline if deadline is not None else None
        attempt = 0

        while True:
            attempt += 1
            self._check_cancelled(cancel_event, attempt - 1)

            try:
                value = await self._run_attempt(
                    operation, cancel_event, expires_at, attempt
                )
                if attempt > 1:
                    logger.info(f"{method} succeeded on attempt {attempt}")
                return RetryResult(value=value, attempts=attempt)
            except APIClientError as e:
                e.attempts = attempt

                if isinstance(e, OperationCancelledError):
                    raise
                if not self.is_retryable(e, method, retry_safe):
                    raise
                if attempt > self.config.max_retries:
                    logger.warning(
                        f"{method} giving up after {attempt} attempts: {type(e).__name__}"
                    )
                    raise

                delay = self.compute_delay(attempt, e)
                if expires_at is not None and self._clock() + delay > expires_at:
                    logger.warning(
                        f"{method} not retried: next delay {delay:.2f}s exceeds deadline"
                    )
                    raise

                logger.warning(
                    f"{type(e).__name__} on {method} attempt {attempt}/"
                    f"{self.config.max_retries + 1}, retrying in {delay:.2f}s"
                )
                await self._wait(delay, cancel_event, attempt)

    async def _run_attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        cancel_event: Optional[asyncio.Event],
        expires_at: Optional[float],
        attempt: int,
    ) -> T:
        timeout = None
        if expires_at is not None:
            timeout = expires_at - self._clock()
            if timeout <= 0:
                error = OperationCancelledError("Deadline exceeded before attempt")
                error.attempts = attempt - 1
                raise error

        if cancel_event is None:
            if timeout is None:
                return await operation()
            try:
                return await asyncio.wait_for(operation(), timeout)
            except asyncio.TimeoutError:
                raise OperationCancelledError("Deadline exceeded during request")

        return await self._race(operation(), cancel_event, timeout)

    async def _race(
        self,
        coro: Awaitable[T],
        cancel_event: asyncio.Event,
        timeout: Optional[float],
    ) -> T:
        task = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await self._abandon(task)
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        await self._abandon(task)
        if cancel_event.is_set():
            raise OperationCancelledError("Request cancelled")
        raise OperationCancelledError("Deadline exceeded during request")

    @staticmethod
    async def _abandon(task: "asyncio.Future[Any]") -> None:
        """Cancel an attempt and wait until it has stopped."""
        if task.done():
            if not task.cancelled():
                task.exception()
            return
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, APIClientError):
            pass

    async def _wait(
        self, delay: float, cancel_event: Optional[asyncio.Event], attempt: int
    ) -> None:
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
        self._check_cancelled(cancel_event, attempt)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], attempts: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            error = OperationCancelledError("Request cancelled")
            error.attempts = attempts
            raise error
