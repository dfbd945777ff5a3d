"""Configurable retry policies with tenacity.

This module provides:
- Async retry decorator factory using tenacity
- Exponential backoff with jitter
- Circuit breaker support for cascading failure prevention
"""

from __future__ import annotations

import random
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from flek_loader.config import RetryConfig
from flek_loader.observability import get_logger, log_retry_attempt

P = ParamSpec("P")
R = TypeVar("R")

# Default exceptions that trigger retry
DEFAULT_RETRY_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


class CircuitBreaker:
    """Circuit breaker with a timed half-open state.

    Tracks consecutive failures and opens the circuit when threshold is reached.
    Once open, the circuit fails fast until ``reset_seconds`` have passed since
    the last failure. It then turns half-open and admits a single trial call:
    success closes the circuit, failure opens it for another reset period.

    Attributes:
        threshold: Number of consecutive failures before opening.
        reset_seconds: Open period before a trial call is admitted
            (None keeps the circuit open until reset()).
        failure_count: Current consecutive failure count.
        clock: Monotonic time source in seconds.

    Example:
        >>> breaker = CircuitBreaker(threshold=2, reset_seconds=30.0)
        >>> breaker.record_failure()
        >>> breaker.is_open
        False
        >>> breaker.record_failure()
        >>> breaker.is_open
        True
    """

    def __init__(
        self,
        threshold: int,
        reset_seconds: float | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            threshold: Consecutive failures before circuit opens (0=disabled).
            reset_seconds: Seconds the circuit stays open before going half-open.
            clock: Time source, injectable for tests.
        """
        self.threshold = threshold
        self.reset_seconds = reset_seconds
        self.clock = clock or time.monotonic
        self.failure_count = 0
        self._is_open = False
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def is_open(self) -> bool:
        """Check if circuit is open and still inside its reset period."""
        return self._is_open and not self._reset_elapsed()

    @property
    def is_half_open(self) -> bool:
        """Check if the reset period has passed and a trial call may run."""
        return self._is_open and self._reset_elapsed()

    def allow_request(self) -> bool:
        """Decide whether a call may proceed, claiming the trial when half-open."""
        if not self._is_open:
            return True
        if not self._reset_elapsed() or self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def end_trial(self) -> None:
        """Release the half-open trial slot without recording an outcome."""
        self._trial_in_flight = False

    def record_failure(self) -> None:
        """Record a failure, potentially opening the circuit."""
        self._trial_in_flight = False
        if self.threshold == 0:
            return  # Disabled
        self.failure_count += 1
        if self.failure_count >= self.threshold:
            self._is_open = True
            self._opened_at = self.clock()

    def record_success(self) -> None:
        """Record a success, resetting failure count and closing circuit."""
        self.reset()

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        self.failure_count = 0
        self._is_open = False
        self._trial_in_flight = False

    def _reset_elapsed(self) -> bool:
        if self.reset_seconds is None:
            return False
        return self.clock() - self._opened_at >= self.reset_seconds


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open and operation is not attempted."""

    def __init__(self, message: str = "Circuit breaker is open") -> None:
        super().__init__(message)


def create_async_retry(
    config: RetryConfig,
    *,
    retry_exceptions: tuple[type[Exception], ...] | None = None,
    operation_name: str | None = None,
    circuit_breaker: CircuitBreaker | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Create an async retry decorator with the specified configuration.

    Wraps coroutine functions with exponential backoff retry logic, an
    optional circuit breaker, and observability logging.

    Args:
        config: RetryConfig with retry policy settings.
        retry_exceptions: Exception types that trigger retry.
            Defaults to transport-level exceptions.
        operation_name: Name for logging purposes.
        circuit_breaker: Optional CircuitBreaker instance for fail-fast.

    Returns:
        Decorator function that adds retry behavior.

    Example:
        >>> @create_async_retry(RetryConfig(max_attempts=3), operation_name="retrieve")
        ... async def get(url: str) -> httpx.Response:
        ...     return await client.get(url)
    """
    exceptions = retry_exceptions or DEFAULT_RETRY_EXCEPTIONS

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        op_name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if circuit_breaker is not None:
                if not circuit_breaker.allow_request():
                    raise CircuitOpenError(f"Circuit open for {op_name}")
                if circuit_breaker.is_half_open:
                    get_logger().info("circuit_half_open", operation=op_name)

            last_exception: Exception | None = None

            try:
                async for attempt_state in AsyncRetrying(
                    retry=retry_if_exception_type(exceptions),
                    stop=stop_after_attempt(config.max_attempts),
                    wait=wait_exponential(
                        multiplier=config.initial_wait_seconds,
                        max=config.max_wait_seconds,
                    )
                    + wait_random(0, config.jitter_seconds),
                    reraise=False,
                ):
                    with attempt_state:
                        attempt = attempt_state.retry_state.attempt_number
                        try:
                            result = await func(*args, **kwargs)
                            if circuit_breaker is not None:
                                circuit_breaker.record_success()
                            return result
                        except exceptions as exc:
                            last_exception = exc
                            if attempt < config.max_attempts:
                                log_retry_attempt(
                                    operation=op_name,
                                    attempt=attempt,
                                    max_attempts=config.max_attempts,
                                    wait_seconds=_calculate_wait_time(config, attempt),
                                    error=str(exc),
                                )
                            raise
            except RetryError:
                # All retries exhausted
                if circuit_breaker is not None:
                    circuit_breaker.record_failure()
                if last_exception is not None:
                    raise last_exception
                raise
            finally:
                if circuit_breaker is not None:
                    circuit_breaker.end_trial()

            raise RuntimeError("Unexpected retry state")  # pragma: no cover

        return wrapper

    return decorator


def _calculate_wait_time(config: RetryConfig, attempt: int) -> float:
    """Calculate wait time for a given attempt.

    Uses exponential backoff: initial * 2^(attempt-1) + jitter

    Args:
        config: Retry configuration.
        attempt: Current attempt number (1-based).

    Returns:
        Wait time in seconds.
    """
    base_wait = config.initial_wait_seconds * (2 ** (attempt - 1))
    jitter = random.uniform(0, config.jitter_seconds)  # noqa: S311
    return min(base_wait + jitter, config.max_wait_seconds)
