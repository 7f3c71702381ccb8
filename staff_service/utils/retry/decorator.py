from __future__ import annotations

import asyncio
import logging
import time
from functools import wraps
from typing import TYPE_CHECKING

from .strategies import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RetryError(Exception):
    """Raised when @retry gives up; ``last_exception`` is the final failure."""

    def __init__(self, last_exception: Exception, attempts: int, total_delay: float = 0.0) -> None:
        self.last_exception = last_exception
        self.attempts = attempts
        self.total_delay = total_delay
        super().__init__(f"Gave up after {attempts} attempts: {last_exception}")


def retry[**P, R](
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    jitter_range: tuple[float, float] = (0.5, 1.5),
    exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
    stop_after_delay: float | None = None,
    on_retry: Callable[[Exception, int], None] | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry an async callable with exponential backoff.

    Raises:
        RetryError: When attempts or ``stop_after_delay`` are exhausted.
            Non-retryable exceptions propagate unchanged.

    Example:
        @retry(max_attempts=5, initial_delay=0.5, exceptions=(OSError,))
        async def ping_database() -> None:
            ...
    """
    strategy = RetryStrategy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        jitter_range=jitter_range,
        exceptions=exceptions,
        retry_if=retry_if,
        stop_after_delay=stop_after_delay,
    )

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            started = time.monotonic()
            total_delay = 0.0

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not strategy.should_retry(e):
                        logger.warning(
                            f"Non-retryable exception in {func.__name__}: {e}",
                            extra={"function": func.__name__, "exception": str(e)},
                        )
                        raise

                    elapsed = time.monotonic() - started
                    if stop_after_delay is not None and elapsed >= stop_after_delay:
                        raise RetryError(e, attempt + 1, total_delay) from e

                    if strategy.exhausted(attempt + 1):
                        logger.error(
                            f"All retry attempts exhausted for {func.__name__}",
                            extra={
                                "function": func.__name__,
                                "attempts": attempt + 1,
                                "last_exception": str(e),
                                "total_delay": total_delay,
                                "duration": time.monotonic() - started,
                            },
                        )
                        raise RetryError(e, attempt + 1, total_delay) from e

                    delay = strategy.calculate_delay(attempt)
                    total_delay += delay

                    logger.warning(
                        f"Retrying {func.__name__} after {delay:.2f}s "
                        f"(attempt {attempt + 1}/{max_attempts})",
                        extra={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "max_attempts": max_attempts,
                            "delay": delay,
                            "exception": str(e),
                        },
                    )

                    if on_retry:
                        on_retry(e, attempt + 1)

                    await asyncio.sleep(delay)

            msg = "Retry logic error: exhausted all attempts"
            raise RuntimeError(msg)

        return async_wrapper

    return decorator
