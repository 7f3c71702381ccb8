"""Reconnect delay policy for the broker connection manager."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from staff_service.utils.retry import RetryStrategy

if TYPE_CHECKING:
    from staff_service.core.settings import RabbitSettings


class ReconnectPolicy:
    """How long to wait before each reconnect attempt and when to give up.

    ``fixed`` waits the same ``delay`` before every attempt. ``exponential``
    starts at ``delay`` and multiplies by ``backoff_base`` per attempt up to
    ``max_delay``, optionally with jitter. ``max_attempts=None`` retries
    forever.
    """

    def __init__(
        self,
        strategy: Literal["fixed", "exponential"] = "fixed",
        delay: float = 5.0,
        max_delay: float = 60.0,
        backoff_base: float = 2.0,
        jitter: bool = False,
        max_attempts: int | None = None,
    ) -> None:
        self.strategy = strategy
        self.max_attempts = max_attempts
        fixed = strategy == "fixed"
        self._retry = RetryStrategy(
            max_attempts=max_attempts,
            initial_delay=delay,
            max_delay=delay if fixed else max_delay,
            exponential_base=1.0 if fixed else backoff_base,
            jitter=jitter and not fixed,
        )

    @classmethod
    def from_settings(cls, settings: RabbitSettings) -> ReconnectPolicy:
        return cls(
            strategy=settings.reconnect_strategy,
            delay=settings.reconnect_delay,
            max_delay=settings.reconnect_max_delay,
            backoff_base=settings.reconnect_backoff_base,
            jitter=settings.reconnect_jitter,
            max_attempts=settings.reconnect_max_attempts,
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait before attempt number ``attempt`` (0-based)."""
        return self._retry.calculate_delay(attempt)

    def exhausted(self, failed_attempts: int) -> bool:
        return self._retry.exhausted(failed_attempts)

    def __repr__(self) -> str:
        return (
            f"ReconnectPolicy(strategy={self.strategy!r}, "
            f"delay={self._retry.initial_delay}, max_attempts={self.max_attempts})"
        )
