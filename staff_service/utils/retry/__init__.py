from __future__ import annotations

from staff_service.utils.retry.decorator import RetryError, retry
from staff_service.utils.retry.strategies import RetryStrategy

__all__ = ["RetryError", "RetryStrategy", "retry"]
