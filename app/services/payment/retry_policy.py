"""
Bounded retry policy for payment gateway calls.

Only exceptions listed in ``retry_on`` are retried; anything else
(validation errors, rejected requests) propagates on the first attempt.
"""

import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from app.config.settings import Settings
from app.core.exceptions import GatewayTransientError
from app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Fixed-count retry with a delay between attempts.

    ``backoff`` multiplies the delay after every failed attempt; 1.0 keeps
    it fixed.
    """

    def __init__(
        self,
        max_attempts: int = 4,
        delay_seconds: float = 1.0,
        backoff: float = 1.0,
        retry_on: Tuple[Type[BaseException], ...] = (GatewayTransientError,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.backoff = backoff
        self.retry_on = retry_on
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.PAYMENT_MAX_ATTEMPTS,
            delay_seconds=settings.PAYMENT_RETRY_DELAY_SECONDS,
            backoff=settings.PAYMENT_RETRY_BACKOFF,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        return self.delay_seconds * (self.backoff ** (attempt - 1))

    def run(self, fn: Callable[[], T], operation_name: Optional[str] = None) -> T:
        """
        Call ``fn`` until it succeeds or attempts run out.

        Raises:
            The last retryable error once attempts are exhausted, or the
            first non-retryable error unchanged.
        """
        name = operation_name or getattr(fn, "__name__", "operation")
        attempts = 0

        while True:
            attempts += 1
            try:
                return fn()
            except self.retry_on as e:
                if attempts >= self.max_attempts:
                    logger.error(
                        f"{name} failed after {attempts} attempts: {e}",
                        extra={'operation': name, 'attempt': attempts},
                    )
                    raise

                delay = self.delay_for(attempts)
                logger.warning(
                    f"{name} failed (attempt {attempts}/{self.max_attempts}), retrying in {delay:.2f}s: {e}",
                    extra={'operation': name, 'attempt': attempts},
                )
                if delay > 0:
                    self._sleep(delay)
