import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable

from sqlalchemy.exc import IntegrityError

from .errors import AppError

logger = logging.getLogger(__name__)


class CircuitOpenError(Exception):
    pass


class BreakerState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """Fails fast after repeated infrastructure errors.

    Typed domain errors (``AppError``) and constraint violations
    (``IntegrityError``) are outcomes of the caller's input, not failures:
    they pass through and leave the failure count alone. Nothing is retried: a
    failed write is reported to the caller, never replayed.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        base_recovery_time: int = 10,
        max_recovery_time: int = 60,
    ):
        self.failure_threshold = failure_threshold
        self.base_recovery_time = base_recovery_time
        self.max_recovery_time = max_recovery_time
        self.reset()

    def reset(self):
        self.state = BreakerState.CLOSED
        self.failure_count = 0
        self.opened_at = 0.0

    @property
    def cooldown(self) -> float:
        overflow = max(self.failure_count - self.failure_threshold, 0)
        return min(self.base_recovery_time * (2**overflow), self.max_recovery_time)

    def _check_open(self, now: float):
        if self.state != BreakerState.OPEN:
            return
        remaining = self.cooldown - (now - self.opened_at)
        if remaining > 0:
            raise CircuitOpenError(f"Circuit open, retry after {remaining:.1f}s")
        self.state = BreakerState.HALF_OPEN
        logger.info("Circuit half-open: letting one call through")

    def _record_success(self):
        if self.state != BreakerState.CLOSED:
            logger.info("Circuit closed: stable again.")
        self.state = BreakerState.CLOSED
        self.failure_count = 0

    def _record_failure(self, error: Exception):
        self.failure_count += 1
        logger.error(f"Circuit call failed ({self.failure_count}): {error}")

        if (
            self.state == BreakerState.HALF_OPEN
            or self.failure_count >= self.failure_threshold
        ):
            self.state = BreakerState.OPEN
            self.opened_at = time.time()
            logger.warning(
                f"Circuit opened after {self.failure_count} failures "
                f"for {self.cooldown}s"
            )

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        self._check_open(time.time())

        try:
            result = await func(*args, **kwargs)
        except (AppError, IntegrityError):
            self._record_success()
            raise
        except Exception as e:
            self._record_failure(e)
            raise

        self._record_success()
        return result


breaker = CircuitBreaker(failure_threshold=3, base_recovery_time=10)
