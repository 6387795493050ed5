"""
Retry helpers for transient database failures.

Only deadlocks and lock-wait timeouts are retried. Each attempt re-runs
the whole unit of work, so the wrapped callable must open its own
transaction.
"""

import asyncio
import logging
from functools import wraps
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from paygate.application.dtos.notifications import GatewayNotification
from paygate.application.dtos.payment_results import WebhookResult
from paygate.application.use_cases.settle_payment import SettlePaymentUseCase
from paygate.domain.constants import EVENT_SOURCE_WEBHOOK

logger = logging.getLogger(__name__)

T = TypeVar("T")

MYSQL_DEADLOCK_ERROR = "1213"
MYSQL_LOCK_WAIT_TIMEOUT = "1205"
PG_DEADLOCK_DETECTED = "40P01"
PG_SERIALIZATION_FAILURE = "40001"

_RETRYABLE_CODES = (
    MYSQL_DEADLOCK_ERROR,
    MYSQL_LOCK_WAIT_TIMEOUT,
    PG_DEADLOCK_DETECTED,
    PG_SERIALIZATION_FAILURE,
)


def is_deadlock_error(error: Exception) -> bool:
    if not isinstance(error, (OperationalError, DBAPIError)):
        return False
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate in (PG_DEADLOCK_DETECTED, PG_SERIALIZATION_FAILURE):
        return True
    error_str = str(error)
    return any(code in error_str for code in _RETRYABLE_CODES)


async def retry_on_deadlock(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """
    Run ``func`` and retry it with exponential backoff on deadlocks.

    Any other error, or a deadlock on the last attempt, propagates.
    """
    for attempt in range(max_attempts):
        try:
            return await func()
        except (OperationalError, DBAPIError) as exc:
            if not is_deadlock_error(exc) or attempt == max_attempts - 1:
                if is_deadlock_error(exc):
                    logger.error(
                        "Database deadlock persists after max retries",
                        extra={"attempts": max_attempts, "error": str(exc)},
                    )
                raise
            delay = base_delay * (2**attempt)
            logger.warning(
                "Database deadlock detected, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                    "error": str(exc),
                },
            )
            await asyncio.sleep(delay)
    raise RuntimeError("retry_on_deadlock needs max_attempts >= 1")


def with_deadlock_retry(max_attempts: int = 3, base_delay: float = 0.1):
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await retry_on_deadlock(
                lambda: func(*args, **kwargs), max_attempts, base_delay
            )

        return wrapper

    return decorator


class DeadlockRetryingSettlePayment(SettlePaymentUseCase):
    """Settlement that re-runs its transaction when the database picks it as a deadlock victim."""

    @with_deadlock_retry(max_attempts=3)
    async def execute(
        self,
        notification: GatewayNotification,
        source: str = EVENT_SOURCE_WEBHOOK,
    ) -> WebhookResult:
        return await super().execute(notification, source)
