import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from paygate.application.interfaces.transaction_manager import TransactionManager


class LockingTransactionManager(TransactionManager):
    """
    Serializes ``start()`` blocks across tasks.

    Stands in for the row lock a database takes on ``FOR UPDATE``: two
    deliveries of the same event cannot interleave their check and write.
    Nothing is rolled back on error. Re-entrant within one task.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        current = asyncio.current_task()
        if self._owner is not None and self._owner is current:
            yield
            return
        async with self._lock:
            self._owner = current
            try:
                yield
            finally:
                self._owner = None
