from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from paygate.application.interfaces.transaction_manager import TransactionManager


class SQLAlchemyTransactionManager(TransactionManager):
    """
    One database transaction per outermost ``start()``.

    Nested ``start()`` calls join the running transaction. A transaction
    autobegun by an earlier plain read is closed first so the outermost
    block always owns a fresh BEGIN and its COMMIT.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._depth = 0

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        if self._session.in_transaction():
            await self._session.commit()
        self._depth = 1
        try:
            async with self._session.begin():
                yield
        finally:
            self._depth = 0
