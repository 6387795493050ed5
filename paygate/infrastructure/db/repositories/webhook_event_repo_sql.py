import logging

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.application.interfaces.webhook_event_repo import WebhookEventRepo
from paygate.domain.entities.webhook_event import WebhookEvent
from paygate.infrastructure.db.tables import webhook_events

logger = logging.getLogger(__name__)


class WebhookEventRepoSQL(WebhookEventRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, event_id: str) -> bool:
        stmt = select(webhook_events.c.id).where(webhook_events.c.event_id == event_id).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar() is not None

    async def record(self, event: WebhookEvent) -> bool:
        stmt = insert(webhook_events).values(
            event_id=event.event_id,
            provider=event.provider,
            order_id=event.order_id,
            status=event.status,
            amount=event.amount,
            transaction_id=event.transaction_id,
            source=event.source,
            payload=event.payload,
            created_at=event.created_at,
        )
        # Savepoint so a duplicate only rolls back this insert
        try:
            async with self._session.begin_nested():
                await self._session.execute(stmt)
        except IntegrityError:
            logger.info(
                "Webhook event already recorded",
                extra={"event_id": event.event_id, "provider": event.provider},
            )
            return False
        return True

    async def get(self, event_id: str) -> WebhookEvent | None:
        stmt = select(webhook_events).where(webhook_events.c.event_id == event_id)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        if not row:
            return None
        return WebhookEvent(
            event_id=row["event_id"],
            provider=row["provider"],
            order_id=row["order_id"],
            status=row["status"],
            amount=row["amount"],
            transaction_id=row.get("transaction_id"),
            source=row["source"],
            payload=row.get("payload") or {},
            created_at=row.get("created_at"),
        )
