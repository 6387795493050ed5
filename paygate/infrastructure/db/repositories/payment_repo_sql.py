from typing import Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.domain.entities.payment import Payment, PaymentStatus
from paygate.infrastructure.db.tables import payments


class PaymentRepoSQL(PaymentRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_pending(self, payment: Payment) -> Payment:
        stmt = insert(payments).values(
            booking_id=payment.booking_id,
            amount=payment.amount,
            payment_method=payment.payment_method,
            status=PaymentStatus.PENDING.value,
            gateway_order_id=payment.gateway_order_id,
            gateway_response=payment.gateway_response,
            created_at=payment.created_at,
        )
        result = await self._session.execute(stmt)
        payment.id = result.inserted_primary_key[0]
        return payment

    async def get_by_gateway_order_id(
        self,
        gateway_order_id: str,
        for_update: bool = False,
    ) -> Payment | None:
        stmt = select(payments).where(payments.c.gateway_order_id == gateway_order_id)
        if for_update:
            # Serializes concurrent settlements of the same order
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return self._map_payment(row) if row else None

    async def save(self, payment: Payment) -> Payment:
        if payment.id is None:
            raise ValueError("Payment has not been persisted")
        stmt = (
            update(payments)
            .where(payments.c.id == payment.id)
            .values(
                status=payment.status.value,
                gateway_transaction_id=payment.gateway_transaction_id,
                gateway_response=payment.gateway_response,
                failure_reason=payment.failure_reason,
                refund_amount=payment.refund_amount,
                refund_reason=payment.refund_reason,
                refunded_at=payment.refunded_at,
                paid_at=payment.paid_at,
            )
        )
        await self._session.execute(stmt)
        return payment

    async def list_by_booking(self, booking_id: str) -> Sequence[Payment]:
        stmt = (
            select(payments)
            .where(payments.c.booking_id == booking_id)
            .order_by(payments.c.id)
        )
        result = await self._session.execute(stmt)
        return [self._map_payment(row) for row in result.mappings().all()]

    async def list_pending_by_method(self, payment_method: str) -> Sequence[Payment]:
        stmt = (
            select(payments)
            .where(
                payments.c.payment_method == payment_method,
                payments.c.status == PaymentStatus.PENDING.value,
            )
            .order_by(payments.c.id)
        )
        result = await self._session.execute(stmt)
        return [self._map_payment(row) for row in result.mappings().all()]

    def _map_payment(self, row) -> Payment:
        return Payment(
            id=row["id"],
            booking_id=row["booking_id"],
            amount=row["amount"],
            payment_method=row["payment_method"],
            gateway_order_id=row["gateway_order_id"],
            gateway_transaction_id=row.get("gateway_transaction_id"),
            status=PaymentStatus(row["status"]),
            gateway_response=row.get("gateway_response") or {},
            failure_reason=row.get("failure_reason"),
            refund_amount=row.get("refund_amount"),
            refund_reason=row.get("refund_reason"),
            refunded_at=row.get("refunded_at"),
            created_at=row.get("created_at"),
            paid_at=row.get("paid_at"),
        )
