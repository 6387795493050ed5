from typing import Sequence

from paygate.domain.entities.payment import Payment


class PaymentRepo:
    async def create_pending(self, payment: Payment) -> Payment:
        raise NotImplementedError

    async def get_by_gateway_order_id(
        self,
        gateway_order_id: str,
        for_update: bool = False,
    ) -> Payment | None:
        raise NotImplementedError

    async def save(self, payment: Payment) -> Payment:
        """Persist the mutable settlement and refund fields of ``payment``."""
        raise NotImplementedError

    async def list_by_booking(self, booking_id: str) -> Sequence[Payment]:
        raise NotImplementedError

    async def list_pending_by_method(self, payment_method: str) -> Sequence[Payment]:
        raise NotImplementedError
