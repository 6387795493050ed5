import copy
from collections import defaultdict
from typing import Sequence

from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.domain.entities.payment import Payment, PaymentStatus


class InMemoryPaymentRepo(PaymentRepo):
    """Stores copies so callers only change state through ``save``."""

    def __init__(self) -> None:
        self._by_id: dict[int, Payment] = {}
        self._by_order: dict[str, int] = {}
        self._by_booking: dict[str, list[int]] = defaultdict(list)
        self._next_id = 1

    async def create_pending(self, payment: Payment) -> Payment:
        if payment.gateway_order_id in self._by_order:
            raise ValueError(f"Duplicate gateway order id {payment.gateway_order_id}")
        payment.id = self._next_id
        self._next_id += 1
        self._by_id[payment.id] = copy.deepcopy(payment)
        self._by_order[payment.gateway_order_id] = payment.id
        self._by_booking[payment.booking_id].append(payment.id)
        return payment

    async def get_by_gateway_order_id(
        self,
        gateway_order_id: str,
        for_update: bool = False,
    ) -> Payment | None:
        payment_id = self._by_order.get(gateway_order_id)
        if payment_id is None:
            return None
        return copy.deepcopy(self._by_id[payment_id])

    async def save(self, payment: Payment) -> Payment:
        if payment.id is None or payment.id not in self._by_id:
            raise ValueError("Payment has not been persisted")
        self._by_id[payment.id] = copy.deepcopy(payment)
        return payment

    async def list_by_booking(self, booking_id: str) -> Sequence[Payment]:
        return [copy.deepcopy(self._by_id[pid]) for pid in self._by_booking.get(booking_id, [])]

    async def list_pending_by_method(self, payment_method: str) -> Sequence[Payment]:
        return [
            copy.deepcopy(payment)
            for payment in self._by_id.values()
            if payment.payment_method == payment_method
            and payment.status == PaymentStatus.PENDING
        ]

    def clear(self) -> None:
        self._by_id.clear()
        self._by_order.clear()
        self._by_booking.clear()
        self._next_id = 1
