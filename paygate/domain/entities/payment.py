"""Payment entity - one attempt to pay for a booking through a provider."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from paygate.domain.errors import IllegalTransitionError
from paygate.domain.value_objects.money import Money


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentOutcome(str, Enum):
    """Closed vocabulary every provider response code is mapped onto."""

    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"


_ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


@dataclass
class Payment:
    """
    A payment attempt against a booking.

    Created ``pending`` when an order is opened with a gateway and mutated
    only through the settlement state machine. Never deleted.
    """

    booking_id: str
    amount: Decimal
    payment_method: str
    gateway_order_id: str
    id: int | None = None
    gateway_transaction_id: str | None = None
    status: PaymentStatus = PaymentStatus.PENDING
    gateway_response: dict[str, Any] = field(default_factory=dict)
    failure_reason: str | None = None
    refund_amount: Decimal | None = None
    refund_reason: str | None = None
    refunded_at: datetime | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None

    @property
    def money(self) -> Money:
        return Money(self.amount)

    @property
    def is_terminal(self) -> bool:
        return not _ALLOWED_TRANSITIONS[self.status]

    def can_transition_to(self, target: PaymentStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[self.status]

    def _guard(self, target: PaymentStatus) -> None:
        if not self.can_transition_to(target):
            raise IllegalTransitionError(
                order_id=self.gateway_order_id,
                current_status=self.status.value,
                target_status=target.value,
            )

    def complete(
        self,
        paid_at: datetime,
        transaction_id: str | None,
        gateway_response: dict[str, Any],
    ) -> None:
        self._guard(PaymentStatus.COMPLETED)
        self.status = PaymentStatus.COMPLETED
        self.paid_at = paid_at
        if transaction_id:
            self.gateway_transaction_id = transaction_id
        self.gateway_response = gateway_response

    def fail(self, reason: str | None, gateway_response: dict[str, Any]) -> None:
        self._guard(PaymentStatus.FAILED)
        self.status = PaymentStatus.FAILED
        self.failure_reason = reason
        self.gateway_response = gateway_response

    def refund(self, amount: Decimal, reason: str, refunded_at: datetime) -> None:
        self._guard(PaymentStatus.REFUNDED)
        self.status = PaymentStatus.REFUNDED
        self.refund_amount = amount
        self.refund_reason = reason
        self.refunded_at = refunded_at

    @classmethod
    def create_pending(
        cls,
        booking_id: str,
        amount: Decimal,
        payment_method: str,
        gateway_order_id: str,
        created_at: datetime,
    ) -> "Payment":
        return cls(
            booking_id=booking_id,
            amount=amount,
            payment_method=payment_method,
            gateway_order_id=gateway_order_id,
            status=PaymentStatus.PENDING,
            created_at=created_at,
        )
