"""Booking entity as seen by the payment core.

The booking subsystem owns the record; settlement only writes
``payment_status`` and ``status``.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from paygate.domain.value_objects.money import Money


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingPaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Booking:
    id: str
    booking_number: str
    total_amount: Decimal
    status: BookingStatus = BookingStatus.PENDING
    payment_status: BookingPaymentStatus = BookingPaymentStatus.PENDING
    customer_name: str | None = None
    customer_email: str | None = None
    service_name: str | None = None

    @property
    def total(self) -> Money:
        return Money(self.total_amount)
