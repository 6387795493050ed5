"""Domain entities for payment reconciliation."""

from paygate.domain.entities.booking import Booking, BookingPaymentStatus, BookingStatus
from paygate.domain.entities.payment import Payment, PaymentOutcome, PaymentStatus
from paygate.domain.entities.webhook_event import WebhookEvent

__all__ = [
    # Booking
    "Booking",
    "BookingStatus",
    "BookingPaymentStatus",
    # Payment
    "Payment",
    "PaymentStatus",
    "PaymentOutcome",
    # Ledger
    "WebhookEvent",
]
