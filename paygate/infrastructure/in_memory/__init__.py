"""In-memory implementations for development and tests."""

from paygate.infrastructure.in_memory.booking_repo import InMemoryBookingRepo
from paygate.infrastructure.in_memory.payment_repo import InMemoryPaymentRepo
from paygate.infrastructure.in_memory.side_effect_dispatcher import RecordingDispatcher
from paygate.infrastructure.in_memory.transaction_manager import LockingTransactionManager
from paygate.infrastructure.in_memory.webhook_event_repo import InMemoryWebhookEventRepo

__all__ = [
    "InMemoryBookingRepo",
    "InMemoryPaymentRepo",
    "InMemoryWebhookEventRepo",
    "RecordingDispatcher",
    "LockingTransactionManager",
]
