"""Ports of the application layer."""

from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.application.interfaces.clock import Clock, FakeClock, SystemClock
from paygate.application.interfaces.payment_gateway import OrderRequest, PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.interfaces.side_effect_dispatcher import (
    SettlementEvent,
    SideEffectDispatcher,
)
from paygate.application.interfaces.transaction_manager import TransactionManager
from paygate.application.interfaces.webhook_event_repo import WebhookEventRepo

__all__ = [
    # Repositories
    "BookingRepo",
    "PaymentRepo",
    "WebhookEventRepo",
    # Gateways
    "PaymentGateway",
    "OrderRequest",
    # Side effects
    "SideEffectDispatcher",
    "SettlementEvent",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
]
