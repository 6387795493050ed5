"""Data Transfer Objects of the application layer."""

from paygate.application.dtos.notifications import (
    GatewayNotification,
    ManualTransferNotification,
    MoMoNotification,
    VNPayNotification,
    ZaloPayNotification,
)
from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    ProviderConfigReport,
    RefundResult,
    StatusQueryResult,
    VerifyResult,
    WebhookResult,
)

__all__ = [
    # Notifications
    "GatewayNotification",
    "VNPayNotification",
    "MoMoNotification",
    "ZaloPayNotification",
    "ManualTransferNotification",
    # Results
    "CreateOrderResult",
    "StatusQueryResult",
    "VerifyResult",
    "WebhookResult",
    "RefundResult",
    "ProviderConfigReport",
]
