"""Typed inbound notifications.

Gateways build these only after the payload's signature has been verified;
nothing past the gateway boundary reads the raw provider map.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from paygate.domain.constants import (
    PROVIDER_BANKING,
    PROVIDER_MOMO,
    PROVIDER_VNPAY,
    PROVIDER_ZALOPAY,
)
from paygate.domain.entities.payment import PaymentOutcome
from paygate.domain.value_objects.event_identity import EventIdentity
from paygate.domain.value_objects.money import Money


@dataclass(frozen=True, kw_only=True)
class GatewayNotification:
    provider: str
    order_id: str
    outcome: PaymentOutcome
    amount: Money | None
    transaction_id: str | None = None
    response_code: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> EventIdentity:
        return EventIdentity(
            provider=self.provider,
            order_id=self.order_id,
            transaction_id=self.transaction_id,
            response_code=self.response_code if self.response_code is not None else "none",
        )

    @property
    def failure_reason(self) -> str | None:
        if self.outcome != PaymentOutcome.FAILED:
            return None
        return self.message or f"Provider response code {self.response_code}"


@dataclass(frozen=True, kw_only=True)
class VNPayNotification(GatewayNotification):
    provider: str = PROVIDER_VNPAY
    transaction_status: str | None = None
    bank_code: str | None = None
    card_type: str | None = None
    pay_date: str | None = None


@dataclass(frozen=True, kw_only=True)
class MoMoNotification(GatewayNotification):
    provider: str = PROVIDER_MOMO
    request_id: str | None = None
    pay_type: str | None = None
    response_time: int | None = None
    extra_data: str | None = None


@dataclass(frozen=True, kw_only=True)
class ZaloPayNotification(GatewayNotification):
    provider: str = PROVIDER_ZALOPAY
    app_user: str | None = None
    server_time: int | None = None
    channel: int | None = None
    embed_data: dict[str, Any] = field(default_factory=dict)

    @property
    def booking_id(self) -> str | None:
        return self.embed_data.get("booking_id")


@dataclass(frozen=True, kw_only=True)
class ManualTransferNotification(GatewayNotification):
    """An administrator confirmed or rejected a bank transfer."""

    provider: str = PROVIDER_BANKING
    action: str = "confirmed"
    admin_notes: str | None = None
    decided_at: datetime | None = None
