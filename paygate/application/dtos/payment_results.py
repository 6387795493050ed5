"""Result objects returned by gateways and the payment facade.

Failures travel as ``success=False`` plus an ``error_code`` taken from the
domain error taxonomy; exceptions do not cross these boundaries.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from paygate.domain.entities.payment import PaymentOutcome
from paygate.domain.errors import DomainError


@dataclass
class CreateOrderResult:
    success: bool
    provider: str
    order_id: str | None = None
    amount: Decimal | None = None
    # Exactly one of the payer instructions is set on success
    redirect_url: str | None = None
    qr_code: str | None = None
    bank_instructions: dict[str, Any] | None = None
    deeplink: str | None = None
    expires_at: datetime | None = None
    payment_id: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None
    error_message: str | None = None

    @property
    def redirect_target(self) -> str | None:
        return self.redirect_url or self.qr_code

    @classmethod
    def failure(cls, provider: str, error: DomainError) -> "CreateOrderResult":
        return cls(
            success=False,
            provider=provider,
            error_code=error.code,
            error_message=error.message,
        )


@dataclass
class StatusQueryResult:
    success: bool
    provider: str
    order_id: str
    outcome: PaymentOutcome | None = None
    transaction_id: str | None = None
    amount: Decimal | None = None
    response_code: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None

    @classmethod
    def failure(cls, provider: str, order_id: str, error: DomainError) -> "StatusQueryResult":
        return cls(
            success=False,
            provider=provider,
            order_id=order_id,
            message=error.message,
            error_code=error.code,
        )


@dataclass
class VerifyResult:
    verified: bool
    provider: str
    order_id: str | None = None
    status: str | None = None
    transaction_id: str | None = None
    amount: Decimal | None = None
    message: str | None = None
    error_code: str | None = None


@dataclass
class WebhookResult:
    success: bool
    provider: str
    order_id: str | None = None
    status: str | None = None
    amount: Decimal | None = None
    already_processed: bool = False
    changed: bool = False
    event_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def failure(
        cls, provider: str, error: DomainError, order_id: str | None = None
    ) -> "WebhookResult":
        return cls(
            success=False,
            provider=provider,
            order_id=order_id,
            error_code=error.code,
            error_message=error.message,
        )


@dataclass
class RefundResult:
    success: bool
    provider: str
    order_id: str
    amount: Decimal | None = None
    refund_id: str | None = None
    status: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None

    @classmethod
    def failure(cls, provider: str, order_id: str, error: DomainError) -> "RefundResult":
        return cls(
            success=False,
            provider=provider,
            order_id=order_id,
            message=error.message,
            error_code=error.code,
        )


@dataclass
class ProviderConfigReport:
    provider: str
    configured: bool
    production: bool = False
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
