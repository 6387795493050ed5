from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, condecimal, constr

Amount = condecimal(max_digits=14, decimal_places=2, gt=0)


class CreatePaymentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: constr(strip_whitespace=True, to_lower=True, min_length=1)
    booking_ref: constr(strip_whitespace=True, min_length=1)
    amount: Amount | None = None
    description: str | None = Field(default=None, max_length=255)


class CreatePaymentResponse(BaseModel):
    success: bool
    provider: str
    order_id: str | None = None
    payment_id: int | None = None
    amount: Decimal | None = None
    redirect_url: str | None = None
    qr_code: str | None = None
    deeplink: str | None = None
    bank_instructions: dict[str, Any] | None = None
    expires_at: datetime | None = None
    error_code: str | None = None
    error_message: str | None = None


class VerifyResponse(BaseModel):
    verified: bool
    provider: str
    order_id: str | None = None
    status: str | None = None
    transaction_id: str | None = None
    amount: Decimal | None = None
    message: str | None = None
    error_code: str | None = None


class SettlementResponse(BaseModel):
    success: bool
    provider: str
    order_id: str | None = None
    status: str | None = None
    amount: Decimal | None = None
    already_processed: bool = False
    changed: bool = False
    error_code: str | None = None
    error_message: str | None = None


class RefundRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Amount | None = None
    reason: constr(strip_whitespace=True, min_length=1, max_length=255)


class RefundResponse(BaseModel):
    success: bool
    provider: str
    order_id: str
    amount: Decimal | None = None
    refund_id: str | None = None
    status: str | None = None
    message: str | None = None
    error_code: str | None = None


class ConfirmTransferRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    admin_notes: str | None = Field(default=None, max_length=500)
    received_amount: Amount | None = None


class RejectTransferRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: constr(strip_whitespace=True, min_length=1, max_length=500)


class PendingTransfer(BaseModel):
    transfer_code: str
    booking_id: str
    amount: Decimal
    created_at: datetime | None = None


class ProvidersResponse(BaseModel):
    providers: list[str]
