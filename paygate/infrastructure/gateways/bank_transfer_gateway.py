import logging
from datetime import timedelta
from typing import Any

from paygate.application.dtos.notifications import ManualTransferNotification
from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    ProviderConfigReport,
    RefundResult,
    StatusQueryResult,
)
from paygate.application.interfaces.clock import Clock
from paygate.application.interfaces.payment_gateway import OrderRequest, PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.domain.constants import PROVIDER_BANKING
from paygate.domain.entities.payment import Payment, PaymentOutcome, PaymentStatus
from paygate.domain.errors import (
    InvalidPayloadError,
    PaymentNotFoundError,
    UnsupportedOperationError,
)
from paygate.domain.value_objects.money import Money

ACTION_CONFIRMED = "confirmed"
ACTION_REJECTED = "rejected"

_STATUS_OUTCOMES = {
    PaymentStatus.PENDING: PaymentOutcome.PENDING,
    PaymentStatus.COMPLETED: PaymentOutcome.COMPLETED,
    PaymentStatus.REFUNDED: PaymentOutcome.COMPLETED,
    PaymentStatus.FAILED: PaymentOutcome.FAILED,
}


class BankTransferGateway(PaymentGateway):
    """
    Manual bank transfer.

    No provider API and no signatures: the payer transfers to one of the
    configured accounts quoting the transfer code, and an administrator
    confirms or rejects it. Decisions still go through the settlement path.
    """

    provider = PROVIDER_BANKING

    def __init__(self, config: dict[str, Any], clock: Clock, payment_repo: PaymentRepo) -> None:
        self._config = config
        self._clock = clock
        self._payments = payment_repo
        self._logger = logging.getLogger(__name__)

    def is_configured(self) -> bool:
        return bool(self._config.get("accounts"))

    def configuration_report(self) -> ProviderConfigReport:
        return ProviderConfigReport(
            provider=self.provider,
            configured=self.is_configured(),
            production=self.is_configured(),
            issues=[] if self.is_configured() else ["No bank accounts configured"],
        )

    async def create_order(self, order: OrderRequest) -> CreateOrderResult:
        booking = order.booking
        now = self._clock.now()
        transfer_code = f"BANK_{booking.booking_number}_{self._clock.timestamp_ms()}"
        content = " ".join(
            part
            for part in (
                self._config.get("transfer_prefix", ""),
                booking.booking_number,
                booking.customer_name,
            )
            if part
        )
        expires_at = now + timedelta(hours=int(self._config.get("expire_hours") or 24))
        instructions = {
            "transfer_code": transfer_code,
            "amount": order.amount.to_gateway_amount(),
            "transfer_content": content,
            "bank_accounts": list(self._config.get("accounts", [])),
            "expires_at": expires_at.isoformat(),
        }
        self._logger.info(
            "Bank transfer order created",
            extra={"transfer_code": transfer_code, "booking_number": booking.booking_number},
        )
        return CreateOrderResult(
            success=True,
            provider=self.provider,
            order_id=transfer_code,
            amount=order.amount.amount,
            bank_instructions=instructions,
            expires_at=expires_at,
            raw=instructions,
        )

    def verify_notification(
        self,
        payload: dict[str, Any],
        signature: str | None = None,
    ) -> ManualTransferNotification:
        raise UnsupportedOperationError(self.provider, "inbound webhooks")

    def manual_decision(
        self,
        order_id: str,
        action: str,
        notes: str | None = None,
        received_amount: Money | None = None,
    ) -> ManualTransferNotification:
        if action not in (ACTION_CONFIRMED, ACTION_REJECTED):
            raise InvalidPayloadError(self.provider, f"Unknown transfer action '{action}'")
        if action == ACTION_REJECTED and not notes:
            raise InvalidPayloadError(self.provider, "A rejection reason is required")
        return ManualTransferNotification(
            order_id=order_id,
            outcome=PaymentOutcome.COMPLETED
            if action == ACTION_CONFIRMED
            else PaymentOutcome.FAILED,
            amount=received_amount,
            transaction_id=f"{order_id}:{action}",
            response_code=action,
            message=notes,
            action=action,
            admin_notes=notes,
            decided_at=self._clock.now(),
            raw={
                "transfer_code": order_id,
                "action": action,
                "admin_notes": notes,
                "received_amount": str(received_amount.amount) if received_amount else None,
            },
        )

    async def query_status(self, order_id: str) -> StatusQueryResult:
        payment = await self._payments.get_by_gateway_order_id(order_id)
        if payment is None:
            return StatusQueryResult.failure(self.provider, order_id, PaymentNotFoundError(order_id))
        return StatusQueryResult(
            success=True,
            provider=self.provider,
            order_id=order_id,
            outcome=_STATUS_OUTCOMES[payment.status],
            transaction_id=payment.gateway_transaction_id,
            amount=payment.amount,
            response_code=payment.status.value,
            message=payment.failure_reason,
        )

    async def refund(self, payment: Payment, amount: Money, reason: str) -> RefundResult:
        # Money goes back by a manual transfer; only the bookkeeping happens here
        return RefundResult(
            success=True,
            provider=self.provider,
            order_id=payment.gateway_order_id,
            amount=amount.amount,
            refund_id=f"BANK_REFUND_{self._clock.timestamp_ms()}",
            status="manual",
            message="Refund recorded; transfer the amount back manually",
        )
