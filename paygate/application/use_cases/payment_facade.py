"""Provider-agnostic entry point for payment operations."""

import logging
from decimal import Decimal
from typing import Any, Mapping, Sequence

from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    ProviderConfigReport,
    RefundResult,
    VerifyResult,
    WebhookResult,
)
from paygate.application.interfaces.payment_gateway import PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.use_cases.create_payment import CreatePaymentUseCase
from paygate.application.use_cases.reconcile_payment import ReconcilePaymentUseCase
from paygate.application.use_cases.refund_payment import RefundPaymentUseCase
from paygate.application.use_cases.settle_payment import SettlePaymentUseCase
from paygate.domain.constants import EVENT_SOURCE_MANUAL, PROVIDER_BANKING
from paygate.domain.entities.payment import Payment
from paygate.domain.errors import (
    DomainError,
    InvalidPayloadError,
    PaymentNotFoundError,
    ProviderUnavailableError,
    SignatureInvalidError,
)
from paygate.domain.value_objects.money import Money

logger = logging.getLogger(__name__)


class PaymentFacade:
    """
    Resolves the gateway for a provider and runs the matching use case.

    Every public method returns a result object; domain errors raised below
    are converted here and never reach the caller.
    """

    def __init__(
        self,
        gateways: Mapping[str, PaymentGateway],
        payment_repo: PaymentRepo,
        create_payment: CreatePaymentUseCase,
        settle_payment: SettlePaymentUseCase,
        reconcile_payment: ReconcilePaymentUseCase,
        refund_payment: RefundPaymentUseCase,
    ) -> None:
        self._gateways = dict(gateways)
        self._payments = payment_repo
        self._create = create_payment
        self._settle = settle_payment
        self._reconcile = reconcile_payment
        self._refund = refund_payment

    def available_providers(self) -> list[str]:
        return [name for name, gateway in self._gateways.items() if gateway.is_configured()]

    def configuration_report(self) -> list[ProviderConfigReport]:
        return [gateway.configuration_report() for gateway in self._gateways.values()]

    def gateway(self, provider: str) -> PaymentGateway:
        gateway = self._gateways.get(provider)
        if gateway is None or not gateway.is_configured():
            raise ProviderUnavailableError(provider)
        return gateway

    async def create_payment(
        self,
        provider: str,
        booking_ref: str,
        amount: Decimal | None = None,
        description: str | None = None,
    ) -> CreateOrderResult:
        try:
            gateway = self.gateway(provider)
            return await self._create.execute(
                gateway,
                booking_ref=booking_ref,
                amount=amount,
                description=description or f"Payment for booking {booking_ref}",
            )
        except DomainError as exc:
            logger.warning(
                "Create payment failed",
                extra={"provider": provider, "booking_ref": booking_ref, "error_code": exc.code},
            )
            return CreateOrderResult.failure(provider, exc)

    async def verify_payment(self, provider: str, order_id: str) -> VerifyResult:
        """Read-only status check against the provider."""
        try:
            gateway = self.gateway(provider)
        except DomainError as exc:
            return VerifyResult(
                verified=False,
                provider=provider,
                order_id=order_id,
                message=exc.message,
                error_code=exc.code,
            )
        query = await gateway.query_status(order_id)
        return VerifyResult(
            verified=query.success,
            provider=provider,
            order_id=order_id,
            status=query.outcome.value if query.outcome else None,
            transaction_id=query.transaction_id,
            amount=query.amount,
            message=query.message,
            error_code=query.error_code,
        )

    def verify_return(self, provider: str, params: dict[str, Any]) -> VerifyResult:
        """Checks browser return parameters for display. Never settles."""
        try:
            notification = self.gateway(provider).verify_notification(params)
        except DomainError as exc:
            return VerifyResult(
                verified=False, provider=provider, message=exc.message, error_code=exc.code
            )
        return VerifyResult(
            verified=True,
            provider=provider,
            order_id=notification.order_id,
            status=notification.outcome.value,
            transaction_id=notification.transaction_id,
            amount=notification.amount.amount if notification.amount else None,
            message=notification.message,
        )

    async def handle_webhook(
        self,
        provider: str,
        payload: dict[str, Any],
        signature: str | None = None,
    ) -> WebhookResult:
        order_id = None
        try:
            gateway = self.gateway(provider)
            notification = gateway.verify_notification(payload, signature)
            order_id = notification.order_id
            return await self._settle.execute(notification)
        except SignatureInvalidError as exc:
            logger.warning(
                "Webhook signature rejected",
                extra={"provider": provider, "reason": exc.reason},
            )
            return WebhookResult.failure(provider, exc)
        except DomainError as exc:
            logger.warning(
                "Webhook not applied",
                extra={"provider": provider, "order_id": order_id, "error_code": exc.code},
            )
            return WebhookResult.failure(provider, exc, order_id=order_id)

    async def reconcile_payment(self, order_id: str) -> WebhookResult:
        provider = "unknown"
        try:
            payment = await self._find_payment(order_id)
            provider = payment.payment_method
            gateway = self.gateway(payment.payment_method)
            query, settlement = await self._reconcile.execute(gateway, order_id)
        except DomainError as exc:
            logger.warning(
                "Reconciliation failed",
                extra={"order_id": order_id, "provider": provider, "error_code": exc.code},
            )
            return WebhookResult.failure(provider, exc, order_id=order_id)

        if settlement is not None:
            return settlement
        if not query.success:
            return WebhookResult(
                success=False,
                provider=gateway.provider,
                order_id=order_id,
                status=payment.status.value,
                error_code=query.error_code,
                error_message=query.message,
            )
        return WebhookResult(
            success=True,
            provider=gateway.provider,
            order_id=order_id,
            status=payment.status.value,
            amount=payment.amount,
        )

    async def refund_payment(
        self,
        order_id: str,
        amount: Decimal | None,
        reason: str,
    ) -> RefundResult:
        provider = "unknown"
        try:
            payment = await self._find_payment(order_id)
            provider = payment.payment_method
            return await self._refund.execute(
                self.gateway(provider), order_id=order_id, amount=amount, reason=reason
            )
        except DomainError as exc:
            logger.warning(
                "Refund failed",
                extra={"order_id": order_id, "error_code": exc.code},
            )
            return RefundResult.failure(provider, order_id, exc)

    async def refund_status(self, provider: str, refund_id: str) -> RefundResult:
        try:
            gateway = self.gateway(provider)
        except DomainError as exc:
            return RefundResult.failure(provider, refund_id, exc)
        return await gateway.query_refund_status(refund_id)

    async def confirm_transfer(
        self,
        transfer_code: str,
        admin_notes: str | None = None,
        received_amount: Decimal | None = None,
    ) -> WebhookResult:
        return await self._decide_transfer(
            transfer_code, "confirmed", admin_notes, received_amount
        )

    async def reject_transfer(self, transfer_code: str, reason: str) -> WebhookResult:
        return await self._decide_transfer(transfer_code, "rejected", reason, None)

    async def pending_transfers(self) -> Sequence[Payment]:
        return await self._payments.list_pending_by_method(PROVIDER_BANKING)

    async def _decide_transfer(
        self,
        transfer_code: str,
        action: str,
        notes: str | None,
        received_amount: Decimal | None,
    ) -> WebhookResult:
        try:
            gateway = self.gateway(PROVIDER_BANKING)
            payment = await self._find_payment(transfer_code)
            if payment.payment_method != PROVIDER_BANKING:
                raise InvalidPayloadError(
                    PROVIDER_BANKING, f"{transfer_code} is not a bank transfer"
                )
            notification = gateway.manual_decision(
                transfer_code,
                action,
                notes=notes,
                received_amount=Money(received_amount) if received_amount is not None else None,
            )
            result = await self._settle.execute(notification, source=EVENT_SOURCE_MANUAL)
        except DomainError as exc:
            logger.warning(
                "Bank transfer decision not applied",
                extra={"transfer_code": transfer_code, "action": action, "error_code": exc.code},
            )
            return WebhookResult.failure(PROVIDER_BANKING, exc, order_id=transfer_code)

        logger.info(
            "Bank transfer decided",
            extra={"transfer_code": transfer_code, "action": action, "status": result.status},
        )
        return result

    async def _find_payment(self, order_id: str) -> Payment:
        payment = await self._payments.get_by_gateway_order_id(order_id)
        if payment is None:
            raise PaymentNotFoundError(order_id)
        return payment
