import logging
from decimal import Decimal

from paygate.application.dtos.payment_results import RefundResult
from paygate.application.interfaces.payment_gateway import PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.interfaces.transaction_manager import TransactionManager
from paygate.application.use_cases.payment_state_machine import PaymentStateMachine
from paygate.domain.entities.payment import PaymentStatus
from paygate.domain.errors import (
    IllegalTransitionError,
    InvalidPayloadError,
    PaymentNotFoundError,
    RefundAmountExceededError,
)
from paygate.domain.value_objects.money import Money


class RefundPaymentUseCase:
    def __init__(
        self,
        payment_repo: PaymentRepo,
        state_machine: PaymentStateMachine,
        tx: TransactionManager,
    ) -> None:
        self._payments = payment_repo
        self._state_machine = state_machine
        self._tx = tx
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        gateway: PaymentGateway,
        order_id: str,
        amount: Decimal | None,
        reason: str,
    ) -> RefundResult:
        """
        Raises:
            PaymentNotFoundError, IllegalTransitionError, RefundAmountExceededError
        """
        payment = await self._payments.get_by_gateway_order_id(order_id)
        if payment is None:
            raise PaymentNotFoundError(order_id)
        if payment.status != PaymentStatus.COMPLETED:
            raise IllegalTransitionError(
                order_id=order_id,
                current_status=payment.status.value,
                target_status=PaymentStatus.REFUNDED.value,
            )

        refund_amount = payment.amount if amount is None else Decimal(amount)
        if refund_amount <= 0:
            raise InvalidPayloadError(gateway.provider, "Refund amount must be positive")
        if refund_amount > payment.amount:
            raise RefundAmountExceededError(
                order_id=order_id, payment_amount=payment.amount, refund_amount=refund_amount
            )

        result = await gateway.refund(payment, Money(refund_amount), reason)
        if not result.success:
            self._logger.warning(
                "Provider refused refund",
                extra={"order_id": order_id, "error_code": result.error_code},
            )
            return result

        async with self._tx.start():
            locked = await self._payments.get_by_gateway_order_id(order_id, for_update=True)
            transition = await self._state_machine.apply_refund(locked, refund_amount, reason)

        if transition.rejected is not None:
            # The provider refunded but another request already moved the payment
            self._logger.error(
                "Refund accepted by provider but payment changed concurrently",
                extra={"order_id": order_id, "status": transition.status.value},
            )
            return RefundResult(
                success=False,
                provider=gateway.provider,
                order_id=order_id,
                amount=refund_amount,
                refund_id=result.refund_id,
                status=transition.status.value,
                message=transition.rejected.message,
                raw=result.raw,
                error_code=transition.rejected.code,
            )

        result.amount = refund_amount
        result.status = transition.status.value
        return result
