import logging
from decimal import Decimal

from paygate.application.dtos.payment_results import CreateOrderResult
from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.application.interfaces.clock import Clock
from paygate.application.interfaces.payment_gateway import OrderRequest, PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.interfaces.transaction_manager import TransactionManager
from paygate.domain.entities.payment import Payment
from paygate.domain.errors import AmountMismatchError, BookingNotFoundError
from paygate.domain.value_objects.money import Money


class CreatePaymentUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        payment_repo: PaymentRepo,
        tx: TransactionManager,
        clock: Clock,
    ) -> None:
        self._bookings = booking_repo
        self._payments = payment_repo
        self._tx = tx
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        gateway: PaymentGateway,
        booking_ref: str,
        amount: Decimal | None,
        description: str,
    ) -> CreateOrderResult:
        """
        Opens a provider order and records the pending Payment.

        The Payment row is written only once the provider accepted the order,
        so transport failures and rejections leave nothing behind.

        Raises:
            BookingNotFoundError: no booking matches ``booking_ref``.
            AmountMismatchError: ``amount`` differs from the booking total.
        """
        booking = await self._bookings.get_by_reference(booking_ref)
        if booking is None:
            raise BookingNotFoundError(booking_ref)

        money = booking.total if amount is None else Money(amount)
        if not money.matches(booking.total):
            raise AmountMismatchError(
                order_id=booking.booking_number,
                expected=booking.total_amount,
                received=money.amount,
            )

        result = await gateway.create_order(
            OrderRequest(booking=booking, amount=money, description=description)
        )
        if not result.success:
            self._logger.warning(
                "Provider did not open order",
                extra={
                    "provider": gateway.provider,
                    "booking_number": booking.booking_number,
                    "error_code": result.error_code,
                },
            )
            return result

        async with self._tx.start():
            payment = await self._payments.create_pending(
                Payment.create_pending(
                    booking_id=booking.id,
                    amount=booking.total_amount,
                    payment_method=gateway.provider,
                    gateway_order_id=result.order_id,
                    created_at=self._clock.now(),
                )
            )

        result.payment_id = payment.id
        result.amount = payment.amount
        self._logger.info(
            "Payment order created",
            extra={
                "provider": gateway.provider,
                "order_id": result.order_id,
                "booking_number": booking.booking_number,
            },
        )
        return result
