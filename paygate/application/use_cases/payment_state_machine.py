"""The one code path that mutates Payment and Booking state."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.application.interfaces.clock import Clock
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.domain.entities.booking import BookingPaymentStatus, BookingStatus
from paygate.domain.entities.payment import Payment, PaymentOutcome, PaymentStatus
from paygate.domain.errors import IllegalTransitionError

logger = logging.getLogger(__name__)


def _target_for(outcome: PaymentOutcome) -> PaymentStatus | None:
    if outcome == PaymentOutcome.COMPLETED:
        return PaymentStatus.COMPLETED
    if outcome == PaymentOutcome.FAILED:
        return PaymentStatus.FAILED
    return None


def _is_redelivery(current: PaymentStatus, target: PaymentStatus) -> bool:
    return current == target or (
        current == PaymentStatus.REFUNDED and target == PaymentStatus.COMPLETED
    )


@dataclass
class TransitionResult:
    previous_status: PaymentStatus
    status: PaymentStatus
    changed: bool
    # Set when the requested move is not legal from the current status
    rejected: IllegalTransitionError | None = None

    @property
    def already_terminal(self) -> bool:
        return not self.changed and self.previous_status != PaymentStatus.PENDING


class PaymentStateMachine:
    """
    Applies settlement outcomes and refunds.

    Callers must hold the payment row lock inside an open transaction
    (``PaymentRepo.get_by_gateway_order_id(..., for_update=True)``); the
    Payment and Booking writes issued here commit together with it.
    """

    def __init__(self, payment_repo: PaymentRepo, booking_repo: BookingRepo, clock: Clock) -> None:
        self._payments = payment_repo
        self._bookings = booking_repo
        self._clock = clock

    def rejection_for(
        self, payment: Payment, outcome: PaymentOutcome
    ) -> IllegalTransitionError | None:
        """The error ``apply_outcome`` would reject this outcome with, if any."""
        target = _target_for(outcome)
        if target is None or _is_redelivery(payment.status, target):
            return None
        if payment.can_transition_to(target):
            return None
        return IllegalTransitionError(
            order_id=payment.gateway_order_id,
            current_status=payment.status.value,
            target_status=target.value,
        )

    async def apply_outcome(
        self,
        payment: Payment,
        outcome: PaymentOutcome,
        transaction_id: str | None = None,
        gateway_response: dict[str, Any] | None = None,
        failure_reason: str | None = None,
    ) -> TransitionResult:
        previous = payment.status
        if outcome == PaymentOutcome.PENDING:
            return TransitionResult(previous_status=previous, status=previous, changed=False)

        target = _target_for(outcome)
        if _is_redelivery(previous, target):
            # Re-delivery of a state the payment already reached
            return TransitionResult(previous_status=previous, status=previous, changed=False)

        try:
            if target == PaymentStatus.COMPLETED:
                payment.complete(
                    paid_at=self._clock.now(),
                    transaction_id=transaction_id,
                    gateway_response=gateway_response or {},
                )
            else:
                payment.fail(reason=failure_reason, gateway_response=gateway_response or {})
        except IllegalTransitionError as exc:
            logger.warning(
                "Rejected payment transition",
                extra={
                    "order_id": payment.gateway_order_id,
                    "current_status": exc.current_status,
                    "target_status": exc.target_status,
                },
            )
            return TransitionResult(
                previous_status=previous, status=previous, changed=False, rejected=exc
            )

        await self._payments.save(payment)
        await self._apply_to_booking(payment)
        logger.info(
            "Payment transitioned",
            extra={
                "order_id": payment.gateway_order_id,
                "booking_id": payment.booking_id,
                "from": previous.value,
                "to": payment.status.value,
            },
        )
        return TransitionResult(previous_status=previous, status=payment.status, changed=True)

    async def apply_refund(self, payment: Payment, amount: Decimal, reason: str) -> TransitionResult:
        previous = payment.status
        try:
            payment.refund(amount=amount, reason=reason, refunded_at=self._clock.now())
        except IllegalTransitionError as exc:
            logger.warning(
                "Rejected refund transition",
                extra={"order_id": payment.gateway_order_id, "current_status": previous.value},
            )
            return TransitionResult(
                previous_status=previous, status=previous, changed=False, rejected=exc
            )

        # Booking status stays as is; delivery may already be under way
        await self._payments.save(payment)
        logger.info(
            "Payment refunded",
            extra={"order_id": payment.gateway_order_id, "refund_amount": str(amount)},
        )
        return TransitionResult(previous_status=previous, status=payment.status, changed=True)

    async def _apply_to_booking(self, payment: Payment) -> None:
        booking = await self._bookings.get_by_id(payment.booking_id, for_update=True)
        if booking is None:
            logger.error(
                "Booking missing for settled payment",
                extra={"order_id": payment.gateway_order_id, "booking_id": payment.booking_id},
            )
            return

        if payment.status == PaymentStatus.COMPLETED:
            if booking.payment_status == BookingPaymentStatus.COMPLETED:
                logger.warning(
                    "Booking already paid by another attempt",
                    extra={"booking_id": booking.id, "order_id": payment.gateway_order_id},
                )
            await self._bookings.update_payment_state(
                booking.id,
                payment_status=BookingPaymentStatus.COMPLETED,
                status=BookingStatus.CONFIRMED,
            )
        elif payment.status == PaymentStatus.FAILED:
            # A failed retry must not mark an already paid booking as failed
            if booking.payment_status != BookingPaymentStatus.COMPLETED:
                await self._bookings.update_payment_state(
                    booking.id, payment_status=BookingPaymentStatus.FAILED
                )
