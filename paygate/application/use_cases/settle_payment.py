import logging

from paygate.application.dtos.notifications import GatewayNotification
from paygate.application.dtos.payment_results import WebhookResult
from paygate.application.interfaces.booking_repo import BookingRepo
from paygate.application.interfaces.clock import Clock
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.interfaces.side_effect_dispatcher import (
    SettlementEvent,
    SideEffectDispatcher,
)
from paygate.application.interfaces.transaction_manager import TransactionManager
from paygate.application.interfaces.webhook_event_repo import WebhookEventRepo
from paygate.application.use_cases.payment_state_machine import (
    PaymentStateMachine,
    TransitionResult,
)
from paygate.domain.constants import EVENT_SOURCE_WEBHOOK
from paygate.domain.entities.payment import Payment, PaymentOutcome
from paygate.domain.entities.webhook_event import WebhookEvent
from paygate.domain.errors import AmountMismatchError, PaymentNotFoundError


class SettlePaymentUseCase:
    """
    Idempotent settlement of a verified notification.

    Ledger pre-check, row lock, amount check, ledger insert and state
    transition run in one transaction. The unique ``event_id`` closes the
    race between concurrent duplicate deliveries; side effects fire only for
    the delivery whose insert won and whose transition changed state.
    """

    def __init__(
        self,
        payment_repo: PaymentRepo,
        booking_repo: BookingRepo,
        webhook_event_repo: WebhookEventRepo,
        state_machine: PaymentStateMachine,
        dispatcher: SideEffectDispatcher,
        tx: TransactionManager,
        clock: Clock,
    ) -> None:
        self._payments = payment_repo
        self._bookings = booking_repo
        self._events = webhook_event_repo
        self._state_machine = state_machine
        self._dispatcher = dispatcher
        self._tx = tx
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        notification: GatewayNotification,
        source: str = EVENT_SOURCE_WEBHOOK,
    ) -> WebhookResult:
        """
        Raises:
            PaymentNotFoundError: no payment carries the notification's order id.
            AmountMismatchError: declared amount differs from the stored one.
        """
        event_id = notification.identity.value

        if await self._events.exists(event_id):
            return await self._already_processed(notification, event_id)

        async with self._tx.start():
            payment = await self._payments.get_by_gateway_order_id(
                notification.order_id, for_update=True
            )
            if payment is None:
                raise PaymentNotFoundError(notification.order_id)

            if notification.outcome == PaymentOutcome.PENDING:
                # Nothing settled yet; the final notification gets its own event
                return WebhookResult(
                    success=True,
                    provider=notification.provider,
                    order_id=payment.gateway_order_id,
                    status=payment.status.value,
                    amount=payment.amount,
                    event_id=event_id,
                )

            self._check_amount(payment, notification)

            rejected = self._state_machine.rejection_for(payment, notification.outcome)
            if rejected is not None:
                # Not recorded, so a re-delivery is rejected the same way
                self._logger.warning(
                    "Settlement event rejected",
                    extra={"event_id": event_id, "current_status": payment.status.value},
                )
                return self._result(
                    notification,
                    payment,
                    TransitionResult(
                        previous_status=payment.status,
                        status=payment.status,
                        changed=False,
                        rejected=rejected,
                    ),
                    event_id,
                )

            recorded = await self._events.record(
                WebhookEvent(
                    event_id=event_id,
                    provider=notification.provider,
                    order_id=notification.order_id,
                    status=notification.outcome.value,
                    amount=notification.amount.amount
                    if notification.amount is not None
                    else payment.amount,
                    transaction_id=notification.transaction_id,
                    source=source,
                    payload=notification.raw,
                    created_at=self._clock.now(),
                )
            )
            if not recorded:
                self._logger.info(
                    "Concurrent delivery already recorded event",
                    extra={"event_id": event_id},
                )
                return WebhookResult(
                    success=True,
                    provider=notification.provider,
                    order_id=payment.gateway_order_id,
                    status=payment.status.value,
                    amount=payment.amount,
                    already_processed=True,
                    event_id=event_id,
                )

            transition = await self._state_machine.apply_outcome(
                payment,
                notification.outcome,
                transaction_id=notification.transaction_id,
                gateway_response=notification.raw,
                failure_reason=notification.failure_reason,
            )
            booking = (
                await self._bookings.get_by_id(payment.booking_id) if transition.changed else None
            )

        if transition.changed:
            await self._dispatch(notification, payment, transition, event_id, source, booking)

        self._logger.info(
            "Settlement event processed",
            extra={
                "event_id": event_id,
                "source": source,
                "changed": transition.changed,
                "status": transition.status.value,
            },
        )
        return self._result(notification, payment, transition, event_id)

    def _check_amount(self, payment: Payment, notification: GatewayNotification) -> None:
        if notification.amount is None:
            return
        if not payment.money.matches(notification.amount):
            self._logger.error(
                "Webhook amount mismatch",
                extra={
                    "provider": notification.provider,
                    "order_id": payment.gateway_order_id,
                    "expected": str(payment.amount),
                    "received": str(notification.amount.amount),
                },
            )
            raise AmountMismatchError(
                order_id=payment.gateway_order_id,
                expected=payment.amount,
                received=notification.amount.amount,
            )

    async def _dispatch(self, notification, payment, transition, event_id, source, booking) -> None:
        event = SettlementEvent(
            event_id=event_id,
            provider=notification.provider,
            order_id=payment.gateway_order_id,
            booking_id=payment.booking_id,
            booking_number=booking.booking_number if booking else None,
            previous_status=transition.previous_status.value,
            new_status=transition.status.value,
            amount=payment.amount,
            source=source,
            transaction_id=payment.gateway_transaction_id,
            customer_email=booking.customer_email if booking else None,
        )
        try:
            await self._dispatcher.dispatch(event)
        except Exception:
            # The transition is committed; a failed notification must not undo it
            self._logger.exception(
                "Side-effect dispatch failed",
                extra={"event_id": event_id, "order_id": payment.gateway_order_id},
            )

    async def _already_processed(
        self, notification: GatewayNotification, event_id: str
    ) -> WebhookResult:
        payment = await self._payments.get_by_gateway_order_id(notification.order_id)
        self._logger.info(
            "Duplicate event skipped",
            extra={"event_id": event_id, "provider": notification.provider},
        )
        return WebhookResult(
            success=True,
            provider=notification.provider,
            order_id=notification.order_id,
            status=payment.status.value if payment else notification.outcome.value,
            amount=payment.amount if payment else None,
            already_processed=True,
            event_id=event_id,
        )

    def _result(
        self,
        notification: GatewayNotification,
        payment: Payment,
        transition: TransitionResult,
        event_id: str,
    ) -> WebhookResult:
        if transition.rejected is not None:
            return WebhookResult(
                success=False,
                provider=notification.provider,
                order_id=payment.gateway_order_id,
                status=transition.status.value,
                amount=payment.amount,
                event_id=event_id,
                error_code=transition.rejected.code,
                error_message=transition.rejected.message,
            )
        return WebhookResult(
            success=True,
            provider=notification.provider,
            order_id=payment.gateway_order_id,
            status=transition.status.value,
            amount=payment.amount,
            already_processed=transition.already_terminal,
            changed=transition.changed,
            event_id=event_id,
        )
