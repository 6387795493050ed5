import logging

from paygate.application.dtos.notifications import GatewayNotification
from paygate.application.dtos.payment_results import StatusQueryResult, WebhookResult
from paygate.application.interfaces.payment_gateway import PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.application.use_cases.settle_payment import SettlePaymentUseCase
from paygate.domain.constants import EVENT_SOURCE_QUERY
from paygate.domain.errors import PaymentNotFoundError
from paygate.domain.value_objects.money import Money


class ReconcilePaymentUseCase:
    """
    Pull-side settlement: asks the provider for an order's status and feeds a
    final answer through the same settlement path webhooks use.

    Nothing schedules this; an external job may call it for stale orders.
    """

    def __init__(self, payment_repo: PaymentRepo, settle: SettlePaymentUseCase) -> None:
        self._payments = payment_repo
        self._settle = settle
        self._logger = logging.getLogger(__name__)

    async def execute(
        self, gateway: PaymentGateway, order_id: str
    ) -> tuple[StatusQueryResult, WebhookResult | None]:
        payment = await self._payments.get_by_gateway_order_id(order_id)
        if payment is None:
            raise PaymentNotFoundError(order_id)

        query = await gateway.query_status(order_id)
        if not query.success or query.outcome is None:
            self._logger.info(
                "Reconciliation left payment untouched",
                extra={"order_id": order_id, "error_code": query.error_code},
            )
            return query, None

        notification = GatewayNotification(
            provider=gateway.provider,
            order_id=order_id,
            outcome=query.outcome,
            amount=Money(query.amount) if query.amount is not None else None,
            transaction_id=query.transaction_id,
            response_code=query.response_code,
            message=query.message,
            raw=query.raw,
        )
        settlement = await self._settle.execute(notification, source=EVENT_SOURCE_QUERY)
        return query, settlement
