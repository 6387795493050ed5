from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from paygate.application.dtos.notifications import GatewayNotification
from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    ProviderConfigReport,
    RefundResult,
    StatusQueryResult,
)
from paygate.domain.entities.booking import Booking
from paygate.domain.entities.payment import Payment
from paygate.domain.errors import UnsupportedOperationError
from paygate.domain.value_objects.money import Money


@dataclass
class OrderRequest:
    booking: Booking
    amount: Money
    description: str


class PaymentGateway(ABC):
    """Provider-specific half of the payment contract.

    Implementations sign and send requests, verify inbound notifications and
    map provider response codes onto ``PaymentOutcome``. They never mutate
    Payment or Booking records.
    """

    provider: str

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    def configuration_report(self) -> ProviderConfigReport:
        pass

    @abstractmethod
    async def create_order(self, order: OrderRequest) -> CreateOrderResult:
        """
        Opens an order with the provider. Never raises; failures come back
        with ``success=False``.
        """
        pass

    @abstractmethod
    def verify_notification(
        self,
        payload: dict[str, Any],
        signature: str | None = None,
    ) -> GatewayNotification:
        """
        Verifies an inbound payload and returns its typed notification.

        Raises:
            SignatureInvalidError: signature missing, malformed or wrong.
            InvalidPayloadError: verified payload is unusable.
        """
        pass

    @abstractmethod
    async def query_status(self, order_id: str) -> StatusQueryResult:
        pass

    @abstractmethod
    async def refund(self, payment: Payment, amount: Money, reason: str) -> RefundResult:
        pass

    def manual_decision(
        self,
        order_id: str,
        action: str,
        notes: str | None = None,
        received_amount: Money | None = None,
    ) -> GatewayNotification:
        """Notification for an administrator's confirm/reject decision."""
        raise UnsupportedOperationError(self.provider, "manual confirmation")

    async def query_refund_status(self, refund_id: str) -> RefundResult:
        return RefundResult.failure(
            self.provider,
            refund_id,
            UnsupportedOperationError(self.provider, "refund status queries"),
        )
