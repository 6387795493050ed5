from typing import Any

from paygate.application.dtos.notifications import MoMoNotification
from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    RefundResult,
    StatusQueryResult,
)
from paygate.application.interfaces.payment_gateway import OrderRequest
from paygate.domain.constants import PROVIDER_MOMO
from paygate.domain.entities.payment import Payment, PaymentOutcome
from paygate.domain.errors import (
    DomainError,
    InvalidPayloadError,
    ProviderRejectedError,
    SignatureInvalidError,
)
from paygate.domain.value_objects.money import Money
from paygate.infrastructure import signing
from paygate.infrastructure.gateways.base import HttpPaymentGateway

REQUEST_TYPE = "payWithATM"
LANG = "vi"
SUCCESS_CODE = 0
# Order exists but the payer has not finished (or capture is outstanding)
PENDING_CODES = frozenset({1000, 7000, 7002, 9000})
MAX_FUTURE_SKEW_MS = 60_000


class MoMoGateway(HttpPaymentGateway):
    """
    Webhook-push gateway signed with fixed-field-order HMAC-SHA256.

    Create, IPN, query and refund each sign a different documented field
    list; see ``paygate.infrastructure.signing``.
    """

    provider = PROVIDER_MOMO
    required_settings = ("partner_code", "access_key", "secret_key")
    endpoint_settings = ("endpoint",)

    async def create_order(self, order: OrderRequest) -> CreateOrderResult:
        stamp = self._clock.timestamp_ms()
        order_id = f"MOMO_{order.booking.booking_number}_{stamp}"
        request_id = f"REQ_{stamp}"
        params = {
            "accessKey": self._config["access_key"],
            "amount": order.amount.to_gateway_amount(),
            "extraData": "",
            "ipnUrl": self._config.get("ipn_url", ""),
            "orderId": order_id,
            "orderInfo": order.description,
            "partnerCode": self._config["partner_code"],
            "redirectUrl": self._config.get("redirect_url", ""),
            "requestId": request_id,
            "requestType": REQUEST_TYPE,
        }
        body = {
            "partnerCode": params["partnerCode"],
            "requestId": request_id,
            "amount": params["amount"],
            "orderId": order_id,
            "orderInfo": params["orderInfo"],
            "redirectUrl": params["redirectUrl"],
            "ipnUrl": params["ipnUrl"],
            "lang": LANG,
            "extraData": params["extraData"],
            "requestType": REQUEST_TYPE,
            "autoCapture": True,
            "signature": signing.sign_ordered(
                params, signing.MOMO_CREATE_FIELDS, self._config["secret_key"]
            ),
        }
        self._logger.debug("MoMo create request", extra={"order_id": order_id})
        try:
            response = await self._post_json(self._url("create"), body)
            self._raise_for_result(response)
        except DomainError as exc:
            return CreateOrderResult.failure(self.provider, exc)

        return CreateOrderResult(
            success=True,
            provider=self.provider,
            order_id=order_id,
            amount=order.amount.amount,
            redirect_url=response.get("payUrl"),
            qr_code=response.get("qrCodeUrl"),
            deeplink=response.get("deeplink"),
            raw=response,
        )

    def verify_notification(
        self,
        payload: dict[str, Any],
        signature: str | None = None,
    ) -> MoMoNotification:
        received = payload.get("signature") or signature
        if not received:
            raise SignatureInvalidError(self.provider, "Missing signature")
        params = {**payload, "accessKey": self._config["access_key"]}
        if not signing.verify_ordered(
            params, signing.MOMO_IPN_FIELDS, self._config["secret_key"], received
        ):
            raise SignatureInvalidError(self.provider)

        if str(payload.get("partnerCode")) != self._config["partner_code"]:
            raise InvalidPayloadError(self.provider, "Unexpected partnerCode")
        order_id = payload.get("orderId")
        if not order_id:
            raise InvalidPayloadError(self.provider, "Missing orderId")
        try:
            result_code = int(payload.get("resultCode"))
            amount = Money(payload.get("amount"))
            response_time = int(payload.get("responseTime"))
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise InvalidPayloadError(self.provider, "Malformed notification fields") from exc
        self._check_freshness(response_time)

        trans_id = payload.get("transId")
        success = result_code == SUCCESS_CODE
        return MoMoNotification(
            order_id=str(order_id),
            outcome=PaymentOutcome.COMPLETED if success else PaymentOutcome.FAILED,
            amount=amount,
            transaction_id=str(trans_id) if trans_id not in (None, "", 0, "0") else None,
            response_code=str(result_code),
            message=payload.get("message"),
            request_id=payload.get("requestId"),
            pay_type=payload.get("payType"),
            response_time=response_time,
            extra_data=payload.get("extraData"),
            raw={key: value for key, value in payload.items() if key != "signature"},
        )

    async def query_status(self, order_id: str) -> StatusQueryResult:
        request_id = f"QUERY_{self._clock.timestamp_ms()}"
        params = {
            "accessKey": self._config["access_key"],
            "orderId": order_id,
            "partnerCode": self._config["partner_code"],
            "requestId": request_id,
        }
        body = {
            "partnerCode": params["partnerCode"],
            "requestId": request_id,
            "orderId": order_id,
            "lang": LANG,
            "signature": signing.sign_ordered(
                params, signing.MOMO_QUERY_FIELDS, self._config["secret_key"]
            ),
        }
        try:
            response = await self._post_json(self._url("query"), body)
        except DomainError as exc:
            return StatusQueryResult.failure(self.provider, order_id, exc)

        result_code = _int_or_none(response.get("resultCode"))
        outcome = self._query_outcome(result_code)
        if outcome is None:
            # Request-level errors, e.g. 42: order does not exist at MoMo
            return StatusQueryResult(
                success=False,
                provider=self.provider,
                order_id=order_id,
                response_code=str(result_code),
                message=response.get("message"),
                raw=response,
                error_code=ProviderRejectedError.code,
            )
        trans_id = response.get("transId")
        try:
            amount = self._response_amount(response.get("amount"))
        except DomainError as exc:
            return StatusQueryResult.failure(self.provider, order_id, exc)
        return StatusQueryResult(
            success=True,
            provider=self.provider,
            order_id=order_id,
            outcome=outcome,
            transaction_id=str(trans_id) if trans_id not in (None, "", 0, "0") else None,
            amount=amount,
            response_code=str(result_code),
            message=response.get("message"),
            raw=response,
        )

    async def refund(self, payment: Payment, amount: Money, reason: str) -> RefundResult:
        request_id = f"REFUND_{self._clock.timestamp_ms()}"
        params = {
            "accessKey": self._config["access_key"],
            "amount": amount.to_gateway_amount(),
            "description": reason,
            "orderId": payment.gateway_order_id,
            "partnerCode": self._config["partner_code"],
            "requestId": request_id,
            "transId": payment.gateway_transaction_id or "",
        }
        body = {
            "partnerCode": params["partnerCode"],
            "requestId": request_id,
            "orderId": params["orderId"],
            "amount": params["amount"],
            "transId": _int_or_none(params["transId"]),
            "description": reason,
            "lang": LANG,
            "signature": signing.sign_ordered(
                params, signing.MOMO_REFUND_FIELDS, self._config["secret_key"]
            ),
        }
        try:
            response = await self._post_json(self._url("refund"), body)
            self._raise_for_result(response)
        except DomainError as exc:
            return RefundResult.failure(self.provider, payment.gateway_order_id, exc)

        return RefundResult(
            success=True,
            provider=self.provider,
            order_id=payment.gateway_order_id,
            amount=amount.amount,
            refund_id=str(response.get("transId") or request_id),
            message=response.get("message"),
            raw=response,
        )

    def _check_freshness(self, response_time_ms: int) -> None:
        max_age_ms = int(self._config.get("max_age_seconds") or 300) * 1000
        age_ms = self._clock.timestamp_ms() - response_time_ms
        if age_ms > max_age_ms:
            raise InvalidPayloadError(self.provider, "Notification is too old")
        if age_ms < -MAX_FUTURE_SKEW_MS:
            raise InvalidPayloadError(self.provider, "Notification timestamp is in the future")

    def _raise_for_result(self, response: dict[str, Any]) -> None:
        result_code = _int_or_none(response.get("resultCode"))
        if result_code != SUCCESS_CODE:
            raise ProviderRejectedError(
                self.provider,
                response.get("message") or "MoMo rejected the request",
                provider_code=str(result_code),
            )

    @staticmethod
    def _query_outcome(result_code: int | None) -> PaymentOutcome | None:
        if result_code is None:
            return None
        if result_code == SUCCESS_CODE:
            return PaymentOutcome.COMPLETED
        if result_code in PENDING_CODES:
            return PaymentOutcome.PENDING
        if result_code < 1000:
            return None
        return PaymentOutcome.FAILED

    def _url(self, action: str) -> str:
        return f"{self._config['endpoint'].rstrip('/')}/{action}"


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
