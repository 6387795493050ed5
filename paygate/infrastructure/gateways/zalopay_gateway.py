import json
import secrets
from typing import Any

from paygate.application.dtos.notifications import ZaloPayNotification
from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    RefundResult,
    StatusQueryResult,
)
from paygate.application.interfaces.payment_gateway import OrderRequest
from paygate.domain.constants import PROVIDER_ZALOPAY
from paygate.domain.entities.payment import Payment, PaymentOutcome
from paygate.domain.errors import (
    DomainError,
    InvalidPayloadError,
    ProviderRejectedError,
    SignatureInvalidError,
)
from paygate.domain.value_objects.money import Money
from paygate.infrastructure import signing
from paygate.infrastructure.gateways.base import VN_TZ, HttpPaymentGateway

RETURN_SUCCESS = 1
RETURN_FAILED = 2
RETURN_PROCESSING = 3


class ZaloPayGateway(HttpPaymentGateway):
    """
    Gateway with pipe-joined MACs under key1 for outbound requests and a MAC
    over the raw callback ``data`` string under key2.

    ZaloPay only calls back for successful payments; failures are learned
    through ``query_status``.
    """

    provider = PROVIDER_ZALOPAY
    required_settings = ("app_id", "key1", "key2")
    endpoint_settings = ("endpoint",)

    async def create_order(self, order: OrderRequest) -> CreateOrderResult:
        booking = order.booking
        stamp = self._clock.timestamp_ms()
        app_trans_id = f"{self._vn_date()}_{booking.booking_number}_{stamp}"
        embed_data = json.dumps(
            {"booking_id": booking.id, "redirecturl": self._config.get("redirect_url", "")},
            separators=(",", ":"),
        )
        item = json.dumps(
            [
                {
                    "itemid": booking.id,
                    "itemname": booking.service_name or booking.booking_number,
                    "itemprice": order.amount.to_gateway_amount(),
                    "itemquantity": 1,
                }
            ],
            separators=(",", ":"),
        )
        data = {
            "app_id": self._config["app_id"],
            "app_user": booking.customer_email or booking.id,
            "app_time": stamp,
            "amount": order.amount.to_gateway_amount(),
            "app_trans_id": app_trans_id,
            "embed_data": embed_data,
            "item": item,
            "description": order.description,
            "bank_code": "",
            "callback_url": self._config.get("callback_url", ""),
        }
        data["mac"] = signing.sign_piped(data, signing.ZALOPAY_CREATE_FIELDS, self._config["key1"])
        try:
            response = await self._post_form(self._url("create"), data)
            self._raise_for_return_code(response)
        except DomainError as exc:
            return CreateOrderResult.failure(self.provider, exc)

        return CreateOrderResult(
            success=True,
            provider=self.provider,
            order_id=app_trans_id,
            amount=order.amount.amount,
            redirect_url=response.get("order_url"),
            qr_code=response.get("qr_code"),
            raw=response,
        )

    def verify_notification(
        self,
        payload: dict[str, Any],
        signature: str | None = None,
    ) -> ZaloPayNotification:
        raw_data = payload.get("data")
        mac = payload.get("mac") or signature
        if not mac:
            raise SignatureInvalidError(self.provider, "Missing mac")
        if not signing.verify_opaque(raw_data, self._config["key2"], mac):
            raise SignatureInvalidError(self.provider, "Invalid mac")

        # Only trusted after the MAC check above
        try:
            data = json.loads(raw_data)
            embed_data = json.loads(data.get("embed_data") or "{}")
            amount = Money(data["amount"])
        except (ValueError, TypeError, KeyError, AttributeError, ArithmeticError) as exc:
            raise InvalidPayloadError(self.provider, "Malformed callback data") from exc
        if not data.get("app_trans_id"):
            raise InvalidPayloadError(self.provider, "Missing app_trans_id")

        zp_trans_id = data.get("zp_trans_id")
        return ZaloPayNotification(
            order_id=str(data["app_trans_id"]),
            outcome=PaymentOutcome.COMPLETED,
            amount=amount,
            transaction_id=str(zp_trans_id) if zp_trans_id else None,
            response_code=str(RETURN_SUCCESS),
            app_user=data.get("app_user"),
            server_time=data.get("server_time"),
            channel=data.get("channel"),
            embed_data=embed_data if isinstance(embed_data, dict) else {},
            raw=data,
        )

    async def query_status(self, order_id: str) -> StatusQueryResult:
        params = {
            "app_id": self._config["app_id"],
            "app_trans_id": order_id,
            "key1": self._config["key1"],
        }
        body = {
            "app_id": params["app_id"],
            "app_trans_id": order_id,
            "mac": signing.sign_piped(params, signing.ZALOPAY_QUERY_FIELDS, self._config["key1"]),
        }
        try:
            response = await self._post_form(self._url("query"), body)
        except DomainError as exc:
            return StatusQueryResult.failure(self.provider, order_id, exc)

        return_code = response.get("return_code")
        zp_trans_id = response.get("zp_trans_id")
        if return_code == RETURN_SUCCESS:
            outcome = PaymentOutcome.COMPLETED
        elif return_code == RETURN_PROCESSING:
            outcome = PaymentOutcome.PENDING
        elif return_code == RETURN_FAILED and zp_trans_id:
            outcome = PaymentOutcome.FAILED
        else:
            # No transaction at ZaloPay for this app_trans_id
            return StatusQueryResult(
                success=False,
                provider=self.provider,
                order_id=order_id,
                response_code=str(return_code),
                message=response.get("return_message") or response.get("sub_return_message"),
                raw=response,
                error_code=ProviderRejectedError.code,
            )

        try:
            amount = self._response_amount(response.get("amount"))
        except DomainError as exc:
            return StatusQueryResult.failure(self.provider, order_id, exc)
        return StatusQueryResult(
            success=True,
            provider=self.provider,
            order_id=order_id,
            outcome=outcome,
            transaction_id=str(zp_trans_id) if zp_trans_id else None,
            amount=amount,
            response_code=str(return_code),
            message=response.get("return_message"),
            raw=response,
        )

    async def refund(self, payment: Payment, amount: Money, reason: str) -> RefundResult:
        stamp = self._clock.timestamp_ms()
        uid = f"{stamp}{secrets.randbelow(889) + 111}"
        params = {
            "app_id": self._config["app_id"],
            "m_refund_id": f"{self._vn_date()}_{self._config['app_id']}_{uid}",
            "zp_trans_id": payment.gateway_transaction_id or "",
            "amount": amount.to_gateway_amount(),
            "description": reason,
            "timestamp": stamp,
        }
        params["mac"] = signing.sign_piped(
            params, signing.ZALOPAY_REFUND_FIELDS, self._config["key1"]
        )
        try:
            response = await self._post_form(self._url("refund"), params)
            self._raise_for_return_code(response, accepted=(RETURN_SUCCESS, RETURN_PROCESSING))
        except DomainError as exc:
            return RefundResult.failure(self.provider, payment.gateway_order_id, exc)

        return RefundResult(
            success=True,
            provider=self.provider,
            order_id=payment.gateway_order_id,
            amount=amount.amount,
            refund_id=params["m_refund_id"],
            status="processing" if response.get("return_code") == RETURN_PROCESSING else "done",
            message=response.get("return_message"),
            raw=response,
        )

    async def query_refund_status(self, refund_id: str) -> RefundResult:
        params = {
            "app_id": self._config["app_id"],
            "m_refund_id": refund_id,
            "timestamp": self._clock.timestamp_ms(),
        }
        params["mac"] = signing.sign_piped(
            params, signing.ZALOPAY_REFUND_QUERY_FIELDS, self._config["key1"]
        )
        try:
            response = await self._post_form(self._url("query_refund"), params)
            self._raise_for_return_code(response, accepted=(RETURN_SUCCESS, RETURN_PROCESSING))
        except DomainError as exc:
            return RefundResult.failure(self.provider, refund_id, exc)

        return RefundResult(
            success=True,
            provider=self.provider,
            order_id=refund_id,
            refund_id=refund_id,
            status="processing" if response.get("return_code") == RETURN_PROCESSING else "done",
            message=response.get("return_message"),
            raw=response,
        )

    def _raise_for_return_code(
        self, response: dict[str, Any], accepted: tuple[int, ...] = (RETURN_SUCCESS,)
    ) -> None:
        if response.get("return_code") not in accepted:
            raise ProviderRejectedError(
                self.provider,
                response.get("sub_return_message")
                or response.get("return_message")
                or "ZaloPay rejected the request",
                provider_code=str(response.get("return_code")),
            )

    def _vn_date(self) -> str:
        return self._clock.now().astimezone(VN_TZ).strftime("%y%m%d")

    def _url(self, action: str) -> str:
        return f"{self._config['endpoint'].rstrip('/')}/{action}"
