from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from paygate.application.dtos.notifications import VNPayNotification
from paygate.application.dtos.payment_results import (
    CreateOrderResult,
    RefundResult,
    StatusQueryResult,
)
from paygate.application.interfaces.payment_gateway import OrderRequest
from paygate.domain.constants import PROVIDER_VNPAY
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

VERSION = "2.1.0"
DATE_FORMAT = "%Y%m%d%H%M%S"
ORDER_TTL = timedelta(minutes=15)
SERVER_IP = "127.0.0.1"

SUCCESS_CODE = "00"
REFUND_FULL = "02"
REFUND_PARTIAL = "03"

RESPONSE_MESSAGES = {
    "00": "Transaction successful",
    "07": "Amount debited; transaction flagged as suspicious (possible fraud or unusual activity)",
    "09": "Card or account is not registered for internet banking",
    "10": "Card or account details failed verification more than 3 times",
    "11": "Payment window expired; please retry the transaction",
    "12": "Card or account is locked",
    "13": "Wrong one-time password (OTP)",
    "24": "Customer cancelled the transaction",
    "51": "Insufficient account balance",
    "65": "Account exceeded its daily transaction limit",
    "75": "Paying bank is under maintenance",
    "79": "Wrong payment password entered too many times",
    "99": "Other error",
}

# vnp_TransactionStatus values returned by querydr
_QUERY_STATUS_OUTCOMES = {
    "00": PaymentOutcome.COMPLETED,
    "01": PaymentOutcome.PENDING,
}


def response_message(code: str | None) -> str:
    return RESPONSE_MESSAGES.get(code or "", "Unknown error")


class VNPayGateway(HttpPaymentGateway):
    """
    Redirect gateway signed with sorted-parameter HMAC-SHA512.

    Amounts travel as ``amount × 100``. Outbound URLs are signed over
    percent-encoded values; inbound IPN/return parameters are verified over
    raw values.
    """

    provider = PROVIDER_VNPAY
    required_settings = ("tmn_code", "hash_secret")
    endpoint_settings = ("payment_url", "api_url")

    async def create_order(self, order: OrderRequest) -> CreateOrderResult:
        now = self._clock.now()
        order_id = f"VNPAY_{order.booking.booking_number}_{self._clock.timestamp_ms()}"
        expires_at = now + ORDER_TTL
        params = {
            "vnp_Version": VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self._config["tmn_code"],
            "vnp_Amount": str(order.amount.to_minor_units()),
            "vnp_CurrCode": "VND",
            "vnp_TxnRef": order_id,
            "vnp_OrderInfo": order.description,
            "vnp_OrderType": "other",
            "vnp_Locale": "vn",
            "vnp_ReturnUrl": self._config.get("return_url", ""),
            "vnp_IpAddr": SERVER_IP,
            "vnp_CreateDate": self._format_date(now),
            "vnp_ExpireDate": self._format_date(expires_at),
        }
        secure_hash = signing.sign_sorted(params, self._config["hash_secret"], encode=True)
        query = signing.sorted_sign_data(params, encode=True)
        payment_url = f"{self._config['payment_url']}?{query}&vnp_SecureHash={secure_hash}"

        self._logger.info(
            "VNPay payment URL created",
            extra={"order_id": order_id, "amount": str(order.amount.amount)},
        )
        return CreateOrderResult(
            success=True,
            provider=self.provider,
            order_id=order_id,
            amount=order.amount.amount,
            redirect_url=payment_url,
            expires_at=expires_at,
            raw={"params": params},
        )

    def verify_notification(
        self,
        payload: dict[str, Any],
        signature: str | None = None,
    ) -> VNPayNotification:
        params = {key: value for key, value in payload.items() if key.startswith("vnp_")}
        if signature and not params.get("vnp_SecureHash"):
            params["vnp_SecureHash"] = signature
        if not params.get("vnp_SecureHash"):
            raise SignatureInvalidError(self.provider, "Missing vnp_SecureHash")
        if not signing.verify_sorted(params, self._config["hash_secret"]):
            raise SignatureInvalidError(self.provider)

        order_id = params.get("vnp_TxnRef")
        if not order_id:
            raise InvalidPayloadError(self.provider, "Missing vnp_TxnRef")
        try:
            amount = Money.from_minor_units(params.get("vnp_Amount", ""))
        except (ArithmeticError, ValueError) as exc:
            raise InvalidPayloadError(self.provider, "Invalid vnp_Amount") from exc

        response_code = params.get("vnp_ResponseCode")
        transaction_status = params.get("vnp_TransactionStatus")
        success = response_code == SUCCESS_CODE and transaction_status in (None, SUCCESS_CODE)
        transaction_no = params.get("vnp_TransactionNo")
        return VNPayNotification(
            order_id=order_id,
            outcome=PaymentOutcome.COMPLETED if success else PaymentOutcome.FAILED,
            amount=amount,
            # Failed payments report vnp_TransactionNo "0"
            transaction_id=transaction_no if transaction_no not in (None, "", "0") else None,
            response_code=response_code,
            message=response_message(response_code),
            transaction_status=transaction_status,
            bank_code=params.get("vnp_BankCode"),
            card_type=params.get("vnp_CardType"),
            pay_date=params.get("vnp_PayDate"),
            raw={k: v for k, v in params.items() if k not in signing.VNPAY_HASH_FIELDS},
        )

    async def query_status(self, order_id: str) -> StatusQueryResult:
        now = self._clock.now()
        params = {
            "vnp_RequestId": str(self._clock.timestamp_ms()),
            "vnp_Version": VERSION,
            "vnp_Command": "querydr",
            "vnp_TmnCode": self._config["tmn_code"],
            "vnp_TxnRef": order_id,
            "vnp_OrderInfo": f"Query payment {order_id}",
            "vnp_TransactionDate": self._transaction_date(order_id, fallback=now),
            "vnp_CreateDate": self._format_date(now),
            "vnp_IpAddr": SERVER_IP,
        }
        try:
            body = await self._post_api(params)
        except DomainError as exc:
            return StatusQueryResult.failure(self.provider, order_id, exc)

        response_code = str(body.get("vnp_ResponseCode", ""))
        if response_code != SUCCESS_CODE:
            # e.g. 91: transaction not found at VNPay
            return StatusQueryResult(
                success=False,
                provider=self.provider,
                order_id=order_id,
                response_code=response_code,
                message=body.get("vnp_Message") or response_message(response_code),
                raw=body,
                error_code=ProviderRejectedError.code,
            )

        transaction_status = str(body.get("vnp_TransactionStatus", ""))
        outcome = _QUERY_STATUS_OUTCOMES.get(transaction_status, PaymentOutcome.FAILED)
        try:
            amount = self._response_amount(body.get("vnp_Amount"), minor_units=True)
        except DomainError as exc:
            return StatusQueryResult.failure(self.provider, order_id, exc)
        transaction_no = body.get("vnp_TransactionNo")
        return StatusQueryResult(
            success=True,
            provider=self.provider,
            order_id=order_id,
            outcome=outcome,
            transaction_id=str(transaction_no) if transaction_no not in (None, "", "0", 0) else None,
            amount=amount,
            response_code=transaction_status,
            message=body.get("vnp_Message") or response_message(transaction_status),
            raw=body,
        )

    async def refund(self, payment: Payment, amount: Money, reason: str) -> RefundResult:
        now = self._clock.now()
        full = amount.amount == Decimal(payment.amount)
        params = {
            "vnp_RequestId": str(self._clock.timestamp_ms()),
            "vnp_Version": VERSION,
            "vnp_Command": "refund",
            "vnp_TmnCode": self._config["tmn_code"],
            "vnp_TransactionType": REFUND_FULL if full else REFUND_PARTIAL,
            "vnp_TxnRef": payment.gateway_order_id,
            "vnp_Amount": str(amount.to_minor_units()),
            "vnp_OrderInfo": reason,
            "vnp_TransactionNo": payment.gateway_transaction_id or "",
            "vnp_TransactionDate": self._transaction_date(
                payment.gateway_order_id, fallback=payment.created_at or now
            ),
            "vnp_CreateDate": self._format_date(now),
            "vnp_CreateBy": "System",
            "vnp_IpAddr": SERVER_IP,
        }
        try:
            body = await self._post_api(params)
        except DomainError as exc:
            return RefundResult.failure(self.provider, payment.gateway_order_id, exc)

        response_code = str(body.get("vnp_ResponseCode", ""))
        if response_code != SUCCESS_CODE:
            return RefundResult(
                success=False,
                provider=self.provider,
                order_id=payment.gateway_order_id,
                message=body.get("vnp_Message") or response_message(response_code),
                raw=body,
                error_code=ProviderRejectedError.code,
            )
        self._logger.info(
            "VNPay refund accepted",
            extra={
                "order_id": payment.gateway_order_id,
                "transaction_type": params["vnp_TransactionType"],
            },
        )
        return RefundResult(
            success=True,
            provider=self.provider,
            order_id=payment.gateway_order_id,
            amount=amount.amount,
            refund_id=str(body.get("vnp_TransactionNo") or params["vnp_RequestId"]),
            message=body.get("vnp_Message"),
            raw=body,
        )

    async def _post_api(self, params: dict[str, str]) -> dict[str, Any]:
        secure_hash = signing.sign_sorted(params, self._config["hash_secret"], encode=False)
        return await self._post_json(
            self._config["api_url"], {**params, "vnp_SecureHash": secure_hash}
        )

    def _transaction_date(self, order_id: str, fallback: datetime) -> str:
        """The order's create date, recovered from the millisecond suffix of its id."""
        suffix = order_id.rsplit("_", 1)[-1]
        if suffix.isdigit():
            try:
                created = datetime.fromtimestamp(int(suffix) / 1000, tz=timezone.utc)
                return self._format_date(created)
            except (OverflowError, OSError, ValueError):
                # Suffix is not a timestamp this platform can represent
                pass
        return self._format_date(fallback)

    @staticmethod
    def _format_date(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(VN_TZ).strftime(DATE_FORMAT)
