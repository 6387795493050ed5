"""Builders shared by the unit and integration tests."""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

import httpx

from paygate.api.dependencies import build_payment_facade
from paygate.application.interfaces.clock import FakeClock
from paygate.domain.entities.booking import Booking
from paygate.domain.entities.payment import Payment, PaymentStatus
from paygate.infrastructure import signing
from paygate.infrastructure.gateways.factory import PaymentGatewayFactory
from paygate.infrastructure.in_memory import (
    InMemoryBookingRepo,
    InMemoryPaymentRepo,
    InMemoryWebhookEventRepo,
    LockingTransactionManager,
    RecordingDispatcher,
)

# 2024-05-01 10:00:00 in Vietnam
FIXED_NOW = datetime(2024, 5, 1, 3, 0, 0, tzinfo=timezone.utc)

VNPAY_CONFIG = {
    "tmn_code": "TESTTMN1",
    "hash_secret": "VNPAYSECRETKEY0123456789ABCDEF",
    "payment_url": "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html",
    "api_url": "https://sandbox.vnpayment.vn/merchant_webapi/api/transaction",
    "return_url": "http://localhost:3000/payment/vnpay/return",
    "ipn_url": "http://localhost:3000/api/v1/webhooks/vnpay",
}

MOMO_CONFIG = {
    "partner_code": "MOMOTEST0001",
    "access_key": "momo-access-key",
    "secret_key": "momo-secret-key",
    "endpoint": "https://test-payment.momo.vn/v2/gateway/api",
    "redirect_url": "http://localhost:3000/payment/success",
    "ipn_url": "http://localhost:3000/api/v1/webhooks/momo",
    "max_age_seconds": 300,
}

ZALOPAY_CONFIG = {
    "app_id": "2553",
    "key1": "zalopay-key1",
    "key2": "zalopay-key2",
    "endpoint": "https://sb-openapi.zalopay.vn/v2",
    "redirect_url": "http://localhost:3000/payment/success",
    "callback_url": "http://localhost:3000/api/v1/webhooks/zalopay",
}

BANK_CONFIG = {
    "accounts": [
        {
            "bank_name": "Vietcombank",
            "account_number": "0123456789",
            "account_name": "CONG TY DICH VU",
            "branch": "Ho Chi Minh",
        }
    ],
    "transfer_prefix": "PAY",
    "expire_hours": 24,
}

GATEWAY_CONFIG = {
    "vnpay": VNPAY_CONFIG,
    "momo": MOMO_CONFIG,
    "zalopay": ZALOPAY_CONFIG,
    "banking": BANK_CONFIG,
}


def make_booking(
    booking_id: str = "bk-001",
    booking_number: str = "BK001",
    total: str = "500000",
) -> Booking:
    return Booking(
        id=booking_id,
        booking_number=booking_number,
        total_amount=Decimal(total),
        customer_name="Nguyen Van A",
        customer_email="a@example.com",
        service_name="Airport transfer",
    )


def make_payment(
    order_id: str,
    provider: str,
    amount: str = "500000",
    status: PaymentStatus = PaymentStatus.PENDING,
    booking_id: str = "bk-001",
    transaction_id: str | None = None,
) -> Payment:
    return Payment(
        booking_id=booking_id,
        amount=Decimal(amount),
        payment_method=provider,
        gateway_order_id=order_id,
        status=status,
        gateway_transaction_id=transaction_id,
        created_at=FIXED_NOW,
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_responder(body: dict[str, Any], status_code: int = 200, calls: list | None = None):
    """MockTransport handler answering every request with ``body``; records requests in ``calls``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=body)

    return handler


def signed_vnpay_params(secret: str = VNPAY_CONFIG["hash_secret"], **overrides: str) -> dict:
    params = {
        "vnp_Amount": "50000000",
        "vnp_BankCode": "NCB",
        "vnp_CardType": "ATM",
        "vnp_OrderInfo": "Payment for booking BK001",
        "vnp_PayDate": "20240501100500",
        "vnp_ResponseCode": "00",
        "vnp_TmnCode": VNPAY_CONFIG["tmn_code"],
        "vnp_TransactionNo": "14123456",
        "vnp_TransactionStatus": "00",
        "vnp_TxnRef": "VNPAY_BK001_1714532400000",
    }
    params.update(overrides)
    params["vnp_SecureHashType"] = "HmacSHA512"
    params["vnp_SecureHash"] = signing.sign_sorted(params, secret, encode=False)
    return params


def signed_momo_ipn(config: dict = MOMO_CONFIG, **overrides: Any) -> dict:
    payload = {
        "partnerCode": config["partner_code"],
        "orderId": "MOMO_BK001_1714532400000",
        "requestId": "REQ_1714532400000",
        "amount": 500000,
        "orderInfo": "Payment for booking BK001",
        "orderType": "momo_wallet",
        "transId": 4088878653,
        "resultCode": 0,
        "message": "Successful.",
        "payType": "qr",
        "responseTime": int(FIXED_NOW.timestamp() * 1000),
        "extraData": "",
    }
    payload.update(overrides)
    params = {**payload, "accessKey": config["access_key"]}
    payload["signature"] = signing.sign_ordered(
        params, signing.MOMO_IPN_FIELDS, config["secret_key"]
    )
    return payload


def signed_zalopay_callback(key2: str = ZALOPAY_CONFIG["key2"], **overrides: Any) -> dict:
    data = {
        "app_id": int(ZALOPAY_CONFIG["app_id"]),
        "app_trans_id": "240501_BK001_1714532400000",
        "app_time": 1714532400000,
        "app_user": "a@example.com",
        "amount": 500000,
        "embed_data": json.dumps({"booking_id": "bk-001", "redirecturl": ""}),
        "item": "[]",
        "zp_trans_id": 240501000000123,
        "server_time": 1714532460000,
        "channel": 38,
        "merchant_user_id": "merchant",
        "user_fee_amount": 0,
        "discount_amount": 0,
    }
    data.update(overrides)
    raw = json.dumps(data, separators=(",", ":"))
    return {"data": raw, "mac": signing.hmac_hex(key2, raw), "type": 1}


class InMemoryHarness:
    """Facade wired to in-memory repositories, a fixed clock and a mock HTTP transport."""

    def __init__(
        self,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
        config: dict | None = None,
        now: datetime = FIXED_NOW,
    ) -> None:
        self.clock = FakeClock(now)
        self.bookings = InMemoryBookingRepo()
        self.payments = InMemoryPaymentRepo()
        self.events = InMemoryWebhookEventRepo()
        self.dispatcher = RecordingDispatcher()
        self.tx = LockingTransactionManager()
        self.http_client = mock_client(handler or json_responder({}))
        self.factory = PaymentGatewayFactory(
            config=config or GATEWAY_CONFIG,
            clock=self.clock,
            payment_repo=self.payments,
            http_client=self.http_client,
        )
        self.facade = build_payment_facade(
            gateways=self.factory.all_gateways(),
            booking_repo=self.bookings,
            payment_repo=self.payments,
            webhook_event_repo=self.events,
            tx=self.tx,
            dispatcher=self.dispatcher,
            clock=self.clock,
        )

    async def seed(self, booking: Booking | None = None, payment: Payment | None = None):
        booking = booking or make_booking()
        self.bookings.add(booking)
        if payment is not None:
            await self.payments.create_pending(payment)
            if payment.status != PaymentStatus.PENDING:
                await self.payments.save(payment)
        return booking

    async def payment(self, order_id: str) -> Payment | None:
        return await self.payments.get_by_gateway_order_id(order_id)

    async def booking(self, booking_id: str = "bk-001") -> Booking | None:
        return await self.bookings.get_by_id(booking_id)
