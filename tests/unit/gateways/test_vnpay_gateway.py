import json
import unittest
from decimal import Decimal
from urllib.parse import parse_qsl, urlsplit

from paygate.application.interfaces.clock import FakeClock
from paygate.application.interfaces.payment_gateway import OrderRequest
from paygate.domain.entities.payment import PaymentOutcome, PaymentStatus
from paygate.domain.errors import SignatureInvalidError
from paygate.domain.value_objects.money import Money
from paygate.infrastructure import signing
from paygate.infrastructure.gateways.vnpay_gateway import VNPayGateway
from tests.support import (
    FIXED_NOW,
    VNPAY_CONFIG,
    json_responder,
    make_booking,
    make_payment,
    mock_client,
    signed_vnpay_params,
)

ORDER_ID = "VNPAY_BK001_1714532400000"


class TestVNPayGateway(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.calls = []
        self.clock = FakeClock(FIXED_NOW)

    def _gateway(self, body=None, status_code=200) -> VNPayGateway:
        return VNPayGateway(
            config=VNPAY_CONFIG,
            clock=self.clock,
            http_client=mock_client(json_responder(body or {}, status_code, self.calls)),
        )

    async def test_create_order_builds_signed_redirect(self):
        gateway = self._gateway()
        order = OrderRequest(
            booking=make_booking(), amount=Money("500000"), description="Thanh toan BK001"
        )

        result = await gateway.create_order(order)

        self.assertTrue(result.success)
        self.assertEqual(result.order_id, ORDER_ID)
        self.assertTrue(result.redirect_url.startswith(VNPAY_CONFIG["payment_url"] + "?"))
        params = dict(parse_qsl(urlsplit(result.redirect_url).query))
        self.assertEqual(params["vnp_Amount"], "50000000")
        self.assertEqual(params["vnp_TxnRef"], ORDER_ID)
        # Vietnam local time, 15 minute window
        self.assertEqual(params["vnp_CreateDate"], "20240501100000")
        self.assertEqual(params["vnp_ExpireDate"], "20240501101500")
        received = params.pop("vnp_SecureHash")
        self.assertEqual(
            received, signing.sign_sorted(params, VNPAY_CONFIG["hash_secret"], encode=True)
        )
        # No network call for redirect gateways
        self.assertEqual(self.calls, [])

    def test_verify_success_notification(self):
        notification = self._gateway().verify_notification(signed_vnpay_params())

        self.assertEqual(notification.order_id, ORDER_ID)
        self.assertEqual(notification.outcome, PaymentOutcome.COMPLETED)
        self.assertEqual(notification.amount.amount, Decimal("500000"))
        self.assertEqual(notification.transaction_id, "14123456")
        self.assertEqual(notification.bank_code, "NCB")
        self.assertNotIn("vnp_SecureHash", notification.raw)
        self.assertEqual(notification.identity.value, f"vnpay:{ORDER_ID}:14123456")

    def test_verify_failure_notification_maps_reason(self):
        params = signed_vnpay_params(
            vnp_ResponseCode="24", vnp_TransactionStatus="02", vnp_TransactionNo="0"
        )

        notification = self._gateway().verify_notification(params)

        self.assertEqual(notification.outcome, PaymentOutcome.FAILED)
        self.assertIsNone(notification.transaction_id)
        self.assertEqual(notification.failure_reason, "Customer cancelled the transaction")
        self.assertEqual(notification.identity.value, f"vnpay:{ORDER_ID}:code-24")

    def test_success_code_with_failed_transaction_status_is_failure(self):
        params = signed_vnpay_params(vnp_TransactionStatus="02")

        notification = self._gateway().verify_notification(params)

        self.assertEqual(notification.outcome, PaymentOutcome.FAILED)

    def test_tampered_amount_is_rejected(self):
        params = signed_vnpay_params()
        params["vnp_Amount"] = "100"

        with self.assertRaises(SignatureInvalidError):
            self._gateway().verify_notification(params)

    def test_missing_hash_is_rejected(self):
        params = signed_vnpay_params()
        del params["vnp_SecureHash"]

        with self.assertRaises(SignatureInvalidError):
            self._gateway().verify_notification(params)

    def test_wrong_secret_is_rejected(self):
        params = signed_vnpay_params(secret="another-secret")

        with self.assertRaises(SignatureInvalidError):
            self._gateway().verify_notification(params)

    async def test_query_unknown_order_returns_gateway_message(self):
        gateway = self._gateway({"vnp_ResponseCode": "91", "vnp_Message": "Transaction not found"})

        result = await gateway.query_status(ORDER_ID)

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Transaction not found")
        self.assertEqual(result.error_code, "PROVIDER_REJECTED")
        self.assertIsNone(result.outcome)

    async def test_query_request_is_signed_and_dated_from_order_id(self):
        gateway = self._gateway({"vnp_ResponseCode": "00", "vnp_TransactionStatus": "01"})

        result = await gateway.query_status(ORDER_ID)

        self.assertTrue(result.success)
        self.assertEqual(result.outcome, PaymentOutcome.PENDING)
        body = json.loads(self.calls[0].content)
        self.assertEqual(str(self.calls[0].url), VNPAY_CONFIG["api_url"])
        self.assertEqual(body["vnp_Command"], "querydr")
        self.assertEqual(body["vnp_TransactionDate"], "20240501100000")
        received = body.pop("vnp_SecureHash")
        self.assertEqual(
            received, signing.sign_sorted(body, VNPAY_CONFIG["hash_secret"], encode=False)
        )

    async def test_query_completed(self):
        gateway = self._gateway(
            {
                "vnp_ResponseCode": "00",
                "vnp_TransactionStatus": "00",
                "vnp_Amount": "50000000",
                "vnp_TransactionNo": "14123456",
            }
        )

        result = await gateway.query_status(ORDER_ID)

        self.assertEqual(result.outcome, PaymentOutcome.COMPLETED)
        self.assertEqual(result.amount, Decimal("500000"))
        self.assertEqual(result.transaction_id, "14123456")

    async def test_query_with_unreadable_amount_is_a_failed_result(self):
        for amount in ("abc", "-100", "NaN"):
            with self.subTest(amount=amount):
                gateway = self._gateway(
                    {
                        "vnp_ResponseCode": "00",
                        "vnp_TransactionStatus": "00",
                        "vnp_Amount": amount,
                    }
                )

                result = await gateway.query_status(ORDER_ID)

                self.assertFalse(result.success)
                self.assertEqual(result.error_code, "TRANSPORT_FAILURE")
                self.assertIsNone(result.outcome)

    async def test_query_with_out_of_range_order_suffix_is_dated_now(self):
        gateway = self._gateway({"vnp_ResponseCode": "00", "vnp_TransactionStatus": "01"})

        result = await gateway.query_status("VNPAY_BK001_99999999999999999999")

        self.assertTrue(result.success)
        body = json.loads(self.calls[0].content)
        self.assertEqual(body["vnp_TransactionDate"], "20240501100000")

    async def test_partial_refund_uses_transaction_type_03(self):
        gateway = self._gateway({"vnp_ResponseCode": "00", "vnp_TransactionNo": "14123999"})
        payment = make_payment(
            ORDER_ID, "vnpay", status=PaymentStatus.COMPLETED, transaction_id="14123456"
        )

        result = await gateway.refund(payment, Money("200000"), "customer request")

        self.assertTrue(result.success)
        body = json.loads(self.calls[0].content)
        self.assertEqual(body["vnp_TransactionType"], "03")
        self.assertEqual(body["vnp_Amount"], "20000000")
        self.assertEqual(body["vnp_TransactionNo"], "14123456")

    async def test_full_refund_uses_transaction_type_02(self):
        gateway = self._gateway({"vnp_ResponseCode": "00"})
        payment = make_payment(ORDER_ID, "vnpay", status=PaymentStatus.COMPLETED)

        await gateway.refund(payment, Money("500000"), "customer request")

        self.assertEqual(json.loads(self.calls[0].content)["vnp_TransactionType"], "02")

    async def test_refund_rejection_is_a_failed_result(self):
        gateway = self._gateway({"vnp_ResponseCode": "94", "vnp_Message": "Duplicate request"})
        payment = make_payment(ORDER_ID, "vnpay", status=PaymentStatus.COMPLETED)

        result = await gateway.refund(payment, Money("500000"), "customer request")

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Duplicate request")

    def test_configuration_report_flags_sandbox(self):
        report = self._gateway().configuration_report()

        self.assertTrue(report.configured)
        self.assertFalse(report.production)
        self.assertIn("Using sandbox endpoints", report.warnings)

    def test_missing_secret_is_not_configured(self):
        gateway = VNPayGateway(config={**VNPAY_CONFIG, "hash_secret": None}, clock=self.clock)

        self.assertFalse(gateway.is_configured())
        self.assertIn("Missing setting: hash_secret", gateway.configuration_report().issues)
