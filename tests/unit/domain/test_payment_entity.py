from datetime import datetime, timezone
from decimal import Decimal

import pytest

from paygate.domain.entities.payment import Payment, PaymentStatus
from paygate.domain.errors import IllegalTransitionError

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _payment(status=PaymentStatus.PENDING) -> Payment:
    return Payment(
        booking_id="bk-001",
        amount=Decimal("500000"),
        payment_method="momo",
        gateway_order_id="MOMO_BK001_1",
        status=status,
    )


def test_pending_completes():
    payment = _payment()

    payment.complete(paid_at=NOW, transaction_id="T1", gateway_response={"resultCode": 0})

    assert payment.status == PaymentStatus.COMPLETED
    assert payment.paid_at == NOW
    assert payment.gateway_transaction_id == "T1"


def test_pending_fails_with_reason():
    payment = _payment()

    payment.fail(reason="Customer cancelled the transaction", gateway_response={})

    assert payment.status == PaymentStatus.FAILED
    assert payment.failure_reason == "Customer cancelled the transaction"
    assert payment.is_terminal


def test_completed_refunds():
    payment = _payment(PaymentStatus.COMPLETED)

    payment.refund(amount=Decimal("200000"), reason="customer request", refunded_at=NOW)

    assert payment.status == PaymentStatus.REFUNDED
    assert payment.refund_amount == Decimal("200000")


@pytest.mark.parametrize(
    "status, action",
    [
        (PaymentStatus.FAILED, "complete"),
        (PaymentStatus.REFUNDED, "fail"),
        (PaymentStatus.PENDING, "refund"),
        (PaymentStatus.FAILED, "refund"),
    ],
)
def test_illegal_moves_raise(status, action):
    payment = _payment(status)
    calls = {
        "complete": lambda: payment.complete(NOW, None, {}),
        "fail": lambda: payment.fail("x", {}),
        "refund": lambda: payment.refund(Decimal("1"), "x", NOW),
    }

    with pytest.raises(IllegalTransitionError):
        calls[action]()
    assert payment.status == status


def test_create_pending():
    payment = Payment.create_pending("bk-001", Decimal("1"), "vnpay", "VNPAY_BK001_1", NOW)

    assert payment.status == PaymentStatus.PENDING
    assert payment.created_at == NOW
