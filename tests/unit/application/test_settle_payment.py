import asyncio
from decimal import Decimal

from paygate.application.dtos.notifications import GatewayNotification
from paygate.domain.entities.booking import BookingPaymentStatus, BookingStatus
from paygate.domain.entities.payment import PaymentOutcome, PaymentStatus
from paygate.domain.value_objects.money import Money
from tests.support import make_payment, signed_momo_ipn, signed_vnpay_params

MOMO_ORDER = "MOMO_BK001_1714532400000"
VNPAY_ORDER = "VNPAY_BK001_1714532400000"


async def test_success_webhook_completes_payment_and_confirms_booking(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))

    result = await harness.facade.handle_webhook("momo", signed_momo_ipn())

    assert result.success and result.changed
    payment = await harness.payment(MOMO_ORDER)
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.gateway_transaction_id == "4088878653"
    assert payment.paid_at is not None
    booking = await harness.booking()
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == BookingPaymentStatus.COMPLETED
    assert len(harness.dispatcher.events) == 1
    event = harness.dispatcher.events[0]
    assert (event.previous_status, event.new_status) == ("pending", "completed")
    assert event.booking_number == "BK001"


async def test_replay_applies_once_and_dispatches_once(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))
    payload = signed_momo_ipn()

    first = await harness.facade.handle_webhook("momo", payload)
    second = await harness.facade.handle_webhook("momo", dict(payload))

    assert first.changed and not first.already_processed
    assert second.success and second.already_processed and not second.changed
    assert len(harness.dispatcher.events) == 1
    assert len(harness.events.all()) == 1


async def test_concurrent_duplicates_dispatch_once(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))
    payload = signed_momo_ipn()

    results = await asyncio.gather(
        *(harness.facade.handle_webhook("momo", dict(payload)) for _ in range(5))
    )

    assert all(result.success for result in results)
    assert sum(result.changed for result in results) == 1
    assert len(harness.dispatcher.events) == 1


async def test_amount_mismatch_never_completes(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))

    result = await harness.facade.handle_webhook("momo", signed_momo_ipn(amount=400000))

    assert not result.success
    assert result.error_code == "AMOUNT_MISMATCH"
    assert (await harness.payment(MOMO_ORDER)).status == PaymentStatus.PENDING
    assert harness.events.all() == []
    assert harness.dispatcher.events == []


async def test_failed_payment_stays_failed(harness):
    await harness.seed(payment=make_payment(VNPAY_ORDER, "vnpay"))
    failure = signed_vnpay_params(
        vnp_ResponseCode="24", vnp_TransactionStatus="02", vnp_TransactionNo="0"
    )

    failed = await harness.facade.handle_webhook("vnpay", failure)
    late_success = await harness.facade.handle_webhook("vnpay", signed_vnpay_params())

    assert failed.changed and failed.status == "failed"
    assert not late_success.success
    assert late_success.error_code == "ILLEGAL_TRANSITION"
    payment = await harness.payment(VNPAY_ORDER)
    assert payment.status == PaymentStatus.FAILED
    assert payment.failure_reason == "Customer cancelled the transaction"
    assert len(harness.dispatcher.events) == 1


async def test_replayed_late_success_is_rejected_every_time(harness):
    await harness.seed(payment=make_payment(VNPAY_ORDER, "vnpay"))
    failure = signed_vnpay_params(
        vnp_ResponseCode="24", vnp_TransactionStatus="02", vnp_TransactionNo="0"
    )
    await harness.facade.handle_webhook("vnpay", failure)
    success = signed_vnpay_params()

    first = await harness.facade.handle_webhook("vnpay", success)
    replay = await harness.facade.handle_webhook("vnpay", dict(success))

    for result in (first, replay):
        assert not result.success
        assert result.error_code == "ILLEGAL_TRANSITION"
        assert result.status == "failed"
        assert not result.already_processed
    assert [event.status for event in harness.events.all()] == ["failed"]
    assert len(harness.dispatcher.events) == 1


async def test_tampered_signature_touches_nothing(harness):
    await harness.seed(payment=make_payment(VNPAY_ORDER, "vnpay"))
    params = signed_vnpay_params()
    params["vnp_Amount"] = "100"

    result = await harness.facade.handle_webhook("vnpay", params)

    assert result.error_code == "SIGNATURE_INVALID"
    assert (await harness.payment(VNPAY_ORDER)).status == PaymentStatus.PENDING
    assert (await harness.booking()).payment_status == BookingPaymentStatus.PENDING
    assert harness.events.all() == []
    assert harness.dispatcher.events == []


async def test_unknown_order_is_payment_not_found(harness):
    await harness.seed()

    result = await harness.facade.handle_webhook("momo", signed_momo_ipn(orderId="MOMO_X_1"))

    assert result.error_code == "PAYMENT_NOT_FOUND"
    assert harness.events.all() == []


async def test_failed_retry_does_not_unpay_booking(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))
    await harness.payments.create_pending(make_payment("MOMO_BK001_1714532500000", "momo"))
    await harness.facade.handle_webhook("momo", signed_momo_ipn())

    await harness.facade.handle_webhook(
        "momo",
        signed_momo_ipn(orderId="MOMO_BK001_1714532500000", resultCode=1006, transId=0),
    )

    booking = await harness.booking()
    assert booking.payment_status == BookingPaymentStatus.COMPLETED
    assert booking.status == BookingStatus.CONFIRMED


async def test_pending_outcome_records_nothing(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))
    notification = GatewayNotification(
        provider="momo",
        order_id=MOMO_ORDER,
        outcome=PaymentOutcome.PENDING,
        amount=Money("500000"),
        response_code="1000",
    )

    result = await harness.facade._settle.execute(notification, source="query")

    assert result.success and not result.changed
    assert harness.events.all() == []


async def test_dispatch_failure_keeps_transition(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))
    harness.dispatcher.fail_with = RuntimeError("smtp down")

    result = await harness.facade.handle_webhook("momo", signed_momo_ipn())

    assert result.success and result.changed
    assert (await harness.payment(MOMO_ORDER)).status == PaymentStatus.COMPLETED
    assert len(harness.events.all()) == 1


async def test_ledger_row_records_source_and_amount(harness):
    await harness.seed(payment=make_payment(MOMO_ORDER, "momo"))

    result = await harness.facade.handle_webhook("momo", signed_momo_ipn())

    event = await harness.events.get(result.event_id)
    assert event.source == "webhook"
    assert event.amount == Decimal("500000")
    assert event.status == "completed"
    assert event.transaction_id == "4088878653"
