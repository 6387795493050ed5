from dataclasses import asdict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from paygate.api.dependencies import get_payment_facade
from paygate.api.schemas.payments import (
    ConfirmTransferRequest,
    CreatePaymentRequest,
    CreatePaymentResponse,
    PendingTransfer,
    ProvidersResponse,
    RefundRequest,
    RefundResponse,
    RejectTransferRequest,
    SettlementResponse,
    VerifyResponse,
)
from paygate.application.use_cases.payment_facade import PaymentFacade
from paygate.domain.errors import (
    AmountMismatchError,
    BookingNotFoundError,
    IllegalTransitionError,
    InvalidPayloadError,
    PaymentNotFoundError,
    ProviderRejectedError,
    ProviderUnavailableError,
    RefundAmountExceededError,
    SignatureInvalidError,
    TransportFailureError,
    UnsupportedOperationError,
)

router = APIRouter()

_ERROR_STATUS = {
    BookingNotFoundError.code: status.HTTP_404_NOT_FOUND,
    PaymentNotFoundError.code: status.HTTP_404_NOT_FOUND,
    ProviderUnavailableError.code: status.HTTP_400_BAD_REQUEST,
    UnsupportedOperationError.code: status.HTTP_400_BAD_REQUEST,
    InvalidPayloadError.code: status.HTTP_400_BAD_REQUEST,
    SignatureInvalidError.code: status.HTTP_400_BAD_REQUEST,
    AmountMismatchError.code: status.HTTP_409_CONFLICT,
    IllegalTransitionError.code: status.HTTP_409_CONFLICT,
    RefundAmountExceededError.code: status.HTTP_409_CONFLICT,
    ProviderRejectedError.code: status.HTTP_502_BAD_GATEWAY,
    TransportFailureError.code: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _respond(model, ok: bool, error_code: str | None, success_status: int = status.HTTP_200_OK):
    status_code = (
        success_status
        if ok
        else _ERROR_STATUS.get(error_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
    )
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json"))


@router.get("/payments/providers", response_model=ProvidersResponse)
async def list_providers(facade: PaymentFacade = Depends(get_payment_facade)):
    return ProvidersResponse(providers=facade.available_providers())


@router.post(
    "/payments",
    response_model=CreatePaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    payload: CreatePaymentRequest,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.create_payment(
        payload.provider,
        booking_ref=payload.booking_ref,
        amount=payload.amount,
        description=payload.description,
    )
    body = CreatePaymentResponse.model_validate(asdict(result))
    return _respond(body, result.success, result.error_code, status.HTTP_201_CREATED)


@router.get("/payments/{provider}/{order_id}/status", response_model=VerifyResponse)
async def payment_status(
    provider: str,
    order_id: str,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.verify_payment(provider, order_id)
    return _respond(VerifyResponse.model_validate(asdict(result)), result.verified, result.error_code)


@router.post("/payments/{order_id}/reconcile", response_model=SettlementResponse)
async def reconcile_payment(
    order_id: str,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.reconcile_payment(order_id)
    return _respond(
        SettlementResponse.model_validate(asdict(result)), result.success, result.error_code
    )


@router.post("/payments/{order_id}/refund", response_model=RefundResponse)
async def refund_payment(
    order_id: str,
    payload: RefundRequest,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.refund_payment(order_id, amount=payload.amount, reason=payload.reason)
    return _respond(RefundResponse.model_validate(asdict(result)), result.success, result.error_code)


@router.get("/payments/{provider}/refunds/{refund_id}", response_model=RefundResponse)
async def refund_status(
    provider: str,
    refund_id: str,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.refund_status(provider, refund_id)
    return _respond(RefundResponse.model_validate(asdict(result)), result.success, result.error_code)


@router.get("/payments/vnpay/return", response_model=VerifyResponse)
async def vnpay_return(
    request: Request,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    """Verifies the browser redirect for the result page. Settlement waits for the IPN."""
    result = facade.verify_return("vnpay", dict(request.query_params))
    return _respond(VerifyResponse.model_validate(asdict(result)), result.verified, result.error_code)


@router.get("/payments/bank-transfers/pending", response_model=list[PendingTransfer])
async def pending_transfers(facade: PaymentFacade = Depends(get_payment_facade)):
    payments = await facade.pending_transfers()
    return [
        PendingTransfer(
            transfer_code=payment.gateway_order_id,
            booking_id=payment.booking_id,
            amount=payment.amount,
            created_at=payment.created_at,
        )
        for payment in payments
    ]


@router.post(
    "/payments/bank-transfers/{transfer_code}/confirm",
    response_model=SettlementResponse,
)
async def confirm_transfer(
    transfer_code: str,
    payload: ConfirmTransferRequest,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.confirm_transfer(
        transfer_code,
        admin_notes=payload.admin_notes,
        received_amount=payload.received_amount,
    )
    return _respond(
        SettlementResponse.model_validate(asdict(result)), result.success, result.error_code
    )


@router.post(
    "/payments/bank-transfers/{transfer_code}/reject",
    response_model=SettlementResponse,
)
async def reject_transfer(
    transfer_code: str,
    payload: RejectTransferRequest,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    result = await facade.reject_transfer(transfer_code, reason=payload.reason)
    return _respond(
        SettlementResponse.model_validate(asdict(result)), result.success, result.error_code
    )
