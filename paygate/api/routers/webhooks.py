"""
Provider callback endpoints.

Each provider expects its own acknowledgement format; the settlement
result is translated here and nowhere else.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from paygate.api.dependencies import get_payment_facade
from paygate.application.dtos.payment_results import WebhookResult
from paygate.application.use_cases.payment_facade import PaymentFacade
from paygate.domain.constants import PROVIDER_MOMO, PROVIDER_VNPAY, PROVIDER_ZALOPAY
from paygate.domain.errors import (
    AmountMismatchError,
    IllegalTransitionError,
    InvalidPayloadError,
    PaymentNotFoundError,
    SignatureInvalidError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_VNPAY_RESPONSES = {
    SignatureInvalidError.code: ("97", "Invalid signature"),
    PaymentNotFoundError.code: ("01", "Order not found"),
    AmountMismatchError.code: ("04", "Invalid amount"),
    IllegalTransitionError.code: ("02", "Order already confirmed"),
}

_MOMO_STATUS = {
    SignatureInvalidError.code: status.HTTP_400_BAD_REQUEST,
    InvalidPayloadError.code: status.HTTP_400_BAD_REQUEST,
    PaymentNotFoundError.code: status.HTTP_404_NOT_FOUND,
    AmountMismatchError.code: status.HTTP_409_CONFLICT,
    IllegalTransitionError.code: status.HTTP_409_CONFLICT,
}

ZALOPAY_SUCCESS = 1
ZALOPAY_DUPLICATE = 2
ZALOPAY_RETRY = 0
ZALOPAY_INVALID_MAC = -1


async def _json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _log_result(provider: str, result: WebhookResult) -> None:
    logger.info(
        "Webhook handled",
        extra={
            "provider": provider,
            "order_id": result.order_id,
            "success": result.success,
            "already_processed": result.already_processed,
            "error_code": result.error_code,
        },
    )


@router.api_route("/webhooks/vnpay", methods=["GET", "POST"])
async def vnpay_ipn(
    request: Request,
    facade: PaymentFacade = Depends(get_payment_facade),
) -> dict:
    """VNPay IPN. VNPay reads ``RspCode`` from the body; the HTTP status is always 200."""
    result = await facade.handle_webhook(PROVIDER_VNPAY, dict(request.query_params))
    _log_result(PROVIDER_VNPAY, result)
    if result.success:
        return {"RspCode": "00", "Message": "Confirm Success"}
    code, message = _VNPAY_RESPONSES.get(result.error_code, ("99", "Unknown error"))
    return {"RspCode": code, "Message": message}


@router.post("/webhooks/momo")
async def momo_ipn(
    request: Request,
    facade: PaymentFacade = Depends(get_payment_facade),
):
    payload = await _json_body(request)
    if payload is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"resultCode": 1, "message": "Malformed body"},
        )
    result = await facade.handle_webhook(PROVIDER_MOMO, payload)
    _log_result(PROVIDER_MOMO, result)
    if result.success:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JSONResponse(
        status_code=_MOMO_STATUS.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        content={"resultCode": 1, "message": result.error_message},
    )


@router.post("/webhooks/zalopay")
async def zalopay_callback(
    request: Request,
    facade: PaymentFacade = Depends(get_payment_facade),
) -> dict:
    payload = await _json_body(request)
    if payload is None:
        return {"return_code": ZALOPAY_INVALID_MAC, "return_message": "Malformed body"}
    result = await facade.handle_webhook(PROVIDER_ZALOPAY, payload)
    _log_result(PROVIDER_ZALOPAY, result)
    if result.success and result.already_processed:
        return {"return_code": ZALOPAY_DUPLICATE, "return_message": "already processed"}
    if result.success:
        return {"return_code": ZALOPAY_SUCCESS, "return_message": "success"}
    if result.error_code == SignatureInvalidError.code:
        return {"return_code": ZALOPAY_INVALID_MAC, "return_message": "mac not equal"}
    # ZaloPay retries the callback on 0
    return {"return_code": ZALOPAY_RETRY, "return_message": result.error_message or "error"}
