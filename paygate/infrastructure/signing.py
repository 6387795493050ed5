"""
Canonicalization and HMAC signing for every supported gateway.

Pure functions only: no I/O, no shared state. Verification helpers return
False for missing, malformed or wrong signatures instead of raising.

Schemes:
- sort-and-concatenate HMAC-SHA512 (VNPay): sorted ``key=value`` pairs,
  values percent-encoded when signing outbound, raw when verifying inbound.
- fixed-field-order HMAC-SHA256 (MoMo): ``name=value`` pairs in a
  documented order that differs between request types.
- MAC over opaque data (ZaloPay): pipe-joined fields for outbound requests,
  the raw callback ``data`` string for inbound verification.
"""

import hashlib
import hmac
import string
from typing import Any, Mapping, Sequence
from urllib.parse import quote

VNPAY_HASH_FIELDS = ("vnp_SecureHash", "vnp_SecureHashType")

MOMO_CREATE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "ipnUrl",
    "orderId",
    "orderInfo",
    "partnerCode",
    "redirectUrl",
    "requestId",
    "requestType",
)
MOMO_IPN_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "message",
    "orderId",
    "orderInfo",
    "orderType",
    "partnerCode",
    "payType",
    "requestId",
    "responseTime",
    "resultCode",
    "transId",
)
MOMO_QUERY_FIELDS = ("accessKey", "orderId", "partnerCode", "requestId")
MOMO_REFUND_FIELDS = (
    "accessKey",
    "amount",
    "description",
    "orderId",
    "partnerCode",
    "requestId",
    "transId",
)

ZALOPAY_CREATE_FIELDS = (
    "app_id",
    "app_trans_id",
    "app_user",
    "amount",
    "app_time",
    "embed_data",
    "item",
)
ZALOPAY_QUERY_FIELDS = ("app_id", "app_trans_id", "key1")
ZALOPAY_REFUND_FIELDS = ("app_id", "zp_trans_id", "amount", "description", "timestamp")
ZALOPAY_REFUND_QUERY_FIELDS = ("app_id", "m_refund_id", "timestamp")

_HEX_DIGITS = frozenset(string.hexdigits)


def encode_uri_component(value: Any) -> str:
    """Percent-encode like JavaScript's ``encodeURIComponent``."""
    return quote(_as_text(value), safe="-_.!~*'()")


def hmac_hex(key: str, message: str, digestmod=hashlib.sha256) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), digestmod).hexdigest()


def signatures_match(expected: str, received: str | None) -> bool:
    """Constant-time hex digest comparison; any malformed input is a mismatch."""
    if not received or not isinstance(received, str):
        return False
    if not _HEX_DIGITS.issuperset(received):
        return False
    if len(received) != len(expected):
        return False
    return hmac.compare_digest(expected.lower(), received.lower())


# === Sort-and-concatenate (HMAC-SHA512) ===


def sorted_sign_data(params: Mapping[str, Any], encode: bool) -> str:
    pairs = []
    for key in sorted(k for k in params if k not in VNPAY_HASH_FIELDS):
        value = params[key]
        if value is None:
            continue
        pairs.append(f"{key}={encode_uri_component(value) if encode else _as_text(value)}")
    return "&".join(pairs)


def sign_sorted(params: Mapping[str, Any], secret: str, encode: bool = True) -> str:
    return hmac_hex(secret, sorted_sign_data(params, encode=encode), hashlib.sha512)


def verify_sorted(params: Mapping[str, Any], secret: str) -> bool:
    received = params.get("vnp_SecureHash")
    if not received:
        return False
    return signatures_match(sign_sorted(params, secret, encode=False), received)


# === Fixed field order (HMAC-SHA256) ===


def ordered_sign_data(params: Mapping[str, Any], fields: Sequence[str]) -> str:
    return "&".join(f"{name}={_as_text(params.get(name))}" for name in fields)


def sign_ordered(params: Mapping[str, Any], fields: Sequence[str], secret: str) -> str:
    return hmac_hex(secret, ordered_sign_data(params, fields))


def verify_ordered(
    params: Mapping[str, Any],
    fields: Sequence[str],
    secret: str,
    signature: str | None,
) -> bool:
    return signatures_match(sign_ordered(params, fields, secret), signature)


# === MAC over opaque data (HMAC-SHA256) ===


def piped_mac_data(params: Mapping[str, Any], fields: Sequence[str]) -> str:
    return "|".join(_as_text(params.get(name)) for name in fields)


def sign_piped(params: Mapping[str, Any], fields: Sequence[str], key: str) -> str:
    return hmac_hex(key, piped_mac_data(params, fields))


def verify_opaque(data: str | None, key: str, mac: str | None) -> bool:
    """Verify a MAC over the undecoded callback string."""
    if not isinstance(data, str) or not data:
        return False
    return signatures_match(hmac_hex(key, data), mac)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
