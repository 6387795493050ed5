"""Domain errors for payment reconciliation.

Adapters and use cases raise these internally; the gateway and facade
boundaries convert them into result objects carrying ``code``.
"""

from decimal import Decimal


class DomainError(Exception):
    """Base class for every domain error."""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.code
        super().__init__(self.message)


# === Configuration ===


class ConfigurationMissingError(DomainError):
    """A required secret or credential is absent."""

    code = "CONFIGURATION_MISSING"

    def __init__(self, provider: str, missing: list[str] | None = None):
        detail = f": {', '.join(missing)}" if missing else ""
        super().__init__(message=f"Provider '{provider}' is not configured{detail}")
        self.provider = provider
        self.missing = missing or []


class ProviderUnavailableError(DomainError):
    """The facade has no usable gateway for the requested provider."""

    code = "PROVIDER_UNAVAILABLE"

    def __init__(self, provider: str):
        super().__init__(message=f"Payment provider '{provider}' is not available")
        self.provider = provider


# === Booking / Payment lookup ===


class BookingNotFoundError(DomainError):
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_ref: str):
        super().__init__(message=f"Booking not found: {booking_ref}")
        self.booking_ref = booking_ref


class PaymentNotFoundError(DomainError):
    code = "PAYMENT_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__(message=f"Payment not found for order {order_id}")
        self.order_id = order_id


# === Inbound verification ===


class SignatureInvalidError(DomainError):
    """Inbound payload failed signature verification."""

    code = "SIGNATURE_INVALID"

    def __init__(self, provider: str, reason: str = "Invalid signature"):
        super().__init__(message=f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class InvalidPayloadError(DomainError):
    """Inbound payload is structurally unusable (or stale) after verification."""

    code = "INVALID_PAYLOAD"

    def __init__(self, provider: str, reason: str):
        super().__init__(message=f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class AmountMismatchError(DomainError):
    code = "AMOUNT_MISMATCH"

    def __init__(self, order_id: str, expected: Decimal, received: Decimal):
        super().__init__(
            message=f"Amount mismatch for {order_id}: expected {expected}, received {received}"
        )
        self.order_id = order_id
        self.expected = expected
        self.received = received


# === Gateway calls ===


class ProviderRejectedError(DomainError):
    """The gateway answered with a business-level failure."""

    code = "PROVIDER_REJECTED"

    def __init__(self, provider: str, provider_message: str, provider_code: str | None = None):
        super().__init__(message=provider_message)
        self.provider = provider
        self.provider_code = provider_code


class TransportFailureError(DomainError):
    """Network error, timeout, non-2xx status, open circuit or unreadable body."""

    code = "TRANSPORT_FAILURE"

    def __init__(self, provider: str, reason: str, http_status: int | None = None):
        super().__init__(message=f"{provider}: {reason}")
        self.provider = provider
        self.http_status = http_status


# === State machine ===


class IllegalTransitionError(DomainError):
    code = "ILLEGAL_TRANSITION"

    def __init__(self, order_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"Payment {order_id} cannot move from '{current_status}' to '{target_status}'"
        )
        self.order_id = order_id
        self.current_status = current_status
        self.target_status = target_status


class RefundAmountExceededError(DomainError):
    code = "REFUND_AMOUNT_EXCEEDED"

    def __init__(self, order_id: str, payment_amount: Decimal, refund_amount: Decimal):
        super().__init__(
            message=f"Refund {refund_amount} exceeds payment amount {payment_amount} for {order_id}"
        )
        self.order_id = order_id
        self.payment_amount = payment_amount
        self.refund_amount = refund_amount


class UnsupportedOperationError(DomainError):
    code = "UNSUPPORTED_OPERATION"

    def __init__(self, provider: str, operation: str):
        super().__init__(message=f"Provider '{provider}' does not support {operation}")
        self.provider = provider
        self.operation = operation
