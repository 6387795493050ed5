from typing import Any, Dict

import httpx
from pybreaker import CircuitBreaker

from paygate.application.interfaces.clock import Clock
from paygate.application.interfaces.payment_gateway import PaymentGateway
from paygate.application.interfaces.payment_repo import PaymentRepo
from paygate.domain.constants import (
    PROVIDER_BANKING,
    PROVIDER_MOMO,
    PROVIDER_VNPAY,
    PROVIDER_ZALOPAY,
)
from paygate.infrastructure.circuit_breaker import make_gateway_breaker
from paygate.infrastructure.gateways.bank_transfer_gateway import BankTransferGateway
from paygate.infrastructure.gateways.momo_gateway import MoMoGateway
from paygate.infrastructure.gateways.vnpay_gateway import VNPayGateway
from paygate.infrastructure.gateways.zalopay_gateway import ZaloPayGateway

SUPPORTED_PROVIDERS = (PROVIDER_VNPAY, PROVIDER_MOMO, PROVIDER_ZALOPAY, PROVIDER_BANKING)

_HTTP_GATEWAYS = {
    PROVIDER_VNPAY: VNPayGateway,
    PROVIDER_MOMO: MoMoGateway,
    PROVIDER_ZALOPAY: ZaloPayGateway,
}


def make_breakers() -> Dict[str, CircuitBreaker]:
    """One breaker per HTTP provider; share the result across factories."""
    return {provider: make_gateway_breaker(provider) for provider in _HTTP_GATEWAYS}


class PaymentGatewayFactory:
    """
    Builds one gateway per provider from ``Settings.gateway_config()``.

    Gateways are created lazily and cached. Pass ``breakers`` when the
    factory is short-lived (one per request) so circuit state outlives it.
    """

    def __init__(
        self,
        config: Dict[str, Dict[str, Any]],
        clock: Clock,
        payment_repo: PaymentRepo,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 15.0,
        breakers: Dict[str, CircuitBreaker] | None = None,
    ):
        self.config = config
        self._clock = clock
        self._payment_repo = payment_repo
        self._http_client = http_client
        self._timeout = timeout_seconds
        self._breakers = breakers if breakers is not None else make_breakers()
        self._gateways: Dict[str, PaymentGateway] = {}

    def get_gateway(self, provider: str) -> PaymentGateway:
        key = str(provider).lower()
        if key not in SUPPORTED_PROVIDERS:
            raise KeyError(f"Unknown payment provider: {provider}")

        if key not in self._gateways:
            conf = self.config.get(key, {})
            if key == PROVIDER_BANKING:
                self._gateways[key] = BankTransferGateway(
                    config=conf, clock=self._clock, payment_repo=self._payment_repo
                )
            else:
                self._gateways[key] = _HTTP_GATEWAYS[key](
                    config=conf,
                    clock=self._clock,
                    http_client=self._http_client,
                    timeout_seconds=self._timeout,
                    breaker=self._breakers.get(key),
                )
        return self._gateways[key]

    def all_gateways(self) -> Dict[str, PaymentGateway]:
        return {provider: self.get_gateway(provider) for provider in SUPPORTED_PROVIDERS}
