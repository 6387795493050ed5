import logging
from contextlib import asynccontextmanager
from datetime import timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncIterator

import httpx
from pybreaker import CircuitBreaker

from paygate.application.dtos.payment_results import ProviderConfigReport
from paygate.application.interfaces.clock import Clock
from paygate.application.interfaces.payment_gateway import PaymentGateway
from paygate.domain.errors import TransportFailureError
from paygate.domain.value_objects.money import Money
from paygate.infrastructure.circuit_breaker import CircuitBreakerError, make_gateway_breaker

# VNPay, MoMo and ZaloPay timestamps are Vietnam local time
VN_TZ = timezone(timedelta(hours=7), name="Asia/Ho_Chi_Minh")

_PLACEHOLDER_MARKERS = ("your_", "your-", "changeme", "xxx", "placeholder")


class HttpPaymentGateway(PaymentGateway):
    """
    Shared plumbing for gateways that talk to a provider over HTTP.

    Requests go through an injected ``httpx.AsyncClient`` when one is given,
    otherwise a short-lived client with the configured timeout. Each gateway
    owns a circuit breaker; an open circuit, a timeout, a network error, a
    non-2xx status or a non-JSON body all surface as TransportFailureError.
    """

    provider = ""
    required_settings: tuple[str, ...] = ()
    endpoint_settings: tuple[str, ...] = ()
    sandbox_markers: tuple[str, ...] = ("sandbox", "test-", "sb-")

    def __init__(
        self,
        config: dict[str, Any],
        clock: Clock,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 15.0,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._http_client = http_client
        self._timeout = timeout_seconds
        self._breaker = breaker or make_gateway_breaker(self.provider)
        self._logger = logging.getLogger(__name__)

    # === Configuration ===

    def missing_settings(self) -> list[str]:
        return [name for name in self.required_settings if not self._config.get(name)]

    def is_configured(self) -> bool:
        return not self.missing_settings()

    def is_production(self) -> bool:
        endpoints = [str(self._config.get(name) or "") for name in self.endpoint_settings]
        return bool(endpoints) and not any(
            marker in endpoint for endpoint in endpoints for marker in self.sandbox_markers
        )

    def configuration_report(self) -> ProviderConfigReport:
        issues = [f"Missing setting: {name}" for name in self.missing_settings()]
        warnings = []
        for name in self.required_settings:
            value = str(self._config.get(name) or "").lower()
            if value and any(marker in value for marker in _PLACEHOLDER_MARKERS):
                warnings.append(f"Setting {name} looks like a placeholder value")
        if self.is_configured() and not self.is_production():
            warnings.append("Using sandbox endpoints")
        return ProviderConfigReport(
            provider=self.provider,
            configured=self.is_configured(),
            production=self.is_configured() and self.is_production(),
            issues=issues,
            warnings=warnings,
        )

    # === Outbound HTTP ===

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def _post_json(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send(url, json=body)

    async def _post_form(self, url: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._send(url, data={key: str(value) for key, value in data.items()})

    async def _send(self, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            with self._breaker.calling():
                async with self._client() as client:
                    response = await client.post(url, timeout=self._timeout, **kwargs)
                if response.status_code >= 500:
                    raise TransportFailureError(
                        self.provider,
                        f"Gateway returned HTTP {response.status_code}",
                        http_status=response.status_code,
                    )
        except CircuitBreakerError as exc:
            self._logger.error(
                "Gateway circuit breaker is open - service unavailable",
                extra={"provider": self.provider, "circuit_state": str(exc)},
            )
            raise TransportFailureError(
                self.provider, "Gateway temporarily unavailable (circuit breaker open)"
            ) from exc
        except httpx.TimeoutException as exc:
            self._logger.warning(
                "Gateway request timeout",
                extra={"provider": self.provider, "timeout": self._timeout},
            )
            raise TransportFailureError(self.provider, f"Timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            self._logger.error(
                "Gateway HTTP error",
                exc_info=exc,
                extra={"provider": self.provider},
            )
            raise TransportFailureError(self.provider, str(exc)) from exc

        if not response.is_success:
            raise TransportFailureError(
                self.provider,
                f"Gateway returned HTTP {response.status_code}",
                http_status=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise TransportFailureError(
                self.provider, "Gateway returned an unreadable body", response.status_code
            ) from exc
        if not isinstance(body, dict):
            raise TransportFailureError(
                self.provider, "Gateway returned an unexpected body", response.status_code
            )
        return body

    def _response_amount(self, value: Any, minor_units: bool = False) -> Decimal | None:
        """Amount reported in a provider response body, in major units."""
        if value in (None, ""):
            return None
        try:
            money = Money.from_minor_units(value) if minor_units else Money(value)
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise TransportFailureError(
                self.provider, f"Gateway returned an unreadable amount: {value!r}"
            ) from exc
        return money.amount
