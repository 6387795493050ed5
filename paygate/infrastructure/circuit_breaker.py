"""
Circuit Breaker configuration for outbound gateway calls.

One breaker per payment provider, so a failing gateway fails fast without
affecting the others.

Circuit Breaker Pattern:
- CLOSED: Normal operation, requests pass through
- OPEN: Too many failures, requests fail immediately
- HALF_OPEN: Testing if service recovered, limited requests allowed

Only transport-level failures (network errors, timeouts, 5xx) count;
business rejections from the provider do not trip the circuit.
"""

import logging

from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)

DEFAULT_FAIL_MAX = 5
DEFAULT_RESET_TIMEOUT = 60


def log_circuit_state_change(breaker_name: str, old_state: str, new_state: str):
    """Log circuit breaker state changes for monitoring and alerting."""
    logger.warning(
        "Circuit breaker state changed",
        extra={
            "breaker_name": breaker_name,
            "old_state": old_state,
            "new_state": new_state,
        },
    )


class StateChangeLogger(CircuitBreakerListener):
    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb, old_state, new_state):
        log_circuit_state_change(
            self.name,
            old_state.name if old_state else "none",
            new_state.name,
        )


def make_gateway_breaker(
    provider: str,
    fail_max: int = DEFAULT_FAIL_MAX,
    reset_timeout: int = DEFAULT_RESET_TIMEOUT,
) -> CircuitBreaker:
    return CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=f"{provider}_circuit_breaker",
        listeners=[StateChangeLogger(provider)],
    )


__all__ = [
    "make_gateway_breaker",
    "CircuitBreakerError",
]
