"""Value Object EventIdentity - deterministic key of an inbound notification."""

from dataclasses import dataclass


@dataclass(frozen=True)
class EventIdentity:
    """
    ``provider:order_id:transaction_id``, or ``provider:order_id:code-<code>``
    when the provider has not assigned a transaction id (failure events).
    """

    provider: str
    order_id: str
    transaction_id: str | None = None
    response_code: str | None = None

    def __post_init__(self) -> None:
        if not self.provider or not self.order_id:
            raise ValueError("provider and order_id are required")
        if not self.transaction_id and self.response_code is None:
            raise ValueError("transaction_id or response_code is required")

    @property
    def value(self) -> str:
        if self.transaction_id:
            return f"{self.provider}:{self.order_id}:{self.transaction_id}"
        return f"{self.provider}:{self.order_id}:code-{self.response_code}"

    def __str__(self) -> str:
        return self.value
