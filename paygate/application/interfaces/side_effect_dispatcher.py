from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class SettlementEvent:
    """A committed Payment state change, handed to side-effect handlers."""

    event_id: str
    provider: str
    order_id: str
    booking_id: str
    booking_number: str | None
    previous_status: str
    new_status: str
    amount: Decimal
    source: str
    transaction_id: str | None = None
    customer_email: str | None = None


class SideEffectDispatcher(ABC):
    """
    Fires confirmation emails, chat notifications and follow-up tasks.

    Invoked once per committed transition, after the ledger row exists.
    """

    @abstractmethod
    async def dispatch(self, event: SettlementEvent) -> None:
        pass
