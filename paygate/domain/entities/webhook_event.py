"""WebhookEvent entity - a ledger row proving an inbound event was processed."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from paygate.domain.constants import EVENT_SOURCE_WEBHOOK


@dataclass(frozen=True)
class WebhookEvent:
    """
    Immutable record keyed by ``event_id``.

    At most one row exists per ``event_id``; its presence means the
    corresponding transition and side effects already ran.
    """

    event_id: str
    provider: str
    order_id: str
    status: str
    amount: Decimal
    transaction_id: str | None = None
    source: str = EVENT_SOURCE_WEBHOOK
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
