"""Value Objects of the payment domain."""

from paygate.domain.value_objects.event_identity import EventIdentity
from paygate.domain.value_objects.money import Money

__all__ = [
    "EventIdentity",
    "Money",
]
