import logging

from paygate.application.interfaces.side_effect_dispatcher import (
    SettlementEvent,
    SideEffectDispatcher,
)

logger = logging.getLogger(__name__)


class LoggingDispatcher(SideEffectDispatcher):
    """
    Default dispatcher: writes each committed transition to the log.

    Email, chat and task integrations live outside this service and can
    tail these records or replace this class.
    """

    async def dispatch(self, event: SettlementEvent) -> None:
        logger.info(
            "Payment state changed",
            extra={
                "event_id": event.event_id,
                "provider": event.provider,
                "order_id": event.order_id,
                "booking_id": event.booking_id,
                "booking_number": event.booking_number,
                "previous_status": event.previous_status,
                "new_status": event.new_status,
                "amount": str(event.amount),
                "source": event.source,
            },
        )
