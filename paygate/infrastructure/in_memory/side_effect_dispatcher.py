from paygate.application.interfaces.side_effect_dispatcher import (
    SettlementEvent,
    SideEffectDispatcher,
)


class RecordingDispatcher(SideEffectDispatcher):
    """Keeps dispatched events in order; ``fail_with`` makes dispatch raise."""

    def __init__(self) -> None:
        self.events: list[SettlementEvent] = []
        self.fail_with: Exception | None = None

    async def dispatch(self, event: SettlementEvent) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()
        self.fail_with = None
