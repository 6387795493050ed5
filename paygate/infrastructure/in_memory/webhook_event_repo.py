from paygate.application.interfaces.webhook_event_repo import WebhookEventRepo
from paygate.domain.entities.webhook_event import WebhookEvent


class InMemoryWebhookEventRepo(WebhookEventRepo):
    def __init__(self) -> None:
        self._events: dict[str, WebhookEvent] = {}

    async def exists(self, event_id: str) -> bool:
        return event_id in self._events

    async def record(self, event: WebhookEvent) -> bool:
        if event.event_id in self._events:
            return False
        self._events[event.event_id] = event
        return True

    async def get(self, event_id: str) -> WebhookEvent | None:
        return self._events.get(event_id)

    def all(self) -> list[WebhookEvent]:
        return list(self._events.values())

    def clear(self) -> None:
        self._events.clear()
