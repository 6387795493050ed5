from paygate.domain.entities.webhook_event import WebhookEvent


class WebhookEventRepo:
    async def exists(self, event_id: str) -> bool:
        raise NotImplementedError

    async def record(self, event: WebhookEvent) -> bool:
        """
        Insert ``event`` guarded by the unique ``event_id``.

        Returns False when another delivery already recorded the same
        identity; the conflict never propagates as an exception.
        """
        raise NotImplementedError

    async def get(self, event_id: str) -> WebhookEvent | None:
        raise NotImplementedError
