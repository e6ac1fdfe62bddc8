"""Routes verified webhook events to registered handlers."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, List

from .models import WebhookEvent

logger = logging.getLogger("webhooks")

WebhookHandler = Callable[[WebhookEvent], Awaitable[None]]

ANY_EVENT = "*"


class WebhookDispatcher:
    """Per-source registry of async handlers keyed by event type."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._handlers: Dict[str, List[WebhookHandler]] = {}

    def register(self, event_type: str, handler: WebhookHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def handlers_for(self, event_type: str) -> List[WebhookHandler]:
        return [*self._handlers.get(event_type, ()), *self._handlers.get(ANY_EVENT, ())]

    async def dispatch(self, event: WebhookEvent) -> int:
        """Run every handler for the event in registration order; return how many ran."""

        handlers = self.handlers_for(event.type)
        if not handlers:
            logger.info("Ignoring %s webhook event %s (%s)", self.source, event.type, event.id)
            return 0
        for handler in handlers:
            await handler(event)
        return len(handlers)
