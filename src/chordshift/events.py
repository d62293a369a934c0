"""Tiny synchronous publish/subscribe bus.

The conversion engine publishes:

* ``conversion.started``: ``{"request_id", "source_format", "target_format"}``
* ``conversion.completed``: ``{"request_id", "success", "warnings", "processing_time"}``
* ``conversion.failed``: ``{"request_id", "errors"}``
"""

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict[str, Any]], None]

CONVERSION_STARTED = "conversion.started"
CONVERSION_COMPLETED = "conversion.completed"
CONVERSION_FAILED = "conversion.failed"


class EventBus:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> bool:
        """Remove *handler*; return False if it was not subscribed."""
        try:
            self._handlers[name].remove(handler)
        except ValueError:
            return False
        return True

    def publish(self, name: str, payload: dict[str, Any] | None = None) -> None:
        """Call every handler for *name*; a failing handler is logged and skipped."""
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(name, payload or {})
            except Exception:
                logger.exception("Event handler for %s failed", name)
