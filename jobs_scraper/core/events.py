"""Typed publish/subscribe bus used by the orchestrator and run strategies.

Consumers subscribe before calling ``LinkedInScraper.run``. Only the scraper
internals emit.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventKind(str, Enum):
    """Closed set of events the scraper can emit."""

    DATA = "data"
    ERROR = "error"
    METRICS = "metrics"
    INVALID_SESSION = "invalid_session"
    END = "end"
    DISCONNECTED = "disconnected"
    TARGET_CREATED = "target_created"
    TARGET_CHANGED = "target_changed"
    TARGET_DESTROYED = "target_destroyed"


class EventBus:
    """Registry of handlers per event kind.

    Usage::

        bus = EventBus()
        bus.subscribe(EventKind.DATA, lambda record: print(record.title))
        bus.emit(EventKind.DATA, record)
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = defaultdict(list)

    def subscribe(self, kind: EventKind, handler: Handler) -> None:
        self._handlers[EventKind(kind)].append(handler)

    def unsubscribe(self, kind: EventKind, handler: Handler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(EventKind(kind), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, kind: EventKind, *payload: Any) -> None:
        """Call every handler for ``kind`` in subscription order.

        A failing handler is logged and does not prevent delivery to the
        remaining handlers.
        """
        for handler in list(self._handlers.get(kind, [])):
            try:
                handler(*payload)
            except Exception:
                logger.exception("Handler %r for '%s' raised", handler, kind.value)
