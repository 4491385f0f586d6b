"""
Mint events and the event bus observers subscribe to.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional, Tuple, Type

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MintEvent:
    """Base class for events published by the engine."""
    emitted_at: datetime = field(default_factory=datetime.utcnow, compare=False, kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class BatchMinted(MintEvent):
    """A batch was fully minted."""
    recipient: str
    token_ids: Tuple[int, ...]


@dataclass(frozen=True)
class BaseURIUpdated(MintEvent):
    """The shared metadata prefix was replaced."""
    new_base: str


@dataclass(frozen=True)
class MintPriceUpdated(MintEvent):
    """The unit price was replaced."""
    new_price: int


EventHandler = Callable[[MintEvent], None]


class EventBus:
    """
    Fire-and-forget notification bus.

    Handlers run synchronously, in subscription order within an event type.
    A failing handler is logged and does not affect other handlers or the
    publisher.
    """

    def __init__(self, history_size: int = 1000):
        self._handlers: Dict[Type[MintEvent], List[EventHandler]] = defaultdict(list)
        self._history: Deque[MintEvent] = deque(maxlen=history_size)
        self._stats = {
            "published": 0,
            "handler_errors": 0,
        }

    def subscribe(
        self,
        event_type: Type[MintEvent],
        handler: EventHandler,
    ) -> None:
        """
        Register a handler for an event type.

        Subscribing to MintEvent receives every event.
        """
        self._handlers[event_type].append(handler)

    def unsubscribe(
        self,
        event_type: Type[MintEvent],
        handler: EventHandler,
    ) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def publish(self, event: MintEvent) -> None:
        """Deliver an event to every matching handler."""
        self._history.append(event)
        self._stats["published"] += 1

        for handler in self._matching_handlers(event):
            try:
                handler(event)
            except Exception as e:
                self._stats["handler_errors"] += 1
                logger.error(
                    "event_handler_failed",
                    event_name=event.name,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )

        logger.debug("event_published", event_name=event.name)

    def _matching_handlers(self, event: MintEvent) -> List[EventHandler]:
        handlers = []
        for event_type, registered in self._handlers.items():
            if isinstance(event, event_type):
                handlers.extend(registered)
        return handlers

    def history(self, event_type: Optional[Type[MintEvent]] = None) -> List[MintEvent]:
        """Get published events, oldest first, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if isinstance(e, event_type)]

    def get_stats(self) -> dict:
        return {
            "subscriptions": sum(len(h) for h in self._handlers.values()),
            "history_size": len(self._history),
            **self._stats,
        }
