"""Synchronous in-process bus for reservation lifecycle events."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Iterable

Handler = Callable[[Any], None]


class EventBus:
    """Publish/subscribe bus for domain events.

    Handlers run synchronously in registration order, on the publishing
    thread. Publishers emit only after their state change is committed.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        for handler in self._subscribers.get(type(event), []):
            handler(event)

    def publish_all(self, events: Iterable[Any]) -> None:
        """Publish *events* in order; used for multi-record commits."""
        for event in events:
            self.publish(event)
