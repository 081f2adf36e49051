"""Simple in-process event bus."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional


@dataclass
class DomainEvent:
    event_type: str
    payload: dict = field(default_factory=dict)
    user_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None


EventHandler = Callable[[DomainEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.setdefault(event_type, [])
        handlers.append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in self._subscribers.get(event.event_type, []):
            handler(event)


# Global singleton
event_bus = EventBus()
