"""Outbox for ledger, auth and user events.

Services stage rows with ``enqueue`` inside their own transaction; the
``dispatch-outbox`` command later publishes them on the in-process event bus.
"""

from bookkeeper.platform.outbox.models import STATUS_DEAD, STATUS_PENDING, STATUS_SENT, OutboxMessage
from bookkeeper.platform.outbox.services import (
    MAX_DISPATCH_ATTEMPTS,
    EventBusAdapter,
    dispatch_ready,
    enqueue,
)

__all__ = [
    "EventBusAdapter",
    "MAX_DISPATCH_ATTEMPTS",
    "OutboxMessage",
    "STATUS_DEAD",
    "STATUS_PENDING",
    "STATUS_SENT",
    "dispatch_ready",
    "enqueue",
]
