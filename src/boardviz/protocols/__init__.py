"""Protocol definitions for pipeline observers and transport events."""

from .events import StreamStatus
from .observers import EventInterceptor, EventObserver

__all__ = [
    # Events
    "StreamStatus",
    # Observers
    "EventInterceptor",
    "EventObserver",
]
