"""Observer protocol definitions for the event pipeline.

- Interceptors: see every event before resolution (the recorder)
- Event observers: react after an event has been resolved and animated
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from boardviz.models import CanonicalEvent, EventOrigin, MappingEntry


@runtime_checkable
class EventInterceptor(Protocol):
    """
    Component that taps the pipeline ingress before mapping resolution.

    Interceptors observe, they cannot drop or rewrite events.
    """

    def intercept(self, event: "CanonicalEvent", origin: "EventOrigin") -> None:
        """
        Handle an event entering the pipeline.

        Args:
            event: The canonical event
            origin: Whether the event came from a live transport or from playback

        Note:
            Called with the pipeline lock held; must not block.
        """
        ...


@runtime_checkable
class EventObserver(Protocol):
    """
    Observer that receives every processed event.

    Used by the CLI monitor and for diagnostics in place of global hooks.
    """

    def on_pipeline_event(self, event: "CanonicalEvent", entry: "MappingEntry | None") -> None:
        """
        Handle a processed event.

        Args:
            event: The canonical event
            entry: The mapping entry it resolved to, or None if unmapped

        Note:
            This may be called from a transport or timer thread, so
            implementations should be thread-safe and avoid blocking operations.
        """
        ...
