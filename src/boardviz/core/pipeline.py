"""The single event ingress: decode, intercept, resolve, animate, notify."""

import logging
import threading
from collections.abc import Sequence
from typing import Any

import mido

from boardviz.mapping import MappingResolver
from boardviz.midi.decoder import decode_bytes, decode_message, decode_payload
from boardviz.models import CanonicalEvent, EventOrigin, MappingEntry
from boardviz.protocols import EventInterceptor, EventObserver
from boardviz.utils import ObserverManager

from .visual_state import VisualStateEngine

logger = logging.getLogger(__name__)


class EventPipeline:
    """
    Serialized ingress for canonical events from every transport.

    Each event runs to completion under a re-entrant lock:
    interceptors (recorder capture) -> resolver -> visual state engine ->
    observers. Failures at any stage are logged; they never propagate to the
    caller, so a transport thread is never taken down by a bad event.

    Example:
        ```python
        pipeline = EventPipeline(MappingResolver(table), engine)
        midi.on_message(lambda msg: pipeline.consume_message(msg))
        ```
    """

    def __init__(self, resolver: MappingResolver, engine: VisualStateEngine):
        self.resolver = resolver
        self.engine = engine
        self._lock = threading.RLock()
        self._interceptors: list[EventInterceptor] = []
        self._observers = ObserverManager[EventObserver](observer_type_name="pipeline")
        self.consumed = 0
        self.unmapped = 0

    # =================================================================
    # Registration
    # =================================================================

    def add_interceptor(self, interceptor: EventInterceptor) -> None:
        """Tap the ingress ahead of resolution (idempotent)."""
        with self._lock:
            if interceptor not in self._interceptors:
                self._interceptors.append(interceptor)

    def remove_interceptor(self, interceptor: EventInterceptor) -> None:
        with self._lock:
            if interceptor in self._interceptors:
                self._interceptors.remove(interceptor)

    def register_observer(self, observer: EventObserver) -> None:
        """Register an observer for processed events."""
        self._observers.register(observer)

    def unregister_observer(self, observer: EventObserver) -> None:
        self._observers.unregister(observer)

    # =================================================================
    # Ingress
    # =================================================================

    def consume(self, event: CanonicalEvent, origin: EventOrigin = EventOrigin.LIVE) -> MappingEntry | None:
        """
        Process one canonical event.

        Args:
            event: The event to process
            origin: LIVE for transport input, PLAYBACK for replayed takes

        Returns:
            The mapping entry the event resolved to, or None
        """
        with self._lock:
            self.consumed += 1

            for interceptor in list(self._interceptors):
                try:
                    interceptor.intercept(event, origin)
                except Exception as e:
                    logger.error(f"Error in interceptor {interceptor}: {e}", exc_info=True)

            entry: MappingEntry | None = None
            try:
                entry = self.resolver.lookup(event)
            except Exception as e:
                logger.error(f"Error resolving {event.key}: {e}", exc_info=True)

            if entry is None:
                self.unmapped += 1
                logger.debug(f"Unmapped event {event.key} value={event.value}")
            else:
                try:
                    self.engine.apply(event, entry)
                except Exception as e:
                    logger.error(f"Error animating {entry.target_id} for {event.key}: {e}", exc_info=True)

            self._observers.notify("on_pipeline_event", event, entry)
            return entry

    def consume_bytes(self, data: Sequence[int], origin: EventOrigin = EventOrigin.LIVE) -> MappingEntry | None:
        """Decode a raw status/data byte message and process it."""
        event = decode_bytes(data)
        if event is None:
            return None
        return self.consume(event, origin)

    def consume_message(self, msg: mido.Message, origin: EventOrigin = EventOrigin.LIVE) -> MappingEntry | None:
        """Decode a mido message from an input port and process it."""
        event = decode_message(msg)
        if event is None:
            return None
        return self.consume(event, origin)

    def consume_payload(self, payload: Any, origin: EventOrigin = EventOrigin.LIVE) -> MappingEntry | None:
        """Decode a stream payload in the exchange shape and process it."""
        event = decode_payload(payload)
        if event is None:
            return None
        return self.consume(event, origin)
