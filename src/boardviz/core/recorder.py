"""Session capture and replay at the pipeline ingress."""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from boardviz.exceptions import TakeLoadError
from boardviz.models import CanonicalEvent, EventOrigin, RecordedEvent, Take
from boardviz.utils import PydanticPersistence

from .scheduler import Scheduler, TimerHandle

if TYPE_CHECKING:
    from .pipeline import EventPipeline

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW_MS = 6.0


class Recorder:
    """
    Records canonical events flowing through a pipeline and replays takes.

    Installed as a pipeline interceptor, the recorder sees every event
    before it is resolved. While recording, each live event is stored with
    its offset from start(). Identical events (same kind, channel, code and
    value) arriving within the dedup window are captured once, which absorbs
    the same control reaching us over two transports.

    Playback feeds a take back through the same pipeline with origin
    PLAYBACK. Those events are never recorded, so replaying while recording
    does not capture the replay.

    Recording and playback are independent: either, both or neither may
    be active.

    Example:
        ```python
        recorder = Recorder(scheduler)
        recorder.install(pipeline)
        recorder.start()
        ...
        recorder.stop()
        recorder.save(Path("take.json"))
        recorder.play(speed=2.0, loop=True)
        ```
    """

    def __init__(self, scheduler: Scheduler, dedup_window_ms: float = DEFAULT_DEDUP_WINDOW_MS):
        self._scheduler = scheduler
        self._lock = threading.RLock()
        self._pipeline: "EventPipeline | None" = None

        # Capture
        self._recording = False
        self._started_at = 0.0
        self._dedup_window_ms = dedup_window_ms
        self._events: list[RecordedEvent] = []
        self._recent: dict[str, float] = {}

        # Playback
        self.speed = 1.0
        self._play_timers: list[TimerHandle] = []
        self._pending = 0
        self._generation = 0

    # =================================================================
    # Installation
    # =================================================================

    def install(self, pipeline: "EventPipeline") -> None:
        """Tap the pipeline ingress; playback is fed back into it."""
        if self._pipeline is pipeline:
            return
        if self._pipeline is not None:
            self.uninstall()
        pipeline.add_interceptor(self)
        self._pipeline = pipeline
        logger.info("Recorder installed")

    def uninstall(self) -> None:
        """Detach from the pipeline (stops any playback)."""
        self.stop_playback()
        if self._pipeline is not None:
            self._pipeline.remove_interceptor(self)
            self._pipeline = None
            logger.info("Recorder uninstalled")

    def intercept(self, event: CanonicalEvent, origin: EventOrigin) -> None:
        self.record(event, origin)

    # =================================================================
    # Capture
    # =================================================================

    @property
    def is_recording(self) -> bool:
        return self._recording

    def start(self, dedup_window_ms: float | None = None) -> None:
        """Clear the buffer and begin capturing."""
        with self._lock:
            self._events.clear()
            self._recent.clear()
            if dedup_window_ms is not None:
                self._dedup_window_ms = dedup_window_ms
            self._started_at = self._scheduler.now()
            self._recording = True
        logger.info(f"Recording (dedup window {self._dedup_window_ms}ms)")

    def record(self, event: CanonicalEvent, origin: EventOrigin = EventOrigin.LIVE) -> bool:
        """
        Capture one event if recording.

        Returns:
            True if the event was appended to the buffer
        """
        if origin is EventOrigin.PLAYBACK:
            return False
        with self._lock:
            if not self._recording:
                return False
            now = self._scheduler.now()
            key = event.dedup_key
            last = self._recent.get(key)
            if last is not None and now - last < self._dedup_window_ms:
                logger.debug(f"Dropping duplicate {key} ({now - last:.1f}ms after previous)")
                return False
            self._recent[key] = now
            self._events.append(RecordedEvent(offset_ms=now - self._started_at, event=event))
            return True

    def stop(self) -> list[RecordedEvent]:
        """Stop capturing; returns the captured events."""
        with self._lock:
            self._recording = False
            events = list(self._events)
        logger.info(f"Recording stopped, {len(events)} events")
        return events

    def clear(self) -> None:
        """Drop all captured events."""
        with self._lock:
            self._events.clear()
            self._recent.clear()
        logger.info("Recording buffer cleared")

    @property
    def events(self) -> list[RecordedEvent]:
        """Copy of the captured (or loaded) events."""
        with self._lock:
            return list(self._events)

    # =================================================================
    # Takes
    # =================================================================

    def take(self) -> Take:
        """Snapshot the buffer as an immutable take."""
        with self._lock:
            return Take(speed=self.speed, events=tuple(self._events))

    def export_take(self) -> str:
        """Serialize the buffer in the take export format."""
        return self.take().to_json()

    def load_take(self, data: str | bytes | dict[str, Any] | Take, source: str | None = None) -> Take:
        """
        Replace the buffer with a take.

        Raises:
            TakeLoadError: If the data is not a valid take (buffer unchanged)
        """
        take = data if isinstance(data, Take) else Take.from_data(data, source)
        with self._lock:
            self._events = list(take.events)
            self._recent.clear()
            self.speed = take.speed
        logger.info(f"Loaded take with {len(take.events)} events")
        return take

    def save(self, path: Path) -> None:
        """Write the buffer to a take file."""
        PydanticPersistence.save_json(self.take(), path, by_alias=True)
        logger.info(f"Saved take to {path}")

    def load(self, path: Path) -> Take:
        """
        Load a take file into the buffer.

        Raises:
            TakeLoadError: If the file is unreadable or not a valid take
        """
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise TakeLoadError(str(e), str(path)) from e
        return self.load_take(text, source=str(path))

    # =================================================================
    # Playback
    # =================================================================

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._pending > 0

    def play(
        self,
        speed: float | None = None,
        loop: bool = False,
        on_event: Callable[[CanonicalEvent, int], None] | None = None,
    ) -> bool:
        """
        Replay the buffer through the pipeline.

        Each event fires `offset_ms / speed` after playback starts. With
        `loop`, the take starts over once the last event has fired, after
        its scaled duration again (at least 1ms).

        Args:
            speed: Speed factor (default: the take's speed)
            loop: Repeat until stop_playback()
            on_event: Called with (event, index) before each event is consumed

        Returns:
            True if playback was scheduled

        Raises:
            ValueError: If speed is not positive
        """
        if speed is None:
            speed = self.speed
        if speed <= 0:
            raise ValueError(f"Playback speed must be positive, got {speed}")
        if self._pipeline is None:
            logger.warning("Recorder not installed, cannot play")
            return False

        self.stop_playback()
        with self._lock:
            events = list(self._events)
            self.speed = speed
        if not events:
            logger.warning("Nothing to play")
            return False

        self._schedule(events, speed, loop, on_event)
        logger.info(f"Playing {len(events)} events (speed {speed}x, loop={loop})")
        return True

    def _schedule(
        self,
        events: list[RecordedEvent],
        speed: float,
        loop: bool,
        on_event: Callable[[CanonicalEvent, int], None] | None,
    ) -> None:
        generation = self._generation
        last_index = len(events) - 1
        duration = events[-1].offset_ms / speed

        def fire(index: int, recorded: RecordedEvent) -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self._pending -= 1
            self._replay(recorded.event, index, on_event)
            if loop and index == last_index:
                with self._lock:
                    if generation != self._generation:
                        return
                    self._pending += 1
                    self._play_timers = [self._scheduler.call_later(max(duration, 1.0), restart)]

        def restart() -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self._pending -= 1
                self._schedule(events, speed, loop, on_event)

        with self._lock:
            for index, recorded in enumerate(events):
                delay = max(0.0, recorded.offset_ms / speed)
                self._pending += 1
                self._play_timers.append(
                    self._scheduler.call_later(delay, lambda i=index, r=recorded: fire(i, r))
                )

    def _replay(
        self,
        event: CanonicalEvent,
        index: int,
        on_event: Callable[[CanonicalEvent, int], None] | None,
    ) -> None:
        try:
            if on_event is not None:
                on_event(event, index)
        except Exception as e:
            logger.error(f"Error in playback callback: {e}", exc_info=True)
        pipeline = self._pipeline
        if pipeline is not None:
            pipeline.consume(event, EventOrigin.PLAYBACK)

    def stop_playback(self) -> None:
        """Cancel every pending playback timer."""
        with self._lock:
            self._generation += 1
            timers, self._play_timers = self._play_timers, []
            self._pending = 0
        for timer in timers:
            timer.cancel()
        if timers:
            logger.info(f"Playback stopped ({len(timers)} timers cancelled)")
