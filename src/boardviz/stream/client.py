"""Reconnecting WebSocket client for forwarded controller events.

A bridge process (for example one reading a controller over HID, or a MIDI
port on another machine) forwards events as JSON messages:

    {"type": "midi_like", "payload": {"type": "cc", "ch": 1, "controller": 7, "value": 64}}

Payloads are handed to a callback, normally EventPipeline.consume_payload.
The client runs its own asyncio loop in a daemon thread, so it can sit next
to the MIDI input manager's threads without the rest of the app being async.
"""

import asyncio
import json
import logging
import threading
from collections.abc import Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from boardviz.protocols import StreamStatus

logger = logging.getLogger(__name__)

MESSAGE_TYPE = "midi_like"


def next_backoff(attempt: int, initial: float, maximum: float) -> float:
    """
    Reconnect delay in seconds for the given attempt (0-based).

    Example:
        >>> [next_backoff(n, 0.5, 4.0) for n in range(5)]
        [0.5, 1.0, 2.0, 4.0, 4.0]
    """
    return min(initial * (2 ** attempt), maximum)


def parse_message(raw: str | bytes) -> dict[str, Any] | None:
    """
    Extract the event payload from a stream message.

    Returns:
        The payload dict, or None for other message types and malformed JSON
    """
    try:
        message = json.loads(raw)
    except ValueError:
        logger.debug(f"Ignoring non-JSON stream message: {raw!r}")
        return None
    if not isinstance(message, dict) or message.get("type") != MESSAGE_TYPE:
        return None
    payload = message.get("payload")
    return payload if isinstance(payload, dict) else None


class StreamClient:
    """
    WebSocket client with keepalive pings and capped exponential backoff.

    Liveness is checked with protocol-level pings every `liveness_timeout`
    seconds. A peer that does not answer a ping within `liveness_timeout`
    seconds is treated as stale and dropped; an idle but healthy connection
    stays open however long it goes without events.

    Every disconnect is followed by a retry after next_backoff(attempt)
    seconds; the attempt counter resets once a connection succeeds.
    Failures are reported through the status callback and the log, never
    raised.

    Example:
        ```python
        client = StreamClient("ws://localhost:8787", pipeline.consume_payload)
        client.start()
        ...
        client.stop()
        ```
    """

    def __init__(
        self,
        url: str,
        on_payload: Callable[[dict[str, Any]], Any],
        on_status: Callable[[StreamStatus], None] | None = None,
        liveness_timeout: float = 10.0,
        backoff_initial: float = 0.5,
        backoff_max: float = 15.0,
    ):
        self.url = url
        self._on_payload = on_payload
        self._on_status = on_status
        self._liveness_timeout = liveness_timeout
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max

        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._ws: Any = None
        self._running = False
        self.status: StreamStatus = StreamStatus.CLOSED

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self) -> None:
        """Start the client thread."""
        if self._running:
            logger.warning("StreamClient is already running")
            return
        self._running = True
        self._thread = threading.Thread(target=self._thread_main, name="stream-client", daemon=True)
        self._thread.start()
        logger.debug(f"StreamClient started for {self.url}")

    def stop(self, timeout: float = 2.0) -> None:
        """Close the connection and stop reconnecting."""
        self._running = False
        loop = self._loop
        if loop is not None and not loop.is_closed():
            try:
                loop.call_soon_threadsafe(self._request_stop)
            except RuntimeError:
                pass  # Loop already finished
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.debug("StreamClient stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def _request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._ws is not None:
            asyncio.ensure_future(self._ws.close())

    def _thread_main(self) -> None:
        try:
            asyncio.run(self._run())
        except Exception as e:
            logger.error(f"Stream client loop crashed: {e}", exc_info=True)
        finally:
            self._loop = None

    # =================================================================
    # Connection loop
    # =================================================================

    async def _run(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        attempt = 0

        while self._running:
            self._set_status(StreamStatus.CONNECTING)
            try:
                async with websockets.connect(
                    self.url,
                    open_timeout=self._liveness_timeout,
                    ping_interval=self._liveness_timeout,
                    ping_timeout=self._liveness_timeout,
                ) as ws:
                    self._ws = ws
                    self._set_status(StreamStatus.CONNECTED)
                    logger.info(f"Connected to event stream {self.url}")
                    attempt = 0
                    await self._receive(ws)
            except (OSError, TimeoutError, WebSocketException) as e:
                if self._running:
                    logger.warning(f"Event stream {self.url} unavailable: {e}")
                    self._set_status(StreamStatus.ERROR)
            finally:
                self._ws = None

            if not self._running:
                break
            self._set_status(StreamStatus.CLOSED)
            delay = next_backoff(attempt, self._backoff_initial, self._backoff_max)
            attempt += 1
            logger.debug(f"Reconnecting to {self.url} in {delay:.1f}s (attempt {attempt})")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except TimeoutError:
                pass

        self._set_status(StreamStatus.CLOSED)

    async def _receive(self, ws: Any) -> None:
        """Pump messages until the connection closes."""
        while self._running:
            try:
                raw = await ws.recv()
            except ConnectionClosed as e:
                if e.rcvd is None and self._running:
                    # No close frame from the peer: keepalive timeout or dropped link
                    logger.warning(f"Event stream {self.url} lost: {e}")
                    self._set_status(StreamStatus.STALE)
                else:
                    logger.info(f"Event stream {self.url} closed: {e}")
                return
            self._handle(raw)

    def _handle(self, raw: str | bytes) -> None:
        payload = parse_message(raw)
        if payload is None:
            return
        try:
            self._on_payload(payload)
        except Exception as e:
            logger.error(f"Error handling stream payload {payload!r}: {e}", exc_info=True)

    def _set_status(self, status: StreamStatus) -> None:
        if status is self.status:
            return
        self.status = status
        if self._on_status is None:
            return
        try:
            self._on_status(status)
        except Exception as e:
            logger.error(f"Error in stream status callback: {e}")
