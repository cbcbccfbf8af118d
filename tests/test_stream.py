"""Tests for the WebSocket stream client."""

import asyncio
import json
import threading
import time
from unittest.mock import AsyncMock, Mock, patch

import pytest
from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

from boardviz.protocols import StreamStatus
from boardviz.stream import StreamClient, next_backoff, parse_message

CC_MESSAGE = json.dumps({"type": "midi_like", "payload": {"type": "cc", "ch": 1, "controller": 7, "value": 64}})


class LocalStreamServer:
    """WebSocket server on an ephemeral localhost port, run in its own thread."""

    def __init__(self, handler):
        self._handler = handler
        self.connections = 0
        self.port = None
        self._ready = threading.Event()
        self._loop = None
        self._stop = None
        self._thread = threading.Thread(target=lambda: asyncio.run(self._main()), daemon=True)

    @property
    def url(self):
        return f"ws://127.0.0.1:{self.port}"

    def start(self):
        self._thread.start()
        assert self._ready.wait(5.0), "server did not start"
        return self

    def stop(self):
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._stop.set)
        self._thread.join(timeout=5.0)

    def wait_connections(self, count, timeout=5.0):
        deadline = time.monotonic() + timeout
        while self.connections < count:
            if time.monotonic() > deadline:
                return False
            time.sleep(0.01)
        return True

    async def _handle(self, ws):
        self.connections += 1
        await self._handler(ws)

    async def _main(self):
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        async with serve(self._handle, "127.0.0.1", 0) as server:
            self.port = server.sockets[0].getsockname()[1]
            self._ready.set()
            await self._stop.wait()


@pytest.fixture
def stream_server():
    """Factory starting local stream servers, stopped after the test."""
    servers = []

    def start(handler):
        server = LocalStreamServer(handler).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()


def status_recorder():
    statuses = []
    connected = threading.Event()

    def on_status(status):
        statuses.append(status)
        if status is StreamStatus.CONNECTED:
            connected.set()

    return statuses, connected, on_status


@pytest.mark.unit
class TestBackoff:
    """Test reconnect delay growth."""

    def test_doubles_until_capped(self):
        assert [next_backoff(n, 0.5, 4.0) for n in range(6)] == [0.5, 1.0, 2.0, 4.0, 4.0, 4.0]

    def test_cap_below_initial(self):
        assert next_backoff(0, 5.0, 1.0) == 1.0


@pytest.mark.unit
class TestParseMessage:
    """Test stream message parsing."""

    def test_event_message(self):
        payload = {"type": "cc", "ch": 1, "controller": 7, "value": 64}
        assert parse_message(json.dumps({"type": "midi_like", "payload": payload})) == payload

    def test_bytes_message(self):
        raw = json.dumps({"type": "midi_like", "payload": {"type": "noteon", "ch": 1, "d1": 54, "d2": 1}}).encode()
        assert parse_message(raw)["d1"] == 54

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2]",
            json.dumps({"type": "hello"}),
            json.dumps({"type": "midi_like"}),
            json.dumps({"type": "midi_like", "payload": [1, 2, 3]}),
        ],
    )
    def test_ignored_messages(self, raw):
        assert parse_message(raw) is None


@pytest.mark.unit
class TestStreamClient:
    """Test client message handling and status reporting."""

    def test_handle_forwards_payload(self):
        on_payload = Mock()
        client = StreamClient("ws://example.invalid", on_payload)

        client._handle(json.dumps({"type": "midi_like", "payload": {"type": "cc", "ch": 1, "controller": 7, "value": 1}}))
        client._handle(json.dumps({"type": "other"}))

        on_payload.assert_called_once_with({"type": "cc", "ch": 1, "controller": 7, "value": 1})

    def test_handle_contains_callback_errors(self):
        """Test a failing payload callback does not break the receive loop."""
        on_payload = Mock(side_effect=RuntimeError("boom"))
        client = StreamClient("ws://example.invalid", on_payload)

        client._handle(json.dumps({"type": "midi_like", "payload": {}}))

        on_payload.assert_called_once()

    def test_status_reported_once_per_change(self):
        on_status = Mock()
        client = StreamClient("ws://example.invalid", Mock(), on_status=on_status)

        client._set_status(StreamStatus.CONNECTING)
        client._set_status(StreamStatus.CONNECTING)
        client._set_status(StreamStatus.CONNECTED)

        assert [c.args[0] for c in on_status.call_args_list] == [StreamStatus.CONNECTING, StreamStatus.CONNECTED]
        assert client.status is StreamStatus.CONNECTED

    def test_status_callback_errors_contained(self):
        client = StreamClient("ws://example.invalid", Mock(), on_status=Mock(side_effect=RuntimeError("boom")))
        client._set_status(StreamStatus.ERROR)
        assert client.status is StreamStatus.ERROR

    def test_initially_closed(self):
        client = StreamClient("ws://example.invalid", Mock())
        assert client.status is StreamStatus.CLOSED
        assert client.is_running is False

    def test_close_without_close_frame_is_stale(self):
        """Test a connection dropped without a close frame reports STALE."""
        client = StreamClient("ws://example.invalid", Mock())
        client._running = True
        ws = Mock()
        ws.recv = AsyncMock(side_effect=ConnectionClosedError(None, None))

        asyncio.run(client._receive(ws))

        assert client.status is StreamStatus.STALE

    def test_clean_close_is_not_stale(self):
        """Test a normal close handshake is not reported as STALE."""
        client = StreamClient("ws://example.invalid", Mock())
        client._running = True
        ws = Mock()
        ws.recv = AsyncMock(side_effect=ConnectionClosedOK(Close(1000, ""), Close(1000, "")))

        asyncio.run(client._receive(ws))

        assert client.status is StreamStatus.CLOSED

    def test_receive_forwards_until_closed(self):
        """Test received messages are handed on until the connection closes."""
        on_payload = Mock()
        client = StreamClient("ws://example.invalid", on_payload)
        client._running = True
        ws = Mock()
        ws.recv = AsyncMock(side_effect=[CC_MESSAGE, CC_MESSAGE, ConnectionClosedOK(Close(1000, ""), None)])

        asyncio.run(client._receive(ws))

        assert on_payload.call_count == 2


@pytest.mark.integration
class TestStreamClientConnection:
    """Test the connection loop against an unreachable endpoint."""

    def test_unreachable_endpoint_reports_error_and_stops(self):
        """Test connection failures are reported, retried and never raised."""
        statuses = []
        errored = threading.Event()

        def on_status(status):
            statuses.append(status)
            if status is StreamStatus.ERROR:
                errored.set()

        client = StreamClient(
            "ws://127.0.0.1:1",
            Mock(),
            on_status=on_status,
            liveness_timeout=2.0,
            backoff_initial=0.05,
            backoff_max=0.1,
        )
        client.start()
        try:
            assert errored.wait(timeout=5.0)
        finally:
            client.stop(timeout=5.0)

        assert statuses[0] is StreamStatus.CONNECTING
        assert client.is_running is False
        assert client.status is StreamStatus.CLOSED


@pytest.mark.integration
class TestStreamClientLiveServer:
    """Test the connection loop against a local WebSocket server."""

    def test_idle_connection_stays_open(self, stream_server):
        """Test a silent but healthy server is kept well past the liveness timeout."""

        async def silent(ws):
            await ws.wait_closed()

        server = stream_server(silent)
        statuses, connected, on_status = status_recorder()
        client = StreamClient(server.url, Mock(), on_status=on_status, liveness_timeout=0.3)
        client.start()
        try:
            assert connected.wait(5.0)
            time.sleep(1.2)
            assert client.status is StreamStatus.CONNECTED
            assert server.connections == 1
            assert StreamStatus.STALE not in statuses
        finally:
            client.stop(timeout=5.0)

    def test_payloads_forwarded(self, stream_server):
        """Test event messages from the server reach the payload callback."""

        async def send_one(ws):
            await ws.send(json.dumps({"type": "hello"}))
            await ws.send(CC_MESSAGE)
            await ws.wait_closed()

        server = stream_server(send_one)
        received = threading.Event()
        on_payload = Mock(side_effect=lambda payload: received.set())
        client = StreamClient(server.url, on_payload, liveness_timeout=2.0)
        client.start()
        try:
            assert received.wait(5.0)
        finally:
            client.stop(timeout=5.0)

        on_payload.assert_called_once_with({"type": "cc", "ch": 1, "controller": 7, "value": 64})

    def test_reconnects_after_close_with_reset_backoff(self, stream_server):
        """Test the client reconnects after each close, starting backoff over every time."""

        async def hang_up(ws):
            await ws.close()

        server = stream_server(hang_up)
        client = StreamClient(server.url, Mock(), liveness_timeout=2.0, backoff_initial=0.01, backoff_max=0.05)
        with patch("boardviz.stream.client.next_backoff", wraps=next_backoff) as backoff:
            client.start()
            try:
                assert server.wait_connections(3)
            finally:
                client.stop(timeout=5.0)

        assert backoff.call_count >= 2
        assert all(c.args[0] == 0 for c in backoff.call_args_list)
        assert client.status is StreamStatus.CLOSED

    def test_backoff_grows_while_unreachable(self):
        """Test consecutive failures move through increasing attempts."""
        client = StreamClient("ws://127.0.0.1:1", Mock(), liveness_timeout=1.0, backoff_initial=0.01, backoff_max=0.02)
        with patch("boardviz.stream.client.next_backoff", wraps=next_backoff) as backoff:
            client.start()
            try:
                deadline = time.monotonic() + 5.0
                while backoff.call_count < 3 and time.monotonic() < deadline:
                    time.sleep(0.01)
            finally:
                client.stop(timeout=5.0)

        assert [c.args[0] for c in backoff.call_args_list[:3]] == [0, 1, 2]

    def test_stop_while_connected(self, stream_server):
        """Test stop() closes a live connection promptly."""

        async def silent(ws):
            await ws.wait_closed()

        server = stream_server(silent)
        statuses, connected, on_status = status_recorder()
        client = StreamClient(server.url, Mock(), on_status=on_status, liveness_timeout=2.0)
        client.start()
        assert connected.wait(5.0)

        client.stop(timeout=5.0)

        assert client.status is StreamStatus.CLOSED
        assert statuses[-1] is StreamStatus.CLOSED
        assert StreamStatus.STALE not in statuses
