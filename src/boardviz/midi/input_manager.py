"""MIDI input with hot-plug support."""

import logging
import threading
from collections.abc import Callable

import mido

logger = logging.getLogger(__name__)


def pattern_filter(pattern: str) -> Callable[[str], bool]:
    """Port filter matching names that contain `pattern` (case-insensitive)."""
    needle = pattern.lower()
    return lambda port_name: needle in port_name.lower()


class MidiInputManager:
    """
    MIDI input manager with hot-plug support.

    Monitors for MIDI input ports matching a filter function and
    automatically connects/reconnects when devices are plugged/unplugged.
    Incoming messages are handed to the registered message callback, which
    runs in mido's I/O thread and should just feed the event pipeline.
    """

    def __init__(
        self,
        device_filter: Callable[[str], bool],
        poll_interval: float = 2.0,
        port_selector: Callable[[list[str]], str | None] | None = None,
    ):
        """
        Initialize MIDI input manager.

        Args:
            device_filter: Function that returns True if port name matches desired device
            poll_interval: How often to check for device changes (seconds)
            port_selector: Optional function to select best port from candidates.
                          If None, selects first matching port.
        """
        self._device_filter = device_filter
        self._poll_interval = poll_interval
        self._port_selector = port_selector
        self._running = False
        self._wakeup = threading.Event()
        self._monitor_thread: threading.Thread | None = None
        self._port: mido.ports.BaseInput | None = None
        self._port_lock = threading.Lock()
        self._no_device_warned = False
        self._message_callback: Callable[[mido.Message], None] | None = None
        self._on_connection_changed: Callable[[bool, str | None], None] | None = None

    @staticmethod
    def list_ports() -> list[str]:
        """List available MIDI input port names."""
        return mido.get_input_names()

    def on_message(self, callback: Callable[[mido.Message], None]) -> None:
        """
        Register callback for incoming MIDI messages.

        Callback is executed in mido's internal I/O thread - keep it fast!
        """
        self._message_callback = callback

    def on_connection_changed(self, callback: Callable[[bool, str | None], None]) -> None:
        """
        Register callback for connection state changes.

        Args:
            callback: Function that receives (is_connected: bool, port_name: str | None)
        """
        self._on_connection_changed = callback

    def start(self) -> None:
        """Start monitoring for MIDI input devices."""
        if self._running:
            logger.warning("MidiInputManager is already running")
            return

        self._running = True
        self._wakeup.clear()
        self._monitor_thread = threading.Thread(target=self._monitor_devices, daemon=True)
        self._monitor_thread.start()
        logger.debug("MidiInputManager started")

    def stop(self) -> None:
        """Stop monitoring and close the port."""
        self._running = False
        self._wakeup.set()

        with self._port_lock:
            if self._port:
                try:
                    self._port.close()
                except Exception as e:
                    logger.error(f"Error closing MIDI input port: {e}")
                self._port = None

        if self._monitor_thread and self._monitor_thread.is_alive():
            self._monitor_thread.join(timeout=1.0)

        logger.debug("MidiInputManager stopped")

    @property
    def is_connected(self) -> bool:
        """Check if a MIDI input is currently connected."""
        with self._port_lock:
            return self._port is not None

    @property
    def current_port(self) -> str | None:
        """Get currently connected port name."""
        with self._port_lock:
            return self._port.name if self._port else None

    def _find_matching_port(self, available_ports: set[str]) -> str | None:
        """Find the best available port matching the device filter."""
        matching_ports = sorted(p for p in available_ports if self._device_filter(p))
        if not matching_ports:
            return None
        if self._port_selector:
            return self._port_selector(matching_ports)
        return matching_ports[0]

    def _poll_once(self, last_available_ports: set[str]) -> set[str]:
        """Run one monitoring pass; returns the ports seen on this pass."""
        available_ports = set(self.list_ports())

        for port in available_ports - last_available_ports:
            logger.info(f"MIDI input port connected: {port}")
        for port in last_available_ports - available_ports:
            logger.info(f"MIDI input port disconnected: {port}")

        with self._port_lock:
            if self._port and self._port.name not in available_ports:
                logger.warning(f"MIDI input disconnected: {self._port.name}")
                try:
                    self._port.close()
                except Exception as e:
                    logger.debug(f"Ignoring error closing vanished port: {e}")
                self._port = None
                self._no_device_warned = False
                self._fire_connection_changed(False, None)

            if not self._port:
                port = self._find_matching_port(available_ports)
                if port:
                    logger.info(f"MIDI input detected: {port}")
                    self._connect_to_port(port)
                elif not self._no_device_warned:
                    logger.warning("No matching MIDI input device found")
                    self._no_device_warned = True

        return available_ports

    def _monitor_devices(self) -> None:
        """Monitor for device connection/disconnection."""
        logger.debug("Starting MIDI input device monitoring")
        last_available_ports: set[str] = set()

        while self._running:
            try:
                last_available_ports = self._poll_once(last_available_ports)
            except Exception as e:
                logger.error(f"Error in MIDI input monitoring: {e}")
            self._wakeup.wait(self._poll_interval)

    def _connect_to_port(self, port_name: str) -> None:
        """
        Connect to a MIDI port.

        Note: Should be called with _port_lock held.
        """
        try:
            self._port = mido.open_input(port_name, callback=self._midi_callback)
            logger.info(f"Connected to MIDI input: {port_name}")
            self._fire_connection_changed(True, port_name)
        except Exception as e:
            logger.error(f"Failed to connect to {port_name}: {e}")
            self._port = None

    def _fire_connection_changed(self, connected: bool, port_name: str | None) -> None:
        """Fire the connection callback in a separate thread to avoid blocking/deadlock."""
        if not self._on_connection_changed:
            return

        def fire_callback():
            try:
                self._on_connection_changed(connected, port_name)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

        threading.Thread(target=fire_callback, daemon=True).start()

    def _midi_callback(self, msg: mido.Message) -> None:
        """MIDI message callback - called from mido's internal I/O thread."""
        try:
            if self._message_callback:
                self._message_callback(msg)
        except Exception as e:
            logger.error(f"Error in MIDI input callback: {e}")

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop()
