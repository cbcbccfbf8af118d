"""Transport status events.

Connection states reported by the WebSocket stream client.
"""

from enum import Enum


class StreamStatus(str, Enum):
    """Connection states reported by the stream client."""

    CONNECTING = "connecting"  # Opening a connection
    CONNECTED = "connected"  # Handshake complete, receiving
    STALE = "stale"  # Peer stopped answering keepalive pings, forcing reconnect
    CLOSED = "closed"  # Connection closed, will retry unless stopped
    ERROR = "error"  # Connect or receive failed, will retry unless stopped

