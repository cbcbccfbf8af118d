"""Stream transport: reconnecting WebSocket client."""

from .client import StreamClient, next_backoff, parse_message

__all__ = ["StreamClient", "next_backoff", "parse_message"]
