"""MIDI decoding and input management."""

from .decoder import decode_bytes, decode_message, decode_payload
from .input_manager import MidiInputManager, pattern_filter

__all__ = [
    "MidiInputManager",
    "decode_bytes",
    "decode_message",
    "decode_payload",
    "pattern_filter",
]
