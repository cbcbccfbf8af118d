"""Data models for boardviz."""

from .config import AppConfig
from .enums import AnimationCategory, Axis, EventKind, EventOrigin, RotationMode
from .event import CanonicalEvent, make_event_key, parse_event_key
from .mapping import AnimationConfig, MappingDocument, MappingEntry, RotationConfig
from .take import RecordedEvent, Take

__all__ = [
    "AppConfig",
    # Events
    "CanonicalEvent",
    "make_event_key",
    "parse_event_key",
    # Mapping
    "AnimationConfig",
    "MappingDocument",
    "MappingEntry",
    "RotationConfig",
    # Takes
    "RecordedEvent",
    "Take",
    # Enums
    "AnimationCategory",
    "Axis",
    "EventKind",
    "EventOrigin",
    "RotationMode",
]
