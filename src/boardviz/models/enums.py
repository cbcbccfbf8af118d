"""Enumerations for boardviz."""

from enum import Enum


class EventKind(str, Enum):
    """Canonical event kinds, valued by their wire names."""

    NOTE_ON = "noteon"
    NOTE_OFF = "noteoff"
    CONTROL_CHANGE = "cc"
    PITCH_BEND = "pitch"


class AnimationCategory(str, Enum):
    """How a mapped diagram element reacts to control changes."""

    LIT = "lit"  # Light the element, no movement
    SLIDE = "slide"  # Move along one axis (faders, crossfader)
    ROTATE = "rotate"  # Rotate around a center (knobs, jogs)


class RotationMode(str, Enum):
    """How control values are turned into a rotation angle."""

    ABSOLUTE = "absolute"  # Value maps onto the angle range
    ACCUMULATE = "accumulate"  # Successive values are relative steps


class Axis(str, Enum):
    """Diagram axis a slide animation moves along."""

    X = "x"
    Y = "y"


class EventOrigin(str, Enum):
    """Where an event entering the pipeline came from."""

    LIVE = "live"  # A transport adapter (MIDI, stream)
    PLAYBACK = "playback"  # Replayed from a take
