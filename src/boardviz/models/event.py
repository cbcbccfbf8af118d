"""Canonical controller event model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

from .enums import EventKind

DATA_MAX = 127
PITCH_BEND_CENTER = 8192
PITCH_BEND_MIN = -PITCH_BEND_CENTER
PITCH_BEND_MAX = PITCH_BEND_CENTER - 1


def make_event_key(kind: EventKind, channel: int, code: int | None) -> str:
    """
    Build the identity key used by mapping entries.

    Pitch bend has no per-entry code, so its key is "pitch:<channel>".

    Example:
        >>> make_event_key(EventKind.CONTROL_CHANGE, 1, 7)
        'cc:1:7'
    """
    if kind is EventKind.PITCH_BEND or code is None:
        return f"{kind.value}:{channel}"
    return f"{kind.value}:{channel}:{code}"


def parse_event_key(key: str) -> tuple[EventKind, int, int | None] | None:
    """
    Split an identity key back into (kind, channel, code).

    Returns:
        Decomposed key, or None if the key is malformed
    """
    parts = key.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        kind = EventKind(parts[0].lower())
        channel = int(parts[1])
        code = int(parts[2]) if len(parts) == 3 and parts[2] != "" else None
    except ValueError:
        return None
    if not 1 <= channel <= 16:
        return None
    if kind is not EventKind.PITCH_BEND and code is None:
        return None
    return kind, channel, code


def _clamp(value: Any, low: int, high: int) -> Any:
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return max(low, min(high, int(value)))


def _from_wire(payload: dict[str, Any]) -> dict[str, Any]:
    """Map the exchange shape ({type, ch, d1, d2, controller, value}) onto model fields."""
    kind = str(payload.get("type", "")).lower()
    code: Any = None
    value: Any = payload.get("value")

    if kind == EventKind.CONTROL_CHANGE.value:
        code = payload.get("controller", payload.get("d1"))
        if value is None:
            value = payload.get("d2")
    elif kind in (EventKind.NOTE_ON.value, EventKind.NOTE_OFF.value):
        code = payload.get("d1", payload.get("note"))
        if value is None:
            value = payload.get("d2", payload.get("velocity"))
    elif kind == EventKind.PITCH_BEND.value:
        lsb, msb = payload.get("d1"), payload.get("d2")
        # Raw data bytes win over the pre-computed value
        if isinstance(lsb, int) and isinstance(msb, int):
            value = (((msb & 0x7F) << 7) | (lsb & 0x7F)) - PITCH_BEND_CENTER
        elif value is None:
            value = 0

    return {"kind": kind, "channel": payload.get("ch"), "code": code, "value": value}


class CanonicalEvent(BaseModel):
    """
    The single normalized event shape every transport is translated into.

    Construct from fields or from the wire/exchange shape:

        >>> CanonicalEvent(kind=EventKind.CONTROL_CHANGE, channel=1, code=7, value=64)
        >>> CanonicalEvent.model_validate({"type": "cc", "ch": 1, "controller": 7, "value": 64})

    Values are clamped to the kind's range (0-127, or -8192..8191 for pitch
    bend) and a note-on with value 0 becomes a note-off. Serializing with
    model_dump() produces the wire shape.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    channel: int = Field(ge=1, le=16, description="MIDI channel (1-16)")
    code: int | None = Field(
        default=None, ge=0, le=DATA_MAX, description="Note or controller number (None for pitch bend)"
    )
    value: int = Field(description="Velocity / controller value, or signed pitch bend")

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "type" in data or "ch" in data:
            data = _from_wire(data)
        else:
            data = dict(data)

        try:
            kind = EventKind(data.get("kind"))
        except ValueError:
            return data  # Let field validation report the bad kind

        if kind is EventKind.PITCH_BEND:
            data["code"] = None
            data["value"] = _clamp(data.get("value"), PITCH_BEND_MIN, PITCH_BEND_MAX)
        else:
            data["value"] = _clamp(data.get("value"), 0, DATA_MAX)
            if kind is EventKind.NOTE_ON and data["value"] == 0:
                kind = EventKind.NOTE_OFF
        data["kind"] = kind
        return data

    @model_validator(mode="after")
    def _require_code(self) -> "CanonicalEvent":
        if self.kind is not EventKind.PITCH_BEND and self.code is None:
            raise ValueError(f"{self.kind.value} event requires a note/controller code")
        return self

    @model_serializer
    def _to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"type": self.kind.value, "ch": self.channel}
        if self.kind is EventKind.PITCH_BEND:
            raw = self.value + PITCH_BEND_CENTER
            wire.update(d1=raw & 0x7F, d2=raw >> 7, value=self.value)
        elif self.kind is EventKind.CONTROL_CHANGE:
            wire.update(controller=self.code, d1=self.code, d2=self.value, value=self.value)
        else:
            wire.update(d1=self.code, d2=self.value, value=self.value)
        return wire

    @classmethod
    def note_on(cls, channel: int, note: int, velocity: int) -> "CanonicalEvent":
        """Create a note-on (velocity 0 yields a note-off)."""
        return cls(kind=EventKind.NOTE_ON, channel=channel, code=note, value=velocity)

    @classmethod
    def note_off(cls, channel: int, note: int, velocity: int = 0) -> "CanonicalEvent":
        """Create a note-off."""
        return cls(kind=EventKind.NOTE_OFF, channel=channel, code=note, value=velocity)

    @classmethod
    def control_change(cls, channel: int, controller: int, value: int) -> "CanonicalEvent":
        """Create a control change."""
        return cls(kind=EventKind.CONTROL_CHANGE, channel=channel, code=controller, value=value)

    @classmethod
    def pitch_bend(cls, channel: int, value: int) -> "CanonicalEvent":
        """Create a pitch bend from a signed, re-centered value."""
        return cls(kind=EventKind.PITCH_BEND, channel=channel, value=value)

    @property
    def key(self) -> str:
        """Mapping identity key, e.g. 'cc:1:7'."""
        return make_event_key(self.kind, self.channel, self.code)

    @property
    def dedup_key(self) -> str:
        """Identity including the value, used to drop duplicate deliveries."""
        code = "" if self.code is None else self.code
        return f"{self.kind.value}|{self.channel}|{code}|{self.value}"

    def to_wire(self) -> dict[str, Any]:
        """Return the exchange shape ({type, ch, d1, d2, controller?, value})."""
        return self.model_dump()
