"""Mapping entry models binding controller events to diagram elements.

Mapping files are JSON lists of flat objects:

    [
      {"key": "cc:1:7", "target": "fader1", "name": "Ch1 Fader",
       "animation": "slide", "axis": "y", "min": 0, "max": 140},
      {"type": "cc", "ch": 1, "code": 16, "target": "knob_trim_1",
       "animation": "rotate", "angleMin": -135, "angleMax": 135,
       "mode": "absolute", "pointer": "knob_trim_1_ptr"}
    ]

Animation attributes may also be given nested under an "animation" object.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_serializer, model_validator

from .enums import AnimationCategory, Axis, EventKind, RotationMode
from .event import CanonicalEvent, make_event_key, parse_event_key

# Flat definition attribute -> nested config field
_ANIMATION_ATTRS = {
    "animation": "category",
    "category": "category",
    "axis": "axis",
    "min": "range_min",
    "max": "range_max",
    "range_min": "range_min",
    "range_max": "range_max",
    "pointer": "pointer",
}
_ROTATION_ATTRS = {
    "angleMin": "angle_min",
    "angleMax": "angle_max",
    "angleOffset": "angle_offset",
    "angle_min": "angle_min",
    "angle_max": "angle_max",
    "angle_offset": "angle_offset",
    "mode": "mode",
    "center": "center",
    "maxStep": "max_step",
    "max_step": "max_step",
}


class RotationConfig(BaseModel):
    """Rotation bounds and mode for knob-like elements."""

    model_config = ConfigDict(frozen=True)

    angle_min: float = Field(default=-135.0, description="Angle at value 0 (degrees)")
    angle_max: float = Field(default=135.0, description="Angle at value 127 (degrees)")
    angle_offset: float = Field(default=0.0, description="Added to every computed angle")
    mode: RotationMode = Field(default=RotationMode.ABSOLUTE, description="Absolute or accumulate")
    center: tuple[float, float] | None = Field(
        default=None, description="Explicit rotation center, overrides diagram geometry"
    )
    max_step: int = Field(
        default=16, ge=1, le=127, description="Largest raw step accepted in accumulate mode"
    )

    @property
    def degrees_per_step(self) -> float:
        """Degrees represented by one raw value step."""
        return (self.angle_max - self.angle_min) / 127


class AnimationConfig(BaseModel):
    """How a mapped element is animated."""

    model_config = ConfigDict(frozen=True)

    category: AnimationCategory = Field(default=AnimationCategory.LIT)
    axis: Axis = Field(default=Axis.Y, description="Axis for slide animations")
    range_min: float = Field(default=0.0, description="Axis position at value 0")
    range_max: float = Field(default=140.0, description="Axis position at value 127")
    pointer: str | None = Field(
        default=None, description="Child pointer element whose box center anchors rotation"
    )
    rotation: RotationConfig = Field(default_factory=RotationConfig)


class MappingEntry(BaseModel):
    """
    Rule binding a canonical event identity to a diagram target.

    An entry either declares a `key` ("kind:channel:code") or is matched
    structurally on its decomposed `kind` / `channel` / `code` fields.
    """

    model_config = ConfigDict(frozen=True)

    key: str | None = Field(default=None, description="Identity key, e.g. 'cc:1:7'")
    kind: EventKind | None = None
    channel: int | None = Field(default=None, ge=1, le=16)
    code: int | None = Field(default=None, ge=0, le=127)
    target_id: str = Field(min_length=1, description="Diagram element id")
    display_name: str | None = Field(default=None, description="Human readable control name")
    animation: AnimationConfig = Field(default_factory=AnimationConfig)

    @model_validator(mode="before")
    @classmethod
    def _from_definition(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        renames = {"type": "kind", "ch": "channel", "target": "target_id", "name": "display_name"}
        for source, field in renames.items():
            if source in data:
                data.setdefault(field, data.pop(source))

        if isinstance(data.get("kind"), str):
            data["kind"] = data["kind"].lower()

        # Flat animation attributes are gathered into the nested config
        if not isinstance(data.get("animation"), (dict, AnimationConfig)):
            animation: dict[str, Any] = {}
            rotation: dict[str, Any] = {}
            for attr, field in _ANIMATION_ATTRS.items():
                if attr in data:
                    animation[field] = data.pop(attr)
            for attr, field in _ROTATION_ATTRS.items():
                if attr in data:
                    rotation[field] = data.pop(attr)
            if rotation:
                animation["rotation"] = rotation
            if isinstance(animation.get("category"), str):
                animation["category"] = animation["category"].lower()
            data["animation"] = animation

        key = data.get("key")
        if isinstance(key, str):
            parsed = parse_event_key(key)
            if parsed is None:
                raise ValueError(f"Malformed mapping key '{key}' (expected 'kind:channel:code')")
            kind, channel, code = parsed
            data["key"] = make_event_key(kind, channel, code)
            data.setdefault("kind", kind)
            data.setdefault("channel", channel)
            data.setdefault("code", code)
        return data

    @model_serializer
    def _to_definition(self) -> dict[str, Any]:
        definition: dict[str, Any] = {}
        if self.key is not None:
            definition["key"] = self.key
        if self.kind is not None:
            definition["type"] = self.kind.value
        if self.channel is not None:
            definition["ch"] = self.channel
        if self.code is not None:
            definition["code"] = self.code
        definition["target"] = self.target_id
        if self.display_name is not None:
            definition["name"] = self.display_name

        anim = self.animation
        rot = anim.rotation
        definition["animation"] = anim.category.value
        if anim.category is AnimationCategory.SLIDE:
            definition.update(axis=anim.axis.value, min=anim.range_min, max=anim.range_max)
        elif anim.category is AnimationCategory.ROTATE:
            definition.update(
                angleMin=rot.angle_min,
                angleMax=rot.angle_max,
                angleOffset=rot.angle_offset,
                mode=rot.mode.value,
                maxStep=rot.max_step,
            )
            if rot.center is not None:
                definition["center"] = list(rot.center)
            if anim.pointer is not None:
                definition["pointer"] = anim.pointer
        return definition

    @property
    def identity_key(self) -> str | None:
        """Declared key, or one synthesized from kind/channel/code when possible."""
        if self.key is not None:
            return self.key
        if self.kind is None or self.channel is None:
            return None
        if self.kind is not EventKind.PITCH_BEND and self.code is None:
            return None
        return make_event_key(self.kind, self.channel, self.code)

    def matches_fields(self, event: CanonicalEvent) -> bool:
        """Structural match on decomposed fields (used for keyless entries)."""
        return (
            self.kind is event.kind
            and self.channel == event.channel
            and self.code == event.code
        )

    @property
    def label(self) -> str:
        """Display name, falling back to the target id."""
        return self.display_name or self.target_id


class MappingDocument(RootModel[list[MappingEntry]]):
    """A mapping definition file: an ordered list of entries."""

    root: list[MappingEntry] = Field(default_factory=list)
