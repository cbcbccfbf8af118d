"""Recorded session (take) models."""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from boardviz.exceptions import TakeLoadError

from .event import CanonicalEvent

TAKE_FORMAT_VERSION = 1


class RecordedEvent(BaseModel):
    """A canonical event stamped with its offset from the start of recording."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    offset_ms: float = Field(alias="t", description="Milliseconds since recording started")
    event: CanonicalEvent = Field(alias="info")


class Take(BaseModel):
    """
    An exported recording: an ordered, immutable sequence of recorded events.

    Serialized as::

        {"version": 1, "speed": 1.0, "events": [{"t": 0.0, "info": {...}}, ...]}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int = Field(default=TAKE_FORMAT_VERSION)
    speed: float = Field(default=1.0, gt=0, description="Playback speed factor")
    events: tuple[RecordedEvent, ...]

    @property
    def duration_ms(self) -> float:
        """Offset of the last event (0 for an empty take)."""
        return self.events[-1].offset_ms if self.events else 0.0

    def to_json(self, indent: int = 2) -> str:
        """Serialize to the take export format."""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_data(cls, data: str | bytes | dict[str, Any], source: str | None = None) -> "Take":
        """
        Parse a take from JSON text or an already-decoded object.

        Args:
            data: JSON text/bytes, or a dict in the export format
            source: Optional description (e.g. file path) for error messages

        Returns:
            Validated Take

        Raises:
            TakeLoadError: If the data is not JSON or lacks a valid event sequence
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except ValueError as e:
                raise TakeLoadError(f"invalid JSON ({e})", source) from e

        if not isinstance(data, dict):
            raise TakeLoadError("expected a JSON object", source)
        if not isinstance(data.get("events"), list):
            raise TakeLoadError("missing 'events' list", source)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(loc) for loc in first.get("loc", ()))
            raise TakeLoadError(f"{where}: {first.get('msg', 'invalid value')}", source) from e
