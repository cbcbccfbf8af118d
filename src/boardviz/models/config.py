"""Application configuration model."""

from pathlib import Path

from pydantic import BaseModel, Field, field_serializer

from boardviz.utils.persistence import PydanticPersistence

DEFAULT_HOME = Path.home() / ".boardviz"


class AppConfig(BaseModel):
    """Application configuration and settings."""

    # Diagram and mappings
    diagram_path: Path | None = Field(default=None, description="SVG diagram of the controller")
    base_map_path: Path | None = Field(default=None, description="Base mapping definition (JSON)")
    learned_map_path: Path = Field(
        default_factory=lambda: DEFAULT_HOME / "learned.json",
        description="Locally learned mapping overrides (JSON)",
    )

    # MIDI settings
    midi_input_pattern: str = Field(
        default="DDJ-FLX6", description="Substring a MIDI input port name must contain"
    )
    midi_poll_interval: float = Field(
        default=2.0, gt=0, description="How often to check for MIDI device changes (seconds)"
    )

    # Stream transport
    stream_url: str | None = Field(
        default="ws://localhost:8787", description="WebSocket URL forwarding controller events"
    )
    stream_liveness_timeout: float = Field(
        default=10.0, gt=0, description="Keepalive ping interval and reply timeout for the stream (seconds)"
    )
    stream_backoff_initial: float = Field(
        default=0.5, gt=0, description="First reconnect delay (seconds)"
    )
    stream_backoff_max: float = Field(
        default=15.0, gt=0, description="Upper bound for reconnect delay (seconds)"
    )

    # Animation and recording
    pulse_ms: float = Field(default=120.0, gt=0, description="How long a note lights its target")
    dedup_window_ms: float = Field(
        default=6.0, ge=0, description="Identical events closer than this are recorded once"
    )

    @field_serializer("diagram_path", "base_map_path", "learned_map_path")
    def serialize_path(self, path: Path | None) -> str | None:
        """Serialize Path to string."""
        return str(path) if path is not None else None

    @staticmethod
    def default_path() -> Path:
        """Default config file location."""
        return DEFAULT_HOME / "config.json"

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "AppConfig":
        """
        Load config from file or return default.

        Args:
            path: Path to config file. If None, uses ~/.boardviz/config.json.

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        return PydanticPersistence.load_json_or_default(path or cls.default_path(), cls)

    def save(self, path: Path | None = None) -> None:
        """Save config to file."""
        PydanticPersistence.save_json(self, path or self.default_path())
