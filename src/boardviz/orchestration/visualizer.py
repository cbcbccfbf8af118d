"""
Session orchestrator wiring transports, pipeline and diagram together.

The visualizer can run live (MIDI input and/or event stream) or headless
with only the recorder feeding it, which is how takes are replayed offline.
"""

import logging
from pathlib import Path

from boardviz.core import EventPipeline, Recorder, Scheduler, ThreadingScheduler, VisualStateEngine
from boardviz.exceptions import ConfigurationError
from boardviz.mapping import MappingResolver, MappingTable
from boardviz.midi import MidiInputManager, pattern_filter
from boardviz.models import AppConfig
from boardviz.protocols import StreamStatus
from boardviz.render import SvgDiagram
from boardviz.stream import StreamClient

logger = logging.getLogger(__name__)


class Visualizer:
    """
    Top-level session for the board visualizer.

    Architecture:
        Visualizer (this class)
        ├── Transports: MidiInputManager, StreamClient
        ├── Pipeline: EventPipeline -> MappingResolver -> VisualStateEngine
        ├── Recorder (pipeline interceptor)
        └── Diagram: SvgDiagram (render surface)

    Transports are optional and started by start(); everything else is
    ready as soon as the object is built.
    """

    def __init__(
        self,
        config: AppConfig,
        diagram: SvgDiagram,
        table: MappingTable,
        scheduler: Scheduler | None = None,
    ):
        self.config = config
        self.diagram = diagram
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or ThreadingScheduler()

        self.engine = VisualStateEngine(diagram, self.scheduler, pulse_ms=config.pulse_ms)
        self.resolver = MappingResolver(table)
        self.pipeline = EventPipeline(self.resolver, self.engine)
        self.recorder = Recorder(self.scheduler, dedup_window_ms=config.dedup_window_ms)
        self.recorder.install(self.pipeline)

        self.midi: MidiInputManager | None = None
        self.stream: StreamClient | None = None
        self._check_targets(table)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        diagram_path: Path | None = None,
        map_path: Path | None = None,
        scheduler: Scheduler | None = None,
    ) -> "Visualizer":
        """
        Build a visualizer from config, with optional path overrides.

        Raises:
            ConfigurationError: If no diagram is configured
            ConfigFileInvalidError / ConfigValidationError: For a bad mapping file
        """
        diagram_path = diagram_path or config.diagram_path
        if diagram_path is None:
            raise ConfigurationError(
                user_message="No controller diagram configured",
                technical_message="diagram_path is not set and no --diagram was given",
                recovery_hint="Pass --diagram PATH or set diagram_path in ~/.boardviz/config.json",
            )
        diagram = SvgDiagram.from_file(diagram_path)
        table = MappingTable.from_files(map_path or config.base_map_path, config.learned_map_path)
        return cls(config, diagram, table, scheduler)

    def _check_targets(self, table: MappingTable) -> None:
        missing = [e.target_id for e in table if not self.diagram.has_element(e.target_id)]
        if missing:
            logger.warning(f"{len(missing)} mapped targets are not in the diagram: {', '.join(missing[:10])}")

    def reload_mappings(self, table: MappingTable) -> None:
        """Swap the mapping table without touching visual state."""
        self.resolver.load(table)
        self._check_targets(table)

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self, midi: bool = True, stream: bool = True) -> None:
        """Start the requested transports."""
        if midi:
            self.midi = MidiInputManager(
                device_filter=pattern_filter(self.config.midi_input_pattern),
                poll_interval=self.config.midi_poll_interval,
            )
            self.midi.on_message(self.pipeline.consume_message)
            self.midi.on_connection_changed(self._on_midi_connection)
            self.midi.start()

        if stream and self.config.stream_url:
            self.stream = StreamClient(
                self.config.stream_url,
                self.pipeline.consume_payload,
                on_status=self._on_stream_status,
                liveness_timeout=self.config.stream_liveness_timeout,
                backoff_initial=self.config.stream_backoff_initial,
                backoff_max=self.config.stream_backoff_max,
            )
            self.stream.start()

        logger.info(f"Visualizer started (midi={midi}, stream={bool(self.stream)})")

    def shutdown(self) -> None:
        """Stop transports, playback and pending timers."""
        logger.info("Shutting down visualizer")
        if self.midi:
            self.midi.stop()
            self.midi = None
        if self.stream:
            self.stream.stop()
            self.stream = None
        self.recorder.stop_playback()
        self.engine.close()
        if self._owns_scheduler and isinstance(self.scheduler, ThreadingScheduler):
            self.scheduler.close()

    def _on_midi_connection(self, connected: bool, port_name: str | None) -> None:
        if connected:
            logger.info(f"MIDI input ready: {port_name}")
        else:
            logger.info("MIDI input lost, waiting for device")

    def _on_stream_status(self, status: StreamStatus) -> None:
        logger.info(f"Event stream {status.value}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
