"""Tests for the session orchestrator."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from boardviz.core import ThreadingScheduler, VirtualScheduler
from boardviz.exceptions import ConfigurationError, ErrorContext
from boardviz.mapping import MappingTable
from boardviz.models import AppConfig, CanonicalEvent, MappingEntry
from boardviz.orchestration import Visualizer


@pytest.fixture
def config(tmp_path: Path, board_svg_file: Path, mapping_file: Path) -> AppConfig:
    return AppConfig(
        diagram_path=board_svg_file,
        base_map_path=mapping_file,
        learned_map_path=tmp_path / "learned.json",
        stream_url=None,
        pulse_ms=50,
    )


@pytest.mark.unit
class TestVisualizer:
    """Test building and wiring a visualizer."""

    def test_from_config(self, config):
        """Test the diagram and merged table come from the config."""
        scheduler = VirtualScheduler()
        visualizer = Visualizer.from_config(config, scheduler=scheduler)

        assert len(visualizer.resolver) == 6
        visualizer.pipeline.consume(CanonicalEvent.note_on(1, 54, 1))
        assert visualizer.diagram.element("pad_1").get("class") == "pad lit"

        scheduler.advance(50)
        assert visualizer.diagram.element("pad_1").get("class") == "pad"

    def test_learned_overrides_applied(self, config):
        config.learned_map_path.write_text(
            json.dumps([{"key": "noteon:1:54", "target": "fader1"}]), encoding="utf-8"
        )
        visualizer = Visualizer.from_config(config, scheduler=VirtualScheduler())
        entry = visualizer.pipeline.consume(CanonicalEvent.note_on(1, 54, 1))
        assert entry.target_id == "fader1"
        assert entry.label == "Cue"

    def test_missing_diagram(self, config):
        config.diagram_path = None
        with pytest.raises(ConfigurationError):
            Visualizer.from_config(config)

    def test_diagram_override(self, config, tmp_path: Path):
        other = tmp_path / "other.svg"
        other.write_text('<svg xmlns="http://www.w3.org/2000/svg"><rect id="solo"/></svg>', encoding="utf-8")
        visualizer = Visualizer.from_config(config, diagram_path=other, scheduler=VirtualScheduler())
        assert visualizer.diagram.element_ids == ["solo"]

    def test_recorder_installed(self, config):
        """Test the recorder captures from the visualizer's pipeline."""
        visualizer = Visualizer.from_config(config, scheduler=VirtualScheduler())
        visualizer.recorder.start()
        visualizer.pipeline.consume_bytes([0xB0, 7, 10])
        assert len(visualizer.recorder.events) == 1

    def test_reload_mappings(self, config):
        """Test swapping the table keeps existing visual state."""
        visualizer = Visualizer.from_config(config, scheduler=VirtualScheduler())
        visualizer.pipeline.consume(CanonicalEvent.control_change(1, 7, 127))

        visualizer.reload_mappings(MappingTable([MappingEntry.model_validate({"key": "cc:1:8", "target": "xfader"})]))

        assert visualizer.pipeline.consume(CanonicalEvent.control_change(1, 7, 0)) is None
        assert visualizer.pipeline.consume(CanonicalEvent.control_change(1, 8, 1)).target_id == "xfader"
        assert visualizer.diagram.element("fader1").get("y") == "140.0"

    def test_start_without_transports(self, config):
        with Visualizer.from_config(config, scheduler=VirtualScheduler()) as visualizer:
            visualizer.start(midi=False, stream=False)
            assert visualizer.midi is None
            assert visualizer.stream is None

    @patch("boardviz.orchestration.visualizer.MidiInputManager")
    def test_start_midi(self, mock_manager_cls, config):
        """Test MIDI input is wired to the pipeline and stopped on shutdown."""
        visualizer = Visualizer.from_config(config, scheduler=VirtualScheduler())
        visualizer.start(midi=True, stream=False)

        manager = mock_manager_cls.return_value
        manager.on_message.assert_called_once_with(visualizer.pipeline.consume_message)
        manager.start.assert_called_once()

        visualizer.shutdown()
        manager.stop.assert_called_once()
        assert visualizer.midi is None

    @patch("boardviz.orchestration.visualizer.StreamClient")
    def test_start_stream(self, mock_client_cls, config):
        config.stream_url = "ws://localhost:9"
        visualizer = Visualizer.from_config(config, scheduler=VirtualScheduler())
        visualizer.start(midi=False, stream=True)

        args, kwargs = mock_client_cls.call_args
        assert args == ("ws://localhost:9", visualizer.pipeline.consume_payload)
        assert kwargs["liveness_timeout"] == config.stream_liveness_timeout
        mock_client_cls.return_value.start.assert_called_once()

        visualizer.shutdown()
        mock_client_cls.return_value.stop.assert_called_once()

    def test_shutdown_stops_playback(self, config):
        scheduler = VirtualScheduler()
        visualizer = Visualizer.from_config(config, scheduler=scheduler)
        visualizer.recorder.start()
        visualizer.pipeline.consume(CanonicalEvent.control_change(1, 7, 1))
        scheduler.advance(100)
        visualizer.pipeline.consume(CanonicalEvent.control_change(1, 7, 2))
        visualizer.recorder.stop()
        visualizer.recorder.play()

        visualizer.shutdown()
        assert visualizer.recorder.is_playing is False
        assert scheduler.pending == 0

    def test_shutdown_closes_owned_scheduler(self, config):
        """Test the live scheduler a visualizer creates is closed on shutdown."""
        visualizer = Visualizer.from_config(config)
        assert isinstance(visualizer.scheduler, ThreadingScheduler)
        visualizer.scheduler.call_later(60_000, lambda: None)

        with patch.object(visualizer.scheduler, "close", wraps=visualizer.scheduler.close) as close:
            visualizer.shutdown()

        close.assert_called_once()
        assert visualizer.scheduler.pending == 0


@pytest.mark.unit
class TestErrorContext:
    """Test the logging error context."""

    def test_suppresses_when_asked(self):
        with ErrorContext("do thing", re_raise=False) as ctx:
            raise OSError("disk full")
        assert isinstance(ctx.error, OSError)

    def test_reraises_by_default(self):
        with pytest.raises(ValueError):
            with ErrorContext("do thing"):
                raise ValueError("bad")
