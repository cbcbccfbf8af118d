"""Tests for the event pipeline."""

from unittest.mock import Mock, patch

import mido
import pytest

from boardviz.models import CanonicalEvent, EventOrigin


@pytest.mark.unit
class TestConsume:
    """Test event processing through the pipeline."""

    def test_mapped_event_animates(self, pipeline, diagram):
        """Test a mapped event reaches the diagram and returns its entry."""
        entry = pipeline.consume(CanonicalEvent.control_change(1, 7, 127))

        assert entry is not None
        assert entry.target_id == "fader1"
        assert diagram.element("fader1").get("y") == "140.0"
        assert pipeline.consumed == 1
        assert pipeline.unmapped == 0

    def test_unmapped_event_counted(self, pipeline, diagram):
        """Test unmapped events change nothing."""
        before = diagram.to_string()
        assert pipeline.consume(CanonicalEvent.control_change(5, 99, 1)) is None
        assert pipeline.unmapped == 1
        assert diagram.to_string() == before

    def test_note_off_uses_note_on_mapping(self, pipeline, diagram):
        """Test a note-off clears a pad mapped only by its note-on."""
        pipeline.consume(CanonicalEvent.note_on(1, 54, 100))
        assert diagram.element("pad_1").get("class") == "pad lit"

        entry = pipeline.consume(CanonicalEvent.note_off(1, 54))
        assert entry is not None
        assert diagram.element("pad_1").get("class") == "pad"

    def test_consume_bytes(self, pipeline, diagram):
        assert pipeline.consume_bytes([0xB0, 7, 127]) is not None
        assert diagram.element("fader1").get("y") == "140.0"

    def test_short_bytes_not_consumed(self, pipeline):
        """Test undecodable input never enters the pipeline."""
        assert pipeline.consume_bytes([0xB0, 7]) is None
        assert pipeline.consumed == 0

    def test_consume_message(self, pipeline, diagram):
        pipeline.consume_message(mido.Message("control_change", channel=0, control=7, value=0))
        assert diagram.element("fader1").get("y") == "0.0"

    def test_clock_message_not_consumed(self, pipeline):
        assert pipeline.consume_message(mido.Message("clock")) is None
        assert pipeline.consumed == 0

    def test_consume_payload(self, pipeline, diagram):
        """Test stream payloads in the exchange shape."""
        pipeline.consume_payload({"type": "cc", "ch": 1, "controller": 31, "value": 127})
        assert diagram.element("xfader").get("x") == "200.0"

    def test_invalid_payload_not_consumed(self, pipeline):
        assert pipeline.consume_payload({"type": "cc", "ch": 99}) is None
        assert pipeline.consumed == 0


@pytest.mark.unit
class TestObserversAndInterceptors:
    """Test pipeline taps."""

    def test_observer_notified(self, pipeline):
        """Test observers see mapped and unmapped events."""
        observer = Mock()
        pipeline.register_observer(observer)

        mapped = CanonicalEvent.control_change(1, 7, 1)
        unmapped = CanonicalEvent.control_change(3, 3, 3)
        entry = pipeline.consume(mapped)
        pipeline.consume(unmapped)

        assert observer.on_pipeline_event.call_count == 2
        observer.on_pipeline_event.assert_any_call(mapped, entry)
        observer.on_pipeline_event.assert_any_call(unmapped, None)

    def test_unregistered_observer_not_notified(self, pipeline):
        observer = Mock()
        pipeline.register_observer(observer)
        pipeline.unregister_observer(observer)
        pipeline.consume(CanonicalEvent.control_change(1, 7, 1))
        observer.on_pipeline_event.assert_not_called()

    def test_interceptor_sees_origin(self, pipeline):
        """Test interceptors run for every event with its origin."""
        interceptor = Mock()
        pipeline.add_interceptor(interceptor)
        pipeline.add_interceptor(interceptor)

        event = CanonicalEvent.control_change(3, 3, 3)
        pipeline.consume(event, EventOrigin.PLAYBACK)

        interceptor.intercept.assert_called_once_with(event, EventOrigin.PLAYBACK)

    def test_interceptor_error_contained(self, pipeline, diagram):
        """Test a failing interceptor does not stop processing."""
        interceptor = Mock()
        interceptor.intercept.side_effect = RuntimeError("boom")
        pipeline.add_interceptor(interceptor)

        assert pipeline.consume(CanonicalEvent.control_change(1, 7, 127)) is not None
        assert diagram.element("fader1").get("y") == "140.0"

    def test_engine_error_contained(self, pipeline):
        """Test animation failures are logged, not raised."""
        observer = Mock()
        pipeline.register_observer(observer)

        with patch.object(pipeline.engine, "apply", side_effect=RuntimeError("boom")):
            entry = pipeline.consume(CanonicalEvent.control_change(1, 7, 127))

        assert entry is not None
        observer.on_pipeline_event.assert_called_once()

    def test_resolver_error_contained(self, pipeline):
        with patch.object(pipeline.resolver, "lookup", side_effect=RuntimeError("boom")):
            assert pipeline.consume(CanonicalEvent.control_change(1, 7, 127)) is None
        assert pipeline.unmapped == 1

    def test_removed_interceptor_not_called(self, pipeline):
        interceptor = Mock()
        pipeline.add_interceptor(interceptor)
        pipeline.remove_interceptor(interceptor)
        pipeline.consume(CanonicalEvent.control_change(1, 7, 1))
        interceptor.intercept.assert_not_called()
