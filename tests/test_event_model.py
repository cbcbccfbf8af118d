"""Tests for the canonical event model and identity keys."""

import pytest
from pydantic import ValidationError

from boardviz.models import CanonicalEvent, EventKind, make_event_key, parse_event_key


class TestCanonicalEvent:
    """Test construction, normalization and wire shape."""

    def test_field_construction(self):
        """Test building from model fields."""
        event = CanonicalEvent(kind=EventKind.CONTROL_CHANGE, channel=1, code=7, value=64)
        assert event.key == "cc:1:7"

    def test_value_clamped_per_kind(self):
        """Test values are clamped to 0..127 or the pitch bend range."""
        assert CanonicalEvent.control_change(1, 7, 200).value == 127
        assert CanonicalEvent.pitch_bend(1, 10000).value == 8191
        assert CanonicalEvent.pitch_bend(1, -10000).value == -8192

    def test_note_on_zero_is_note_off(self):
        """Test the note_on helper normalizes velocity 0."""
        event = CanonicalEvent.note_on(1, 60, 0)
        assert event.kind is EventKind.NOTE_OFF

    def test_channel_out_of_range_rejected(self):
        """Test channel must be 1-16."""
        with pytest.raises(ValidationError):
            CanonicalEvent(kind=EventKind.CONTROL_CHANGE, channel=17, code=1, value=1)
        with pytest.raises(ValidationError):
            CanonicalEvent(kind=EventKind.CONTROL_CHANGE, channel=0, code=1, value=1)

    def test_code_required_except_pitch(self):
        """Test note/cc events need a code."""
        with pytest.raises(ValidationError):
            CanonicalEvent(kind=EventKind.NOTE_ON, channel=1, value=100)
        assert CanonicalEvent.pitch_bend(1, 0).code is None

    def test_pitch_code_dropped(self):
        """Test a code supplied for pitch bend is discarded."""
        event = CanonicalEvent(kind=EventKind.PITCH_BEND, channel=2, code=5, value=0)
        assert event.code is None
        assert event.key == "pitch:2"

    def test_frozen_and_hashable(self):
        """Test events are immutable and usable as dict keys."""
        event = CanonicalEvent.control_change(1, 7, 64)
        with pytest.raises(ValidationError):
            event.value = 3
        assert {event: 1}[CanonicalEvent.control_change(1, 7, 64)] == 1

    def test_dedup_key_includes_value(self):
        """Test dedup key covers kind, channel, code and value."""
        assert CanonicalEvent.control_change(1, 7, 64).dedup_key == "cc|1|7|64"
        assert CanonicalEvent.pitch_bend(3, -5).dedup_key == "pitch|3||-5"

    def test_cc_wire_shape(self):
        """Test cc serializes with controller, d1, d2 and value."""
        assert CanonicalEvent.control_change(1, 7, 64).to_wire() == {
            "type": "cc",
            "ch": 1,
            "controller": 7,
            "d1": 7,
            "d2": 64,
            "value": 64,
        }

    def test_note_wire_shape(self):
        """Test notes serialize note and velocity as d1/d2."""
        assert CanonicalEvent.note_on(2, 54, 100).to_wire() == {
            "type": "noteon",
            "ch": 2,
            "d1": 54,
            "d2": 100,
            "value": 100,
        }

    def test_pitch_wire_shape(self):
        """Test pitch serializes raw LSB/MSB and the signed value."""
        assert CanonicalEvent.pitch_bend(1, 0).to_wire() == {
            "type": "pitch",
            "ch": 1,
            "d1": 0,
            "d2": 64,
            "value": 0,
        }
        wire = CanonicalEvent.pitch_bend(1, -8192).to_wire()
        assert (wire["d1"], wire["d2"]) == (0, 0)

    @pytest.mark.parametrize(
        "event",
        [
            CanonicalEvent.control_change(5, 19, 3),
            CanonicalEvent.note_on(1, 54, 127),
            CanonicalEvent.note_off(16, 0),
            CanonicalEvent.pitch_bend(1, 8191),
            CanonicalEvent.pitch_bend(1, -1),
        ],
    )
    def test_wire_shape_parses_back(self, event):
        """Test the wire shape validates back to the same event."""
        assert CanonicalEvent.model_validate(event.to_wire()) == event


class TestEventKeys:
    """Test identity key helpers."""

    def test_make_key(self):
        """Test key formatting per kind."""
        assert make_event_key(EventKind.CONTROL_CHANGE, 1, 7) == "cc:1:7"
        assert make_event_key(EventKind.NOTE_ON, 2, 54) == "noteon:2:54"
        assert make_event_key(EventKind.PITCH_BEND, 3, None) == "pitch:3"

    @pytest.mark.parametrize(
        "key, expected",
        [
            ("cc:1:7", (EventKind.CONTROL_CHANGE, 1, 7)),
            ("CC:1:7", (EventKind.CONTROL_CHANGE, 1, 7)),
            (" noteoff:16:0 ", (EventKind.NOTE_OFF, 16, 0)),
            ("pitch:3", (EventKind.PITCH_BEND, 3, None)),
        ],
    )
    def test_parse_valid(self, key, expected):
        """Test valid keys decompose."""
        assert parse_event_key(key) == expected

    @pytest.mark.parametrize("key", ["", "cc", "cc:1", "cc:17:1", "cc:a:1", "xx:1:2", "cc:1:7:9", "cc:1:x"])
    def test_parse_malformed(self, key):
        """Test malformed keys yield None."""
        assert parse_event_key(key) is None
