"""Pytest fixtures for tests."""

import json
from pathlib import Path

import pytest

from boardviz.core import EventPipeline, Recorder, VirtualScheduler, VisualStateEngine
from boardviz.mapping import MappingResolver, MappingTable
from boardviz.models import MappingEntry
from boardviz.render import SvgDiagram

BOARD_SVG = """\
<svg xmlns="http://www.w3.org/2000/svg" width="400" height="300">
  <rect id="fader1" x="10" y="0" width="20" height="10"/>
  <rect id="xfader" x="100" y="200" width="30" height="10"/>
  <circle id="knob_trim_1" cx="50" cy="60" r="10"/>
  <g id="jog_l">
    <rect x="100" y="100" width="80" height="80"/>
  </g>
  <g id="knob_hi">
    <rect x="200" y="20" width="20" height="20"/>
    <line id="knob_hi_ptr" x1="210" y1="20" x2="210" y2="30"/>
  </g>
  <rect id="pad_1" class="pad" x="300" y="250" width="20" height="20"/>
</svg>
"""

BASE_DEFINITIONS = [
    {"key": "cc:1:7", "target": "fader1", "name": "Ch1 Fader", "animation": "slide", "axis": "y", "min": 0, "max": 140},
    {"key": "cc:1:31", "target": "xfader", "name": "Crossfader", "animation": "slide", "axis": "x", "min": -200, "max": 200},
    {"key": "cc:1:4", "target": "knob_trim_1", "name": "Trim 1", "animation": "rotate", "angleMin": -135, "angleMax": 135},
    {"key": "cc:1:33", "target": "jog_l", "name": "Jog L", "animation": "rotate", "mode": "accumulate"},
    {"key": "noteon:1:54", "target": "pad_1", "name": "Cue"},
    {"type": "cc", "ch": 2, "code": 16, "target": "knob_hi", "animation": "rotate", "pointer": "knob_hi_ptr"},
]


@pytest.fixture
def scheduler():
    """Virtual clock scheduler starting at 0ms."""
    return VirtualScheduler()


@pytest.fixture
def diagram():
    """Small controller diagram with a fader, crossfader, knobs, a jog and a pad."""
    return SvgDiagram.from_string(BOARD_SVG)


@pytest.fixture
def board_svg_file(tmp_path: Path) -> Path:
    """The test diagram written to disk."""
    path = tmp_path / "board.svg"
    path.write_text(BOARD_SVG, encoding="utf-8")
    return path


@pytest.fixture
def base_entries():
    """Base mapping entries for the test diagram."""
    return [MappingEntry.model_validate(d) for d in BASE_DEFINITIONS]


@pytest.fixture
def mapping_file(tmp_path: Path) -> Path:
    """Base mapping definition written to disk."""
    path = tmp_path / "map.json"
    path.write_text(json.dumps(BASE_DEFINITIONS), encoding="utf-8")
    return path


@pytest.fixture
def table(base_entries):
    """Mapping table built from the base entries."""
    return MappingTable(base_entries)


@pytest.fixture
def engine(diagram, scheduler):
    """Visual state engine drawing on the test diagram."""
    engine = VisualStateEngine(diagram, scheduler, pulse_ms=120)
    yield engine
    engine.close()


@pytest.fixture
def pipeline(table, engine):
    """Event pipeline over the test table and engine."""
    return EventPipeline(MappingResolver(table), engine)


@pytest.fixture
def recorder(scheduler, pipeline):
    """Recorder installed on the test pipeline."""
    recorder = Recorder(scheduler)
    recorder.install(pipeline)
    yield recorder
    recorder.uninstall()
