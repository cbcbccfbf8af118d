"""Offline example: drive a diagram from raw MIDI bytes, record it, replay it faster."""

import sys
from pathlib import Path

from boardviz.core import VirtualScheduler
from boardviz.mapping import MappingTable
from boardviz.models import AppConfig, MappingEntry
from boardviz.orchestration import Visualizer
from boardviz.render import SvgDiagram

DIAGRAM = """\
<svg xmlns="http://www.w3.org/2000/svg" width="200" height="160">
  <rect id="fader1" x="20" y="0" width="20" height="10"/>
  <circle id="knob_trim_1" cx="120" cy="40" r="15"/>
  <rect id="pad_cue_1" x="100" y="120" width="30" height="20"/>
</svg>
"""

MAPPINGS = [
    {"key": "cc:1:19", "target": "fader1", "name": "Ch1 Fader", "animation": "slide", "axis": "y", "min": 0, "max": 140},
    {"key": "cc:1:4", "target": "knob_trim_1", "name": "Trim", "animation": "rotate"},
    {"key": "noteon:1:12", "target": "pad_cue_1", "name": "Cue"},
]


def main():
    """Play a short gesture, then replay the take at double speed."""
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("replay_out")

    scheduler = VirtualScheduler()
    table = MappingTable(MappingEntry.model_validate(d) for d in MAPPINGS)
    visualizer = Visualizer(AppConfig(), SvgDiagram.from_string(DIAGRAM), table, scheduler=scheduler)

    with visualizer:
        recorder = visualizer.recorder
        recorder.start()

        print("Feeding gesture...")
        for value in range(0, 128, 16):
            visualizer.pipeline.consume_bytes([0xB0, 19, value])
            scheduler.advance(20)
        visualizer.pipeline.consume_bytes([0xB0, 4, 100])
        visualizer.pipeline.consume_bytes([0x90, 12, 127])
        scheduler.advance(200)

        events = recorder.stop()
        print(f"Recorded {len(events)} events over {events[-1].offset_ms:.0f}ms")
        recorder.save(out_dir / "take.json")

        print("Replaying at 2x...")
        recorder.play(speed=2.0, on_event=lambda event, index: print(f"  {scheduler.now():6.0f}ms {event.key}"))
        scheduler.run_until_idle()

        snapshot = visualizer.diagram.save(out_dir / "snapshot.svg")
        print(f"\nState after replay: {visualizer.engine.snapshot()['fader1']}")
        print(f"Wrote {snapshot}")


if __name__ == "__main__":
    main()
