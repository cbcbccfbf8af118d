"""Live visualization command."""

import logging
import time
from pathlib import Path

import click

from boardviz.cli.common import load_config, report_error
from boardviz.exceptions import ErrorContext

logger = logging.getLogger(__name__)


@click.command(name="run")
@click.pass_context
@click.option(
    "--diagram",
    "-d",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="SVG diagram (default: diagram_path from config)",
)
@click.option(
    "--map",
    "-m",
    "map_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Mapping definition (default: base_map_path from config)",
)
@click.option("--midi/--no-midi", default=True, help="Listen on the configured MIDI input")
@click.option("--stream/--no-stream", default=True, help="Connect to the configured event stream")
@click.option(
    "--record",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Record the session and write the take here on exit",
)
@click.option(
    "--snapshot",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the diagram state as SVG on exit",
)
@click.option(
    "--duration",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop after this many seconds (default: until Ctrl+C)",
)
def run(
    ctx: click.Context,
    diagram: Path | None,
    map_path: Path | None,
    midi: bool,
    stream: bool,
    record: Path | None,
    snapshot: Path | None,
    duration: float | None,
):
    """
    Visualize live controller input.

    Press Ctrl+C to stop.
    """
    from boardviz.orchestration import Visualizer

    config = load_config(ctx)

    try:
        visualizer = Visualizer.from_config(config, diagram_path=diagram, map_path=map_path)
    except Exception as e:
        report_error(ctx, e)

    try:
        visualizer.start(midi=midi, stream=stream)
        if record:
            visualizer.recorder.start()
            click.echo(f"Recording to {record}")

        click.echo("Visualizing, press Ctrl+C to stop")
        deadline = time.monotonic() + duration if duration else None
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.1)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        click.echo("\nShutting down...", err=True)

    finally:
        visualizer.shutdown()
        if record:
            events = visualizer.recorder.stop()
            with ErrorContext("save take", logger_instance=logger, re_raise=False) as saving:
                visualizer.recorder.save(record)
            if saving.error is None:
                click.echo(f"Saved {len(events)} events to {record}")
            else:
                click.echo(f"Could not save take to {record}: {saving.error}", err=True)
        if snapshot:
            with ErrorContext("write snapshot", logger_instance=logger, re_raise=False) as writing:
                visualizer.diagram.save(snapshot)
            if writing.error is None:
                click.echo(f"Wrote snapshot to {snapshot}")
            else:
                click.echo(f"Could not write snapshot to {snapshot}: {writing.error}", err=True)

    click.echo(
        f"Processed {visualizer.pipeline.consumed} events ({visualizer.pipeline.unmapped} unmapped)"
    )
