"""Recorded take commands."""

import logging
import time
from collections import Counter
from pathlib import Path

import click

from boardviz.cli.common import load_config, report_error
from boardviz.exceptions import TakeLoadError
from boardviz.models import Take

logger = logging.getLogger(__name__)


@click.group(name="take")
def take_group():
    """Recorded take commands."""
    pass


def read_take(ctx: click.Context, path: Path) -> Take:
    try:
        return Take.from_data(path.read_text(encoding="utf-8"), source=str(path))
    except (OSError, TakeLoadError) as e:
        report_error(ctx, e)


@take_group.command(name="info")
@click.pass_context
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def take_info(ctx: click.Context, path: Path):
    """Summarize a take file."""
    take = read_take(ctx, path)

    click.echo(f"Take: {path}")
    click.echo(f"  Version:  {take.version}")
    click.echo(f"  Speed:    {take.speed:g}x")
    click.echo(f"  Events:   {len(take.events)}")
    click.echo(f"  Duration: {take.duration_ms / 1000:.3f}s")

    if take.events:
        kinds = Counter(recorded.event.kind.value for recorded in take.events)
        keys = Counter(recorded.event.key for recorded in take.events)
        click.echo("  Kinds:    " + ", ".join(f"{kind}={count}" for kind, count in sorted(kinds.items())))
        click.echo(f"  Controls: {len(keys)} distinct")
        for key, count in keys.most_common(5):
            click.echo(f"    {key:<14} x{count}")


@take_group.command(name="replay")
@click.pass_context
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
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
@click.option(
    "--speed",
    "-s",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Playback speed factor (default: the take's own speed)",
)
@click.option("--loop", is_flag=True, help="Repeat until Ctrl+C (not with --headless)")
@click.option("--headless", is_flag=True, help="Replay instantly on a virtual clock")
@click.option(
    "--snapshot",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the final diagram state as SVG",
)
def take_replay(
    ctx: click.Context,
    path: Path,
    diagram: Path | None,
    map_path: Path | None,
    speed: float | None,
    loop: bool,
    headless: bool,
    snapshot: Path | None,
):
    """
    Replay a take through the visualizer.

    In real time the diagram animates as it did when recorded. With
    --headless the take runs instantly on a virtual clock, which is handy
    for rendering the end state of a session to an SVG file.
    """
    from boardviz.core import VirtualScheduler
    from boardviz.orchestration import Visualizer

    if loop and headless:
        raise click.UsageError("--loop cannot be combined with --headless")

    config = load_config(ctx)
    take = read_take(ctx, path)
    scheduler = VirtualScheduler() if headless else None

    try:
        visualizer = Visualizer.from_config(
            config, diagram_path=diagram, map_path=map_path, scheduler=scheduler
        )
    except Exception as e:
        report_error(ctx, e)

    recorder = visualizer.recorder
    recorder.load_take(take)

    try:
        if not recorder.play(speed=speed, loop=loop):
            click.echo("Nothing to play.")
            return
        click.echo(f"Replaying {len(take.events)} events from {path}")

        if isinstance(scheduler, VirtualScheduler):
            scheduler.run_until_idle()
        else:
            while recorder.is_playing:
                time.sleep(0.05)
            # Let the last pulse revert
            time.sleep(config.pulse_ms / 1000)

    except KeyboardInterrupt:
        click.echo("\nStopping playback...", err=True)

    finally:
        visualizer.shutdown()
        if snapshot:
            visualizer.diagram.save(snapshot)
            click.echo(f"Wrote snapshot to {snapshot}")

    click.echo(
        f"Replayed {visualizer.pipeline.consumed} events ({visualizer.pipeline.unmapped} unmapped)"
    )
