"""MIDI command implementations."""

import contextlib
import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import click
import mido

from boardviz.cli.common import report_error
from boardviz.mapping import MappingResolver, MappingTable
from boardviz.midi import MidiInputManager, decode_message

logger = logging.getLogger(__name__)


@click.group(name="midi")
def midi_group():
    """MIDI device commands."""
    pass


@midi_group.command(name="list")
def list_midi():
    """List available MIDI input ports."""
    ports = MidiInputManager.list_ports()

    click.echo("MIDI Input Ports:\n")
    if not ports:
        click.echo("  No MIDI input ports found.")
        return
    for i, port in enumerate(ports):
        click.echo(f"  [{i}] {port}")


def format_event(port: str, msg: mido.Message, resolver: MappingResolver | None, raw: bool) -> str | None:
    """One monitor line for a message, or None if it decodes to nothing."""
    event = decode_message(msg)
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    if event is None:
        return f"[{timestamp}] {port}: {msg}" if raw else None

    line = f"[{timestamp}] {port}: {event.key:<12} value={event.value}"
    if resolver is not None:
        entry = resolver.lookup(event)
        line += f"  -> {entry.target_id} ({entry.label})" if entry else "  -> (unmapped)"
    if raw:
        line += f"  [{msg.hex()}]"
    return line


@midi_group.command(name="monitor")
@click.pass_context
@click.option(
    "--map",
    "-m",
    "map_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Show which diagram target each event resolves to",
)
@click.option("--raw", is_flag=True, help="Also show undecoded messages and raw bytes")
def monitor_midi(ctx: click.Context, map_path: Path | None, raw: bool):
    """
    Monitor all MIDI input ports and print canonical events.

    Useful for finding the key to use in a mapping definition.

    Press Ctrl+C to stop monitoring.
    """
    resolver = None
    if map_path:
        try:
            resolver = MappingResolver(MappingTable.from_files(map_path))
        except Exception as e:
            report_error(ctx, e)

    ports = MidiInputManager.list_ports()
    if not ports:
        click.echo("No MIDI input ports found.")
        return

    click.echo(f"Monitoring {len(ports)} MIDI input port(s):")
    for port in ports:
        click.echo(f"  - {port}")
    click.echo("\nPress Ctrl+C to stop\n")

    managers = []

    try:
        for port_name in ports:
            def make_filter(name: str) -> Callable[[str], bool]:
                return lambda p: p == name

            manager = MidiInputManager(device_filter=make_filter(port_name), poll_interval=10.0)

            def make_callback(name: str):
                def callback(msg: mido.Message):
                    line = format_event(name, msg, resolver, raw)
                    if line:
                        click.echo(line)

                return callback

            manager.on_message(make_callback(port_name))
            manager.start()
            managers.append(manager)

        while True:
            time.sleep(0.1)

    except KeyboardInterrupt:
        click.echo("\n\nStopping monitor...")

    finally:
        for manager in managers:
            with contextlib.suppress(Exception):
                manager.stop()
