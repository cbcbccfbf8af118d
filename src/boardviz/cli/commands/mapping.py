"""Mapping definition commands."""

import logging
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from boardviz.cli.common import load_config, report_error
from boardviz.mapping import LearnedMappingStore, MappingTable
from boardviz.models import (
    AnimationCategory,
    Axis,
    MappingEntry,
    RotationMode,
    make_event_key,
    parse_event_key,
)

logger = logging.getLogger(__name__)


@click.group(name="map")
def map_group():
    """Mapping definition commands."""
    pass


def _describe(entry: MappingEntry) -> str:
    animation = entry.animation
    if animation.category is AnimationCategory.SLIDE:
        return f"slide {animation.axis.value} {animation.range_min:g}..{animation.range_max:g}"
    if animation.category is AnimationCategory.ROTATE:
        rotation = animation.rotation
        return f"rotate {rotation.mode.value} {rotation.angle_min:g}..{rotation.angle_max:g}"
    return "lit"


@map_group.command(name="show")
@click.pass_context
@click.option(
    "--map",
    "-m",
    "map_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Base mapping definition (default: base_map_path from config)",
)
@click.option("--learned/--no-learned", default=True, help="Apply learned overrides")
def show_map(ctx: click.Context, map_path: Path | None, learned: bool):
    """Show the merged mapping table."""
    config = load_config(ctx)
    base_path = map_path or config.base_map_path
    learned_path = config.learned_map_path if learned else None

    try:
        table = MappingTable.from_files(base_path, learned_path)
    except Exception as e:
        report_error(ctx, e)

    if not len(table):
        click.echo("No mappings defined.")
        return

    click.echo(f"{len(table)} mapping(s):\n")
    for entry in table:
        key = entry.identity_key or "(structural)"
        click.echo(f"  {key:<14} -> {entry.target_id:<24} {entry.label:<24} {_describe(entry)}")


@map_group.command(name="learn")
@click.pass_context
@click.argument("key")
@click.argument("target")
@click.option("--name", default=None, help="Display name for the control")
@click.option(
    "--animation",
    "-a",
    type=click.Choice([c.value for c in AnimationCategory], case_sensitive=False),
    default=AnimationCategory.LIT.value,
    help="How the target reacts (default: lit)",
)
@click.option("--axis", type=click.Choice([a.value for a in Axis]), default=None, help="Slide axis")
@click.option("--min", "range_min", type=float, default=None, help="Slide position at value 0")
@click.option("--max", "range_max", type=float, default=None, help="Slide position at value 127")
@click.option("--angle-min", type=float, default=None, help="Rotation angle at value 0")
@click.option("--angle-max", type=float, default=None, help="Rotation angle at value 127")
@click.option("--angle-offset", type=float, default=None, help="Added to every rotation angle")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in RotationMode]),
    default=None,
    help="Rotation mode",
)
@click.option("--pointer", default=None, help="Pointer element anchoring the rotation center")
@click.option("--max-step", type=click.IntRange(1, 127), default=None, help="Accumulate step limit")
def learn_map(
    ctx: click.Context,
    key: str,
    target: str,
    name: str | None,
    animation: str,
    axis: str | None,
    range_min: float | None,
    range_max: float | None,
    angle_min: float | None,
    angle_max: float | None,
    angle_offset: float | None,
    mode: str | None,
    pointer: str | None,
    max_step: int | None,
):
    """
    Bind KEY (e.g. cc:1:7) to diagram element TARGET.

    The binding is saved to the learned mapping file and overrides the base
    definition for the same key.
    """
    if parse_event_key(key) is None:
        raise click.BadParameter(f"'{key}' is not a key like cc:1:7, noteon:1:54 or pitch:1", param_hint="KEY")

    definition: dict[str, Any] = {"key": key, "target": target, "animation": animation.lower()}
    optional = {
        "name": name,
        "axis": axis,
        "min": range_min,
        "max": range_max,
        "angleMin": angle_min,
        "angleMax": angle_max,
        "angleOffset": angle_offset,
        "mode": mode,
        "pointer": pointer,
        "maxStep": max_step,
    }
    definition.update({k: v for k, v in optional.items() if v is not None})

    try:
        entry = MappingEntry.model_validate(definition)
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e

    config = load_config(ctx)
    try:
        store = LearnedMappingStore(config.learned_map_path)
        store.learn(entry)
    except Exception as e:
        report_error(ctx, e)

    click.echo(f"Learned {entry.key} -> {entry.target_id} ({_describe(entry)})")
    click.echo(f"Saved to {config.learned_map_path}")


@map_group.command(name="forget")
@click.pass_context
@click.argument("key")
def forget_map(ctx: click.Context, key: str):
    """Remove the learned binding for KEY."""
    parsed = parse_event_key(key)
    if parsed is None:
        raise click.BadParameter(f"'{key}' is not a valid key", param_hint="KEY")

    config = load_config(ctx)
    try:
        store = LearnedMappingStore(config.learned_map_path)
        removed = store.forget(make_event_key(*parsed))
    except Exception as e:
        report_error(ctx, e)

    if removed:
        click.echo(f"Forgot {key}")
    else:
        click.echo(f"No learned mapping for {key}")
