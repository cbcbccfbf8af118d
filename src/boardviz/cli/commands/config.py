"""Configuration commands."""

import json

import click

from boardviz.cli.common import config_path, load_config, report_error
from boardviz.models import AppConfig


@click.group(name="config")
def config_group():
    """Show and initialize boardviz settings."""
    pass


@config_group.command(name="show")
@click.pass_context
@click.option("--field", "-f", default=None, help="Show only this field")
def show_config(ctx: click.Context, field: str | None):
    """Display the current configuration."""
    config = load_config(ctx)
    data = config.model_dump(mode="json")

    if field:
        if field not in data:
            raise click.BadParameter(
                f"Unknown field '{field}'. Available: {', '.join(data)}", param_hint="--field"
            )
        click.echo(f"{field}: {data[field]}")
        return

    click.echo(f"Configuration ({config_path(ctx)}):\n")
    click.echo(json.dumps(data, indent=2))


@config_group.command(name="path")
@click.pass_context
def show_path(ctx: click.Context):
    """Print the config file location."""
    click.echo(str(config_path(ctx)))


@config_group.command(name="init")
@click.pass_context
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init_config(ctx: click.Context, force: bool):
    """Write a config file with default settings."""
    path = config_path(ctx)
    if path.exists() and not force:
        click.echo(f"Config already exists at {path} (use --force to overwrite)")
        return
    try:
        AppConfig().save(path)
    except Exception as e:
        report_error(ctx, e)
    click.echo(f"Wrote default config to {path}")
