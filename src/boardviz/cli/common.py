"""Helpers shared by CLI commands."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from boardviz.exceptions import format_error_for_display
from boardviz.models import AppConfig

logger = logging.getLogger(__name__)


def config_path(ctx: click.Context) -> Path:
    """Config file selected with --config, or the default location."""
    obj = ctx.find_root().obj or {}
    return obj.get("config_path") or AppConfig.default_path()


def load_config(ctx: click.Context) -> AppConfig:
    """Load the app config, exiting with a readable message if it is broken."""
    try:
        return AppConfig.load_or_default(config_path(ctx))
    except Exception as e:
        report_error(ctx, e)


def report_error(ctx: click.Context, error: Exception) -> NoReturn:
    """Log an error, show it without a traceback and exit with status 1."""
    logger.error(f"Command failed: {error}", exc_info=True)
    user_message, recovery_hint = format_error_for_display(error)

    click.echo("\n" + "=" * 70, err=True)
    click.echo(f"ERROR: {user_message}", err=True)
    click.echo("=" * 70, err=True)
    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)

    log_path = (ctx.find_root().obj or {}).get("log_path")
    if log_path:
        click.echo(f"\nFor details, check the log file: {log_path}", err=True)
    sys.exit(1)
