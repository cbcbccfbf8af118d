"""Main CLI entry point."""

import logging
import logging.handlers
from pathlib import Path

import click

from boardviz import __version__

from .commands import config_group, map_group, midi_group, run, take_group

logger = logging.getLogger(__name__)

_file_handler: logging.Handler | None = None


def default_log_path(debug: bool = False) -> Path:
    """Where logs go when no --log-file is given."""
    if debug:
        return Path.cwd() / "boardviz-debug.log"
    return Path.home() / ".boardviz" / "logs" / "boardviz.log"


def setup_logging(verbose: int, debug: bool, log_file: Path | None, log_level: str) -> Path:
    """
    Configure logging for the application.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug: If True, enable debug mode with file logging
        log_file: Custom log file path (optional)
        log_level: Log level for file logging (DEBUG/INFO/WARNING/ERROR)

    Returns:
        Path of the log file
    """
    global _file_handler

    if debug or verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    # Override with explicit log level if provided
    if log_file:
        level = getattr(logging, log_level.upper())

    log_path = log_file or default_log_path(debug)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Keeps last 5 files, max 10MB each
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)
        _file_handler.close()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    _file_handler = file_handler

    logger.info(f"Logging configured: level={logging.getLevelName(level)}, file={log_path}")
    return log_path


@click.group()
@click.pass_context
@click.version_option(version=__version__, prog_name="boardviz")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.boardviz/config.json)",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v: INFO, -vv: DEBUG)")
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode (DEBUG level, logs to ./boardviz-debug.log)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Custom log file path",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Log level for file logging (default: INFO)",
)
def cli(
    ctx: click.Context,
    config_path: Path | None,
    verbose: int,
    debug: bool,
    log_file: Path | None,
    log_level: str,
):
    """
    boardviz - live controller visualizer.

    Lights up and animates an SVG diagram of a DJ/MIDI controller from
    live MIDI or a forwarded event stream, and records/replays sessions.

    \b
    Examples:
      # Visualize live input and record the session
      boardviz run --diagram flx6.svg --map flx6.json --record take.json

      # Replay a take offline and write the final diagram state
      boardviz take replay take.json --headless --snapshot out.svg

      # Bind a control to a diagram element
      boardviz map learn cc:1:19 knob_filter_1 --animation rotate

      # List MIDI devices
      boardviz midi list
    """
    log_path = setup_logging(verbose, debug, log_file, log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_path"] = log_path


cli.add_command(run)
cli.add_command(midi_group)
cli.add_command(map_group)
cli.add_command(take_group)
cli.add_command(config_group)

if __name__ == "__main__":
    cli()
