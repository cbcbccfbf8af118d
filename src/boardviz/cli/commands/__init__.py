"""CLI commands for boardviz."""

from .config import config_group
from .mapping import map_group
from .midi import midi_group
from .run import run
from .take import take_group

__all__ = ["config_group", "map_group", "midi_group", "run", "take_group"]
