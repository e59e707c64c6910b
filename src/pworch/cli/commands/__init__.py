"""CLI commands for pworch."""

from .config import config
from .graph import graph_group
from .midi import midi_group
from .run import run

__all__ = ["config", "graph_group", "midi_group", "run"]
