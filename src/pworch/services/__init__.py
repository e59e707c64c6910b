"""Services around the daemon core (selection prompt, state file)."""

from .prompt import RofiChooser
from .state_store import dump_state, restore_state

__all__ = ["RofiChooser", "dump_state", "restore_state"]
