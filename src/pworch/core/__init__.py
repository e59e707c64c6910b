"""Runtime context, action interpreter, and control-surface state machine."""

from .context import CommandState, Links, PendingPress, RuntimeContext
from .interpreter import ActionInterpreter
from .leds import all_off_triplets, button_led_triplet, default_button_colors
from .mapping import apply_map_function, map_dial_value
from .state_machine import ControlSurface
from .timers import ResettableTimer

__all__ = [
    "ActionInterpreter",
    "CommandState",
    "ControlSurface",
    "Links",
    "PendingPress",
    "ResettableTimer",
    "RuntimeContext",
    "all_off_triplets",
    "apply_map_function",
    "button_led_triplet",
    "default_button_colors",
    "map_dial_value",
]
