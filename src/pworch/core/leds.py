"""LED state helpers."""

import logging
from typing import Optional

from pworch.midi.codec import ByteTriplet, led_triplet
from pworch.models.actions import CommandAction, CycleAction, MuteAction, RangeAction
from pworch.models.bindings import ButtonBinding
from pworch.models.config import Config
from pworch.models.device import Button, Device

logger = logging.getLogger(__name__)


def button_led_triplet(button: Button, color: str) -> Optional[ByteTriplet]:
    """The triplet that shows ``color`` on ``button``, or None if unsupported."""
    if not button.has_led:
        return None

    value = button.led_value(color)
    if value is None:
        logger.warning(f"Button {button.label} doesn't support requested color {color}")
        return None
    return led_triplet(button.channel, button.note, value)


def _binding_default(binding: ButtonBinding) -> Optional[str]:
    if binding.press is None or not binding.press.actions:
        return None

    match binding.press.actions[0]:
        case CycleAction(items=items):
            return items[0].color or "OFF"
        case RangeAction(color=color):
            return color
        case MuteAction():
            return "GREEN"
        case CommandAction():
            return "ON"
    return None


def default_button_colors(config: Config, device: Device) -> dict[str, str]:
    """Initial LED state per bound button, derived from its press actions."""
    colors = {}
    for label in config.bindings:
        button = device.button_by_label(label)
        binding = config.button_binding(label)
        if button is None or binding is None:
            continue
        color = _binding_default(binding)
        if color is not None and button.led_value(color) is not None:
            colors[label] = color
    return colors


def all_off_triplets(device: Device) -> list[ByteTriplet]:
    return [led_triplet(b.channel, b.note, b.led_value("OFF")) for b in device.lit_buttons]
