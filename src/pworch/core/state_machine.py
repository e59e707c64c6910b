"""Button/dial event state machine.

Turns decoded hardware messages into interpreter calls:

- note_on on a button runs its press slot, or arms a long-press timer when
  a long-press slot is bound (the short press is deferred until release)
- note_off cancels a pending timer and runs the deferred short press, or
  runs the release slot when no timer was pending
- the modifier button switches presses to the shift slots and mutes dial
  processing while held
- control_change on a dial records the raw value and publishes it
"""

import logging
from collections.abc import Awaitable
from typing import Optional

import mido

from pworch.models.bindings import LongPressSlot, PressSlot
from pworch.models.device import Button

from .context import PendingPress, RuntimeContext
from .interpreter import ActionInterpreter
from .timers import ResettableTimer

logger = logging.getLogger(__name__)


def is_press(msg: mido.Message) -> bool:
    return msg.type == "note_on" and msg.velocity > 0


def is_release(msg: mido.Message) -> bool:
    # Many devices send note_on with velocity 0 instead of note_off
    return msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0)


class ControlSurface:
    """Per-button press/long-press/release handling for one device."""

    def __init__(self, context: RuntimeContext, interpreter: ActionInterpreter):
        self.context = context
        self.interpreter = interpreter

    async def handle(self, msg: mido.Message) -> None:
        """Process one decoded message from the control surface."""
        if is_press(msg):
            await self._note_on(msg)
        elif is_release(msg):
            await self._note_off(msg)
        elif msg.type == "control_change":
            await self._control_change(msg)
        else:
            logger.debug(f"[midi] ignoring {msg}")

    def _button_for(self, msg: mido.Message) -> Optional[Button]:
        device = self.context.device
        if msg.channel == device.keys_channel:
            logger.debug(f"Key {msg.type} {msg.note} velocity {msg.velocity}")
            return None
        return device.find_button(msg.channel, msg.note)

    async def _note_on(self, msg: mido.Message) -> None:
        button = self._button_for(msg)
        if button is None:
            return

        if button.label == self.context.device.modifier:
            logger.debug(f"{button.label} ON")
            self.context.shift_pressed = True
            return

        logger.debug(f"[button-pressed] {button.label}")
        binding = self.context.config.button_binding(button.label)
        if binding is None:
            return

        short, long = binding.slots(self.context.shift_pressed)
        if long is not None:
            self._arm_long_press(button, short, long)
        elif short is not None:
            await self._fire(button, short)

    def _arm_long_press(self, button: Button, short: Optional[PressSlot], long: LongPressSlot) -> None:
        previous = self.context.button_timers.pop(button.label, None)
        if previous is not None:
            previous.timer.cancel()

        timeout_ms = long.timeout_ms or self.context.config.long_press_timeout_ms
        timer = ResettableTimer(
            timeout_ms / 1000,
            lambda: self._long_press_fired(button, long),
            name=f"long-press:{button.label}",
        )
        self.context.button_timers[button.label] = PendingPress(timer=timer, deferred=short)
        timer.start()

    def _long_press_fired(self, button: Button, slot: LongPressSlot) -> Awaitable[None]:
        # Popped on expiry, before the slot task is scheduled
        self.context.button_timers.pop(button.label, None)
        logger.debug(f"[button-long-press] {button.label}")
        return self._fire(button, slot)

    async def _note_off(self, msg: mido.Message) -> None:
        button = self._button_for(msg)
        if button is None:
            return

        if button.label == self.context.device.modifier:
            logger.debug(f"{button.label} OFF")
            self.context.shift_pressed = False
            return

        binding = self.context.config.button_binding(button.label)
        if binding is None:
            return

        pending = self.context.button_timers.pop(button.label, None)
        if pending is not None:
            pending.timer.cancel()
            if pending.deferred is not None:
                await self._fire(button, pending.deferred)
            return

        if binding.release is not None:
            await self._fire(button, binding.release)

    async def _fire(self, button: Button, slot: PressSlot) -> None:
        if slot.color is not None:
            await self.interpreter.set_led(button.label, slot.color)
        await self.interpreter.execute_all(slot.actions, button)

    async def _control_change(self, msg: mido.Message) -> None:
        # Dials are frozen while the modifier is held so ranges can be changed
        # without jumps in the output
        if self.context.shift_pressed:
            return

        dial = self.context.device.find_dial(msg.channel, msg.control)
        if dial is None:
            return

        logger.debug(f"[dial] {dial.label} {msg.value}")
        self.context.dials[dial.label] = msg.value
        await self.interpreter.publish_dial(dial.label, msg.value)
