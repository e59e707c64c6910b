"""Control-surface bindings: what each button or dial does."""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .actions import ACTION_TYPES, Action
from .enums import MapFunction


class PressSlot(BaseModel):
    """Actions for one button event, plus the LED state shown when it fires."""

    actions: list[Action] = Field(default_factory=list)
    color: Optional[str] = Field(default=None, description="LED state sent when the slot fires")


class LongPressSlot(PressSlot):
    timeout_ms: Optional[int] = Field(
        default=None, gt=0, description="Hold time before firing (defaults to long_press_timeout_ms)"
    )


class ButtonBinding(BaseModel):
    """Up to five event slots for one button."""

    type: Literal["button"] = "button"
    press: Optional[PressSlot] = None
    long_press: Optional[LongPressSlot] = None
    shift_press: Optional[PressSlot] = None
    shift_long_press: Optional[LongPressSlot] = None
    release: Optional[PressSlot] = None

    def slots(self, shift: bool) -> tuple[Optional[PressSlot], Optional[LongPressSlot]]:
        """Return the (short, long) press slots for the modifier state."""
        if shift:
            return self.shift_press, self.shift_long_press
        return self.press, self.long_press


class DialBinding(BaseModel):
    """Pass a dial through to a sequencer output controller."""

    type: Literal["passthrough"] = "passthrough"
    channel: int = Field(ge=0, le=15, description="Output MIDI channel (0-15)")
    controller: int = Field(ge=0, le=127, description="Output controller number")
    map_function: MapFunction = Field(default=MapFunction.IDENTITY, description="Transfer function")
    high_precision: bool = Field(default=False, description="Publish 14-bit values with xctl")


Binding = Annotated[Union[ButtonBinding, DialBinding], Field(discriminator="type")]


def expand_action_shorthand(value):
    """Turn a bare action into a button binding firing it on press.

    A binding without a ``type`` is a button binding.
    """
    if not isinstance(value, dict):
        return value
    if "type" not in value:
        return {**value, "type": "button"}
    if value["type"] in ACTION_TYPES:
        return {"type": "button", "press": {"actions": [value]}}
    return value
