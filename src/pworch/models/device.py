"""Control-surface device definitions."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Button(BaseModel):
    """A physical button addressed by (channel, note)."""

    label: str = Field(min_length=1, description="Unique label used by bindings")
    channel: int = Field(ge=0, le=15, description="MIDI channel (0-15)")
    note: int = Field(ge=0, le=127, description="MIDI note number")
    led_states: dict[str, int] = Field(
        default_factory=dict, description="LED state name -> velocity byte (empty = no LED)"
    )

    @property
    def has_led(self) -> bool:
        return bool(self.led_states)

    def led_value(self, color: str) -> Optional[int]:
        """Get the velocity byte for an LED state, or None if unsupported."""
        return self.led_states.get(color)


class Dial(BaseModel):
    """A physical dial addressed by (channel, controller)."""

    label: str = Field(min_length=1, description="Unique label used by bindings")
    channel: int = Field(ge=0, le=15, description="MIDI channel (0-15)")
    controller: int = Field(ge=0, le=127, description="MIDI controller number")
    range: tuple[int, int] = Field(default=(0, 127), description="Raw value range sent by the dial")

    @property
    def midpoint(self) -> int:
        low, high = self.range
        return (high - low) // 2


class Device(BaseModel):
    """Buttons, dials and keyboard of one control surface model."""

    name: str = Field(min_length=1, description="Device name as listed by the MIDI layer")
    buttons: list[Button] = Field(default_factory=list)
    dials: list[Dial] = Field(default_factory=list)
    keys_channel: Optional[int] = Field(
        default=None, description="Channel of the piano keys (events ignored)"
    )
    modifier: str = Field(default="Shift", description="Label of the modifier button")

    @model_validator(mode="after")
    def validate_unique_labels(self) -> "Device":
        """Ensure every control label is unique."""
        labels = [b.label for b in self.buttons] + [d.label for d in self.dials]
        duplicates = {label for label in labels if labels.count(label) > 1}
        if duplicates:
            raise ValueError(f"Duplicate control labels: {sorted(duplicates)}")
        return self

    def find_button(self, channel: int, note: int) -> Optional[Button]:
        for button in self.buttons:
            if button.channel == channel and button.note == note:
                return button
        return None

    def find_dial(self, channel: int, controller: int) -> Optional[Dial]:
        for dial in self.dials:
            if dial.channel == channel and dial.controller == controller:
                return dial
        return None

    def button_by_label(self, label: str) -> Optional[Button]:
        return next((b for b in self.buttons if b.label == label), None)

    def dial_by_label(self, label: str) -> Optional[Dial]:
        return next((d for d in self.dials if d.label == label), None)

    @property
    def lit_buttons(self) -> list[Button]:
        """Buttons that can be switched off."""
        return [b for b in self.buttons if b.led_value("OFF") is not None]
