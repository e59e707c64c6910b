"""Action bindings.

An action is one concrete effect executed by the interpreter. Actions form a
closed tagged union keyed on ``type``; some variants nest further actions
(``cancel.alt``, ``cycle.items[].actions``, ``command.on_finish``,
``mixer::select.on_finish``).
"""

from typing import Annotated, Literal, Optional, Union

import mido
from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator

from pworch.utils.hashing import object_id

from .graph import NodeAndPort


class IdentifiedAction(BaseModel):
    """An action whose runtime state is keyed by its structural identity."""

    _identity: str = PrivateAttr(default="")

    def model_post_init(self, __context) -> None:
        self._identity = object_id(self)

    @property
    def identity(self) -> str:
        """Stable hash of the action definition, computed once at load time."""
        return self._identity


class CommandAction(IdentifiedAction):
    """Run a shell command."""

    type: Literal["command"] = "command"
    command: str = Field(min_length=1, description="Shell command line")
    cancelable: bool = Field(
        default=False,
        description="Re-triggering while running kills the running instance instead",
    )
    on_finish: list["Action"] = Field(
        default_factory=list, description="Actions run once the command completes"
    )


class CancelAction(BaseModel):
    """Dismiss the selection prompt if open, otherwise run ``alt``."""

    type: Literal["cancel"] = "cancel"
    alt: Optional["Action"] = Field(default=None, description="Fallback action")


class MuteAction(BaseModel):
    """Mute, unmute, or toggle a dial's published output."""

    type: Literal["mute"] = "mute"
    dial: str = Field(description="Dial label")
    mute: Optional[bool] = Field(default=None, description="True/False to force, None to toggle")


class RangeAction(BaseModel):
    """Replace a dial's active output range."""

    type: Literal["range"] = "range"
    dial: str = Field(description="Dial label")
    range: tuple[float, float] = Field(description="Output range as fractions (low, high) of full scale")
    color: Optional[str] = Field(default=None, description="LED state shown while this range is active")

    @field_validator("range")
    @classmethod
    def validate_range(cls, v: tuple[float, float]) -> tuple[float, float]:
        """Ensure both bounds are fractions of full scale."""
        low, high = v
        if not (0.0 <= low <= 1.0 and 0.0 <= high <= 1.0):
            raise ValueError(f"Range bounds must be within 0.0-1.0, got {v}")
        return v


class MidiEventSpec(BaseModel):
    """One outbound MIDI event, named the way ``mido`` names message types.

    Note events are not accepted: the sequencer link cannot emit them.
    """

    type: Literal["control_change", "program_change", "aftertouch", "polytouch", "pitchwheel"]
    channel: int = Field(ge=0, le=15, description="MIDI channel (0-15)")
    control: Optional[int] = Field(default=None, description="Controller number (control_change)")
    value: Optional[int] = Field(default=None, description="Value/pressure")
    program: Optional[int] = Field(default=None, description="Program number (program_change)")
    note: Optional[int] = Field(default=None, description="Note number (polytouch)")
    pitch: Optional[int] = Field(default=None, description="Signed bend amount (pitchwheel)")
    high_precision: bool = Field(default=False, description="Send control_change as a 14-bit xctl")

    @model_validator(mode="after")
    def validate_message(self) -> "MidiEventSpec":
        """Check the fields form a valid message of the given type."""
        if self.high_precision:
            if self.type != "control_change":
                raise ValueError("high_precision only applies to control_change events")
            if not 0 <= (self.value or 0) <= 16383:
                raise ValueError(f"14-bit value must be within 0-16383, got {self.value}")
        try:
            self.to_message()
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid {self.type} event: {e}") from e
        return self

    def to_message(self) -> mido.Message:
        fields = self.model_dump(exclude={"type", "high_precision"}, exclude_none=True)
        if self.type == "control_change" and self.high_precision:
            # 14-bit values are carried outside the 7-bit message
            fields["value"] = 0
        return mido.Message(self.type, **fields)


class MidiAction(BaseModel):
    """Send MIDI events through the sequencer link."""

    type: Literal["midi"] = "midi"
    events: list[MidiEventSpec] = Field(min_length=1)


class LoadPresetAction(BaseModel):
    type: Literal["lv2::load_preset"] = "lv2::load_preset"
    plugin: str = Field(description="Plugin name from pipewire.plugins")
    preset: str = Field(description="Preset URI or label")


class ShowGuiAction(BaseModel):
    type: Literal["lv2::show_gui"] = "lv2::show_gui"
    plugin: str = Field(description="Plugin name from pipewire.plugins")


class LinkAction(BaseModel):
    type: Literal["pipewire::link"] = "pipewire::link"
    src: NodeAndPort
    dest: NodeAndPort


class UnlinkAction(BaseModel):
    type: Literal["pipewire::unlink"] = "pipewire::unlink"
    src: NodeAndPort
    dest: NodeAndPort


class ExclusiveLinkAction(BaseModel):
    type: Literal["pipewire::exclusive_link"] = "pipewire::exclusive_link"
    src: NodeAndPort
    dest: NodeAndPort


class LedSetAction(BaseModel):
    type: Literal["led::set"] = "led::set"
    button: str = Field(description="Button label")
    color: str = Field(description="LED state name")


class LedSaveAction(BaseModel):
    type: Literal["led::save"] = "led::save"
    button: str = Field(description="Button label")


class LedRestoreAction(BaseModel):
    type: Literal["led::restore"] = "led::restore"
    button: str = Field(description="Button label")


class CycleItem(BaseModel):
    actions: list["Action"] = Field(default_factory=list)
    color: Optional[str] = Field(default=None, description="LED state shown while selected")


class CycleAction(IdentifiedAction):
    """Advance through ``items`` one step per activation."""

    type: Literal["cycle"] = "cycle"
    items: list[CycleItem] = Field(min_length=1)


class MixerSelectAction(BaseModel):
    """Prompt for an audio source and route it to a mixer channel."""

    type: Literal["mixer::select"] = "mixer::select"
    channel: int = Field(ge=1, description="Mixer channel number (1-based)")
    on_finish: list["Action"] = Field(default_factory=list)


class ConfigReloadAction(BaseModel):
    type: Literal["config::reload"] = "config::reload"


Action = Annotated[
    Union[
        CommandAction,
        CancelAction,
        MuteAction,
        RangeAction,
        MidiAction,
        LoadPresetAction,
        ShowGuiAction,
        LinkAction,
        UnlinkAction,
        ExclusiveLinkAction,
        LedSetAction,
        LedSaveAction,
        LedRestoreAction,
        CycleAction,
        MixerSelectAction,
        ConfigReloadAction,
    ],
    Field(discriminator="type"),
]

ACTION_TYPES = (
    "command",
    "cancel",
    "mute",
    "range",
    "midi",
    "lv2::load_preset",
    "lv2::show_gui",
    "pipewire::link",
    "pipewire::unlink",
    "pipewire::exclusive_link",
    "led::set",
    "led::save",
    "led::restore",
    "cycle",
    "mixer::select",
    "config::reload",
)

for _model in (CommandAction, CancelAction, CycleItem, CycleAction, MixerSelectAction):
    _model.model_rebuild()
