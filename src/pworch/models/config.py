"""Daemon configuration model."""

import logging
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from pworch.utils.persistence import PydanticPersistence

from .actions import Action
from .bindings import Binding, ButtonBinding, DialBinding, expand_action_shorthand
from .enums import ConnectMode

logger = logging.getLogger(__name__)


class GraphRule(BaseModel):
    """Hotplug and mixer-assignment rule for nodes matching ``node``."""

    node: str = Field(min_length=1, description="Node name, description, or re:<pattern>")
    on_connect: list[Action] = Field(default_factory=list, description="Run when the node appears")
    on_disconnect: list[Action] = Field(default_factory=list, description="Run when the node disappears")
    mixer_channel: Optional[Union[int, Literal["round_robin"]]] = Field(
        default=None, description="Mixer channel (1-based) or round_robin for the first free channel"
    )
    mixer_mode: ConnectMode = Field(default=ConnectMode.SMART, description="How to connect to the mixer")

    @property
    def has_hotplug_actions(self) -> bool:
        return bool(self.on_connect or self.on_disconnect)


class PluginConfig(BaseModel):
    """An LV2 plugin hosted in its own process."""

    name: str = Field(min_length=1, description="Instance name (also the graph node name)")
    uri: str = Field(min_length=1, description="LV2 plugin URI")
    host: str = Field(default="jalv", description="Host executable")


class PipewireConfig(BaseModel):
    rules: list[GraphRule] = Field(default_factory=list)
    plugins: list[PluginConfig] = Field(default_factory=list)


class MixerSettings(BaseModel):
    """Sentinel names used to find the mixer and the main output."""

    node: str = Field(default="Mixer", description="Description of the mixer node")
    main_output: str = Field(
        default=r"re:^alsa_output\.",
        description="Node reference unlinked by smart connects",
    )
    exclusive_pattern: Optional[str] = Field(
        default=None,
        description="Regex limiting which destinations exclusive connects unlink (None = all)",
    )


class Config(BaseModel):
    """Top-level daemon configuration."""

    device: str = Field(default="APC Key 25 MIDI", description="Built-in device definition name")
    input_midi: str = Field(min_length=1, description="Raw MIDI port name to read events from")
    output_midi: str = Field(min_length=1, description="Raw MIDI port name to send LED updates to")
    connections: list[tuple[str, str]] = Field(
        default_factory=list, description="Sequencer client pairs to connect at startup"
    )
    bindings: dict[str, Binding] = Field(default_factory=dict, description="Control label -> binding")
    pipewire: PipewireConfig = Field(default_factory=PipewireConfig)
    mixer: MixerSettings = Field(default_factory=MixerSettings)
    lv2_path: Optional[str] = Field(default=None, description="LV2_PATH for plugin hosts")
    prompt_theme: Optional[str] = Field(default=None, description="rofi theme for the source prompt")
    state_file: Optional[Path] = Field(default=None, description="Where runtime state is persisted")
    long_press_timeout_ms: int = Field(default=500, gt=0, description="Default long-press hold time")
    reconcile_debounce_ms: int = Field(
        default=150, gt=0, description="Quiet period before graph rules are evaluated"
    )
    sequencer_device: str = Field(default="14:0", description="Sequencer output device address")

    # Set by load_config so config::reload re-reads the same file
    source_path: Optional[Path] = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def expand_binding_shorthand(cls, data):
        """Allow a bare action as a binding (fires on press)."""
        if isinstance(data, dict) and isinstance(data.get("bindings"), dict):
            bindings = {k: expand_action_shorthand(v) for k, v in data["bindings"].items()}
            data = {**data, "bindings": bindings}
        return data

    def button_binding(self, label: str) -> Optional[ButtonBinding]:
        binding = self.bindings.get(label)
        return binding if isinstance(binding, ButtonBinding) else None

    def dial_binding(self, label: str) -> Optional[DialBinding]:
        binding = self.bindings.get(label)
        return binding if isinstance(binding, DialBinding) else None

    @property
    def hotplug_nodes(self) -> list[str]:
        """Node references tracked for presence."""
        return [rule.node for rule in self.pipewire.rules if rule.has_hotplug_actions]

    @property
    def mixer_rules(self) -> list[GraphRule]:
        return [rule for rule in self.pipewire.rules if rule.mixer_channel is not None]


def load_config(path: Path) -> Config:
    """Load and validate a configuration document (JSON or YAML).

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigFileInvalidError: If the syntax is invalid
        ConfigValidationError: If the content fails validation
    """
    config = PydanticPersistence.load_document(path, Config)
    config.source_path = path
    logger.info(f"Loaded config file {path}")
    return config
