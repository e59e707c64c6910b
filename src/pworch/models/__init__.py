"""Data models for the controller daemon."""

from .actions import (
    Action,
    CancelAction,
    CommandAction,
    ConfigReloadAction,
    CycleAction,
    CycleItem,
    ExclusiveLinkAction,
    LedRestoreAction,
    LedSaveAction,
    LedSetAction,
    LinkAction,
    LoadPresetAction,
    MidiAction,
    MidiEventSpec,
    MixerSelectAction,
    MuteAction,
    RangeAction,
    ShowGuiAction,
    UnlinkAction,
)
from .bindings import Binding, ButtonBinding, DialBinding, LongPressSlot, PressSlot
from .config import Config, GraphRule, MixerSettings, PipewireConfig, PluginConfig, load_config
from .device import Button, Device, Dial
from .enums import ConnectMode, MapFunction
from .graph import GraphItem, NodeAndPort
from .state import PersistedState

__all__ = [
    # Actions
    "Action",
    # Bindings
    "Binding",
    # Device
    "Button",
    "ButtonBinding",
    "CancelAction",
    "CommandAction",
    # Config
    "Config",
    "ConfigReloadAction",
    # Enums
    "ConnectMode",
    "CycleAction",
    "CycleItem",
    "Device",
    "Dial",
    "DialBinding",
    "ExclusiveLinkAction",
    # Graph
    "GraphItem",
    "GraphRule",
    "LedRestoreAction",
    "LedSaveAction",
    "LedSetAction",
    "LinkAction",
    "LoadPresetAction",
    "LongPressSlot",
    "MapFunction",
    "MidiAction",
    "MidiEventSpec",
    "MixerSelectAction",
    "MixerSettings",
    "MuteAction",
    "NodeAndPort",
    # State
    "PersistedState",
    "PipewireConfig",
    "PluginConfig",
    "PressSlot",
    "RangeAction",
    "ShowGuiAction",
    "UnlinkAction",
    "load_config",
]
