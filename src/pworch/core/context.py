"""The single shared mutable runtime context.

One ``RuntimeContext`` is built at startup and passed by reference to every
component. Execution is single-threaded (one event loop), so it is mutated
without locks.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from pworch.graph.hotplug import HotplugTracker
from pworch.graph.model import GraphModel
from pworch.models.bindings import PressSlot
from pworch.models.config import Config
from pworch.models.device import Device
from pworch.models.state import PersistedState
from pworch.protocols import LedSink, PluginLink, SequencerLink, SourceChooser

from .timers import ResettableTimer


@dataclass
class PendingPress:
    """A long-press timer and the short press to run if released early."""

    timer: ResettableTimer
    deferred: Optional[PressSlot] = None


@dataclass
class CommandState:
    """A running command instance tracked under its binding identity."""

    started: float
    process: Optional[asyncio.subprocess.Process] = None


@dataclass
class Links:
    """External links the interpreter drives."""

    leds: LedSink
    sequencer: SequencerLink
    chooser: SourceChooser
    plugins: dict[str, PluginLink] = field(default_factory=dict)


@dataclass
class RuntimeContext:
    config: Config
    device: Device
    graph: GraphModel = field(default_factory=GraphModel)
    hotplug: HotplugTracker = field(default_factory=HotplugTracker)

    shift_pressed: bool = False
    prompt_open: bool = False

    # Per dial label
    ranges: dict[str, tuple[float, float]] = field(default_factory=dict)
    mutes: dict[str, bool] = field(default_factory=dict)
    dials: dict[str, int] = field(default_factory=dict)

    # Per button label
    led_save_states: dict[str, str] = field(default_factory=dict)
    button_colors: dict[str, str] = field(default_factory=dict)
    button_timers: dict[str, PendingPress] = field(default_factory=dict)

    # Per binding identity
    command_states: dict[str, CommandState] = field(default_factory=dict)
    cycle_states: dict[str, int] = field(default_factory=dict)

    reconcile_timer: Optional[ResettableTimer] = None

    @classmethod
    def create(cls, config: Config, device: Device) -> "RuntimeContext":
        """Build a fresh context; dials start at the middle of their range."""
        return cls(
            config=config,
            device=device,
            hotplug=HotplugTracker(config.hotplug_nodes),
            dials={dial.label: dial.midpoint for dial in device.dials},
        )

    def snapshot(self) -> PersistedState:
        return PersistedState(
            ranges=dict(self.ranges),
            mutes=dict(self.mutes),
            dials=dict(self.dials),
            led_save_states=dict(self.led_save_states),
            cycle_states=dict(self.cycle_states),
            button_colors=dict(self.button_colors),
        )

    def restore(self, state: PersistedState) -> None:
        self.ranges = dict(state.ranges)
        self.mutes = dict(state.mutes)
        self.dials = {**self.dials, **state.dials}
        self.led_save_states = dict(state.led_save_states)
        self.cycle_states = dict(state.cycle_states)
        self.button_colors = dict(state.button_colors)

    def cancel_timers(self) -> None:
        for pending in self.button_timers.values():
            pending.timer.cancel()
        self.button_timers.clear()
        if self.reconcile_timer is not None:
            self.reconcile_timer.cancel()
