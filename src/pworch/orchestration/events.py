"""Events merged by the orchestrator into a single queue."""

from dataclasses import dataclass
from typing import Optional

import mido

from pworch.exceptions import ProcessFailureError


@dataclass(frozen=True)
class MidiInput:
    """A decoded message from the control surface."""

    message: mido.Message


@dataclass(frozen=True)
class GraphSnapshot:
    """One framed snapshot fragment from the graph monitor."""

    fragment: str


@dataclass(frozen=True)
class ComponentExited:
    """A watched component stopped for good."""

    component_id: str
    critical: bool
    error: Optional[ProcessFailureError] = None

    @property
    def exit_code(self) -> int:
        return self.error.exit_code if self.error is not None else 0


@dataclass(frozen=True)
class TerminationSignal:
    signal_name: str


Event = MidiInput | GraphSnapshot | ComponentExited | TerminationSignal
