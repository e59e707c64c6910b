"""Orchestration layer: event merging and daemon lifecycle."""

from .events import ComponentExited, GraphSnapshot, MidiInput, TerminationSignal
from .orchestrator import Orchestrator, bootstrap

__all__ = [
    "ComponentExited",
    "GraphSnapshot",
    "MidiInput",
    "Orchestrator",
    "TerminationSignal",
    "bootstrap",
]
