"""Hotplug detection for graph rules."""

import logging
from collections.abc import Iterable

from pworch.models.actions import Action
from pworch.models.config import GraphRule

from .model import GraphModel

logger = logging.getLogger(__name__)


class HotplugTracker:
    """Remembers whether each rule's node was present at the last pass.

    Every tracked node starts as absent, so a node already present at
    startup fires its on-connect actions on the first pass.
    """

    def __init__(self, nodes: Iterable[str] = ()):
        self.presence: dict[str, bool] = {node: False for node in nodes}

    def reseed(self, nodes: Iterable[str]) -> None:
        """Track newly configured nodes as absent; existing entries are kept."""
        for node in nodes:
            self.presence.setdefault(node, False)

    def evaluate(self, graph: GraphModel, rules: Iterable[GraphRule]) -> list[Action]:
        """Diff presence against the graph and return the actions to fire.

        On-connect actions of every rule come before on-disconnect actions.
        Presence is updated for every tracked node afterwards.
        """
        rules = list(rules)
        current = {node: graph.is_present(node) for node in self.presence}

        connected: list[Action] = []
        disconnected: list[Action] = []
        for rule in rules:
            if rule.node not in self.presence:
                continue
            was_present = self.presence[rule.node]
            is_present = current[rule.node]
            if is_present and not was_present and rule.on_connect:
                logger.info(f"[hotplug] '{rule.node}' connected")
                connected.extend(rule.on_connect)
            elif was_present and not is_present and rule.on_disconnect:
                logger.info(f"[hotplug] '{rule.node}' disconnected")
                disconnected.extend(rule.on_disconnect)

        self.presence.update(current)
        return connected + disconnected
