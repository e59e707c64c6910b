"""In-memory audio-graph model.

The model is an id-keyed table of every object seen in the snapshot feed
plus two link indices rebuilt from scratch after every ingestion:

- ``forward``: ``"<output node id>:<output port id>"`` -> destinations
- ``reverse``: ``"<input node id>:<input port id>"`` -> sources

Items are upserted and never deleted; a removal shows up as an item whose
info is null, which no longer matches as a node, port or link.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional, Union

from pydantic import ValidationError

from pworch.exceptions import GraphIntegrityError, SnapshotFormatError
from pworch.models.graph import GraphItem

logger = logging.getLogger(__name__)

REGEX_PREFIX = "re:"

# (link property, info fallback key)
LINK_ENDPOINTS = (
    ("link.output.node", "output-node-id"),
    ("link.output.port", "output-port-id"),
    ("link.input.node", "input-node-id"),
    ("link.input.port", "input-port-id"),
)


@dataclass
class LinkEntry:
    """One port and the ports it is linked with."""

    node: Optional[GraphItem]
    port: Optional[GraphItem]
    # (node, port) pairs on the other end
    links: list[tuple[Optional[GraphItem], Optional[GraphItem]]] = field(default_factory=list)

    def has_destination(self, node_id: int, port_id: Optional[int] = None) -> bool:
        for node, port in self.links:
            if node is None or node.id != node_id:
                continue
            if port_id is None or (port is not None and port.id == port_id):
                return True
        return False


def link_key(node_id: Any, port_id: Any) -> str:
    return f"{node_id}:{port_id}"


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning(f"invalid node pattern {pattern!r}: {e}")
        return None


def matches_node(item: GraphItem, ref: str) -> bool:
    """Check a node against a reference (exact name/description or ``re:`` pattern)."""
    if not item.is_node:
        return False

    name = item.name
    description = item.description

    if ref.startswith(REGEX_PREFIX):
        pattern = _compile(ref[len(REGEX_PREFIX):])
        if pattern is None:
            return False
        return any(value is not None and pattern.search(value) for value in (name, description))

    return ref == name or ref == description


def is_audio_port(port: GraphItem) -> bool:
    dsp_format = port.prop("format.dsp")
    return dsp_format is None or "audio" in str(dsp_format)


class GraphModel:
    """Item table and link indices for the audio graph."""

    def __init__(self):
        self.items: dict[int, GraphItem] = {}
        self.forward: dict[str, LinkEntry] = {}
        self.reverse: dict[str, LinkEntry] = {}
        # Bumped on every ingestion
        self.generation = 0

    def ingest(self, fragment: Union[str, list]) -> int:
        """Merge a snapshot fragment and rebuild the link indices.

        Args:
            fragment: JSON text of an array of graph objects, or the decoded list

        Returns:
            Number of items upserted

        Raises:
            SnapshotFormatError: If the fragment is not an array of objects with ids
            GraphIntegrityError: If a link item lacks an endpoint id
        """
        if isinstance(fragment, str):
            try:
                data = json.loads(fragment)
            except json.JSONDecodeError as e:
                raise SnapshotFormatError(str(e), fragment) from e
        else:
            data = fragment

        if not isinstance(data, list):
            raise SnapshotFormatError("snapshot is not a JSON array", str(fragment))

        try:
            parsed = [GraphItem.model_validate(obj) for obj in data]
        except ValidationError as e:
            raise SnapshotFormatError(str(e), str(fragment)) from e

        for item in parsed:
            self.items[item.id] = item

        self._rebuild_links()
        self.generation += 1
        logger.debug(f"[graph] ingested {len(parsed)} items ({len(self.items)} total)")
        return len(parsed)

    def _rebuild_links(self) -> None:
        forward: dict[str, LinkEntry] = {}
        reverse: dict[str, LinkEntry] = {}

        for item in self.items.values():
            if not item.is_link:
                continue

            ids = [item.prop(prop, item.prop(fallback)) for prop, fallback in LINK_ENDPOINTS]
            missing = [prop for (prop, _), value in zip(LINK_ENDPOINTS, ids) if value is None]
            if missing:
                raise GraphIntegrityError(item.id, missing)

            out_node, out_port, in_node, in_port = (int(v) for v in ids)

            fw_key = link_key(out_node, out_port)
            rv_key = link_key(in_node, in_port)

            if fw_key not in forward:
                forward[fw_key] = LinkEntry(self.items.get(out_node), self.items.get(out_port))
            if rv_key not in reverse:
                reverse[rv_key] = LinkEntry(self.items.get(in_node), self.items.get(in_port))

            forward[fw_key].links.append((self.items.get(in_node), self.items.get(in_port)))
            reverse[rv_key].links.append((self.items.get(out_node), self.items.get(out_port)))

        self.forward = forward
        self.reverse = reverse

    @property
    def nodes(self) -> list[GraphItem]:
        return [item for item in self.items.values() if item.is_node]

    @property
    def ports(self) -> list[GraphItem]:
        return [item for item in self.items.values() if item.is_port]

    @property
    def links(self) -> list[GraphItem]:
        return [item for item in self.items.values() if item.is_link]

    def find_node(self, ref: str) -> Optional[GraphItem]:
        return next((item for item in self.items.values() if matches_node(item, ref)), None)

    def is_present(self, ref: str) -> bool:
        return any(matches_node(item, ref) for item in self.items.values())

    def ports_of(self, node_id: int, direction: Optional[str] = None) -> list[GraphItem]:
        """Ports owned by a node, optionally filtered by direction (``in``/``out``)."""
        return [
            item
            for item in self.items.values()
            if item.is_port
            and item.owner_node_id == node_id
            and (direction is None or item.direction == direction)
        ]

    def find_port(self, node_id: int, port_name: str) -> Optional[GraphItem]:
        return next((p for p in self.ports_of(node_id) if p.name == port_name), None)

    def links_from(self, node_id: int, port_id: int) -> list[tuple[Optional[GraphItem], Optional[GraphItem]]]:
        entry = self.forward.get(link_key(node_id, port_id))
        return list(entry.links) if entry else []

    def links_to(self, node_id: int, port_id: int) -> list[tuple[Optional[GraphItem], Optional[GraphItem]]]:
        entry = self.reverse.get(link_key(node_id, port_id))
        return list(entry.links) if entry else []
