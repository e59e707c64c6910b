"""Audio-graph snapshot items."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

NODE_TYPE = "PipeWire:Interface:Node"
PORT_TYPE = "PipeWire:Interface:Port"
LINK_TYPE = "PipeWire:Interface:Link"


class GraphItem(BaseModel):
    """One object from a graph snapshot (node, port, link, device, client, ...).

    Only ``id``, ``type`` and ``info`` are interpreted; every other key the
    monitor emits is kept as-is. A removal record from the monitor carries
    ``info: null`` and no type, so it overwrites the previous item and the
    object stops matching as a node/port/link.
    """

    model_config = ConfigDict(extra="allow")

    id: int = Field(description="Stable object id")
    type: str = Field(default="", description="Interface type tag")
    info: Optional[dict[str, Any]] = Field(default=None, description="Object info block")

    @property
    def props(self) -> dict[str, Any]:
        """The object's property bag (empty when absent)."""
        if not self.info:
            return {}
        return self.info.get("props") or {}

    def prop(self, key: str, default: Any = None) -> Any:
        """Look up a property, falling back to the raw info block."""
        props = self.props
        if key in props:
            return props[key]
        if self.info and key in self.info:
            return self.info[key]
        return default

    @property
    def is_node(self) -> bool:
        return self.type == NODE_TYPE

    @property
    def is_port(self) -> bool:
        return self.type == PORT_TYPE

    @property
    def is_link(self) -> bool:
        return self.type == LINK_TYPE

    @property
    def name(self) -> Optional[str]:
        """``node.name`` for nodes, ``port.name`` for ports."""
        if self.is_port:
            return self.prop("port.name")
        return self.prop("node.name")

    @property
    def description(self) -> Optional[str]:
        return self.prop("node.description")

    @property
    def direction(self) -> Optional[str]:
        """Port direction (``in``/``out``)."""
        if self.info and "direction" in self.info:
            return self.info["direction"]
        return self.prop("port.direction")

    @property
    def owner_node_id(self) -> Optional[int]:
        """Owning node id for ports."""
        node_id = self.prop("node.id")
        return int(node_id) if node_id is not None else None

    def __str__(self) -> str:
        return f"{self.type.rsplit(':', 1)[-1] or 'Item'}#{self.id}({self.description or self.name or ''})"


class NodeAndPort(BaseModel):
    """A logical ``node:port`` reference as written in configuration.

    ``node`` matches a node's exact name or description, or is a regular
    expression when prefixed with ``re:``.
    """

    node: str = Field(min_length=1, description="Node name, description, or re:<pattern>")
    port: str = Field(min_length=1, description="Port name on the matched node")

    def __str__(self) -> str:
        return f"{self.node}:{self.port}"
