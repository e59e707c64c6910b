"""Audio-graph snapshot exceptions.

- GraphError: Base class for graph errors
- SnapshotFormatError: One snapshot fragment could not be parsed (recoverable)
- GraphIntegrityError: A link item lacks its endpoint ids (fatal)
"""

from .base import PwOrchError


class GraphError(PwOrchError):
    """Base exception for audio-graph errors."""
    pass


class SnapshotFormatError(GraphError):
    """A snapshot fragment is not a JSON array of graph objects."""

    def __init__(self, parse_error: str, payload: str = ""):
        preview = payload[:200] + ("..." if len(payload) > 200 else "")
        super().__init__(
            user_message="Failed to parse graph snapshot fragment",
            technical_message=f"Snapshot parse error: {parse_error}; data: {preview!r}",
            recoverable=True,
        )
        self.parse_error = parse_error


class GraphIntegrityError(GraphError):
    """A link item is missing one of its four endpoint ids."""

    def __init__(self, link_id: int, missing: list[str]):
        super().__init__(
            user_message=f"Graph link {link_id} is missing endpoint references",
            technical_message=f"Link item {link_id} has no value for: {', '.join(missing)}",
            recoverable=False,
            recovery_hint="The graph monitor produced an inconsistent snapshot; restart the daemon"
        )
        self.link_id = link_id
        self.missing = missing
