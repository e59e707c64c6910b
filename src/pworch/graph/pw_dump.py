"""Graph snapshot feed from ``pw-dump``."""

import logging
from collections.abc import Callable
from typing import Optional

from pworch.utils.process import SupervisedProcess, run

from .model import GraphModel

logger = logging.getLogger(__name__)


class SnapshotFramer:
    """Frames monitor output into top-level JSON arrays.

    A fragment starts at a line beginning with ``[`` and ends at a line
    beginning with ``]``; nested arrays are indented and never match.
    """

    def __init__(self):
        self._lines: Optional[list[str]] = None

    def feed(self, line: str) -> Optional[str]:
        """Add one line; return a complete fragment when one closes."""
        if line.startswith("["):
            if line.rstrip().endswith("]"):
                self._lines = None
                return line
            if self._lines is not None:
                logger.warning("[pw-dump] unterminated snapshot fragment discarded")
            self._lines = [line]
            return None

        if self._lines is None:
            if line.strip():
                logger.debug(f"[pw-dump] ignoring stray output: {line!r}")
            return None

        self._lines.append(line)
        if line.startswith("]"):
            fragment = "\n".join(self._lines)
            self._lines = None
            return fragment
        return None


class PwDumpMonitor(SupervisedProcess):
    """Runs ``pw-dump`` in monitor mode and hands out snapshot fragments."""

    def __init__(self, on_fragment: Callable[[str], None], component_id: str = "pw-dump"):
        super().__init__(component_id)
        self.framer = SnapshotFramer()
        self._on_fragment = on_fragment

    def command(self) -> list[str]:
        return ["pw-dump", "-m", "--color=never"]

    def on_stdout_line(self, line: str) -> None:
        fragment = self.framer.feed(line)
        if fragment is not None:
            self._on_fragment(fragment)

    def on_stderr_line(self, line: str) -> None:
        logger.error(f"[{self.component_id}-stderr] {line}")


async def dump_once() -> GraphModel:
    """Take a single snapshot of the whole graph."""
    stdout, _ = await run(["pw-dump", "--color=never"])
    graph = GraphModel()
    graph.ingest(stdout)
    return graph
