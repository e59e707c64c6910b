"""Protocol definitions for the daemon's external links.

The interpreter and reconciler only talk to these interfaces, so every
external process (link tool, raw MIDI port, sequencer, plugin hosts,
selection prompt) can be swapped for a fake in tests.
"""

from typing import TYPE_CHECKING, Iterable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pworch.midi.codec import ByteTriplet


@runtime_checkable
class LinkRequester(Protocol):
    """Issues graph link create/destroy requests for ``node:port`` endpoints."""

    async def create(self, src: str, dest: str) -> None:
        ...

    async def destroy(self, src: str, dest: str) -> None:
        ...


@runtime_checkable
class LedSink(Protocol):
    """Writes LED triplets to the control surface."""

    async def send(self, triplets: Iterable[Optional["ByteTriplet"]]) -> None:
        """
        Send all triplets in one write.

        Note:
            Implementations log failures rather than raising; LED feedback
            is best-effort.
        """
        ...


@runtime_checkable
class SequencerLink(Protocol):
    """Accepts ``oaddev`` commands for the sequencer."""

    async def send(self, *commands: Optional[str]) -> None:
        ...


@runtime_checkable
class PluginLink(Protocol):
    """Command stream of one hosted plugin."""

    async def write_line(self, line: str) -> None:
        ...


@runtime_checkable
class SourceChooser(Protocol):
    """An external selection prompt."""

    async def choose(self, candidates: list[str], prompt: str) -> Optional[str]:
        """
        Show the candidates and wait for a choice.

        Returns:
            The chosen line, or None if the prompt was dismissed
        """
        ...

    async def dismiss(self) -> None:
        """Close an open prompt."""
        ...
