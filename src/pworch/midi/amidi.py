"""Raw MIDI port access through ``amidi``."""

import logging
import re
from collections.abc import Callable, Iterable
from typing import NamedTuple, Optional

import mido

from pworch.exceptions import DevicePortNotFoundError, ExternalCommandError, handle_midi_send_error
from pworch.utils.process import SupervisedProcess, run

from .codec import ByteTriplet, HexMidiDecoder, encode_hex

logger = logging.getLogger(__name__)

_LISTING_RE = re.compile(r"^(I|O|IO)\s+(\S+)\s+(.*?)\s*$")


class RawMidiPort(NamedTuple):
    direction: str
    port: str
    name: str


def parse_amidi_listing(listing: str) -> list[RawMidiPort]:
    """Parse ``amidi -l`` output into ports (header line skipped)."""
    ports = []
    for line in listing.splitlines():
        match = _LISTING_RE.match(line.strip())
        if match:
            ports.append(RawMidiPort(*match.groups()))
    return ports


async def list_ports() -> list[RawMidiPort]:
    stdout, _ = await run(["amidi", "-l"])
    return parse_amidi_listing(stdout)


async def find_device_port(name: str) -> str:
    """Resolve a device name to its raw port (``hw:X,Y,Z``).

    Raises:
        DevicePortNotFoundError: If no listed port has that name
    """
    ports = await list_ports()
    for port in ports:
        if port.name == name:
            logger.debug(f"Resolved MIDI device '{name}' to {port.port}")
            return port.port
    raise DevicePortNotFoundError(name, [p.name for p in ports])


class AmidiInput(SupervisedProcess):
    """Streams decoded messages from a raw MIDI port.

    The decoder is owned here so running-status state persists across
    output chunks.
    """

    def __init__(self, port: str, on_message: Callable[[mido.Message], None], component_id: str = "amidi"):
        super().__init__(component_id)
        self.port = port
        self.decoder = HexMidiDecoder()
        self._on_message = on_message

    def command(self) -> list[str]:
        return ["amidi", "-p", self.port, "--dump"]

    def on_stdout_line(self, line: str) -> None:
        msg = self.decoder.decode_line(line)
        if msg is not None:
            self._on_message(msg)

    def on_stderr_line(self, line: str) -> None:
        logger.error(f"[{self.component_id}-stderr] {line}")


class AmidiOutput:
    """Sends LED triplets to a raw MIDI port."""

    def __init__(self, port: str):
        self.port = port

    async def send(self, triplets: Iterable[Optional[ByteTriplet]]) -> None:
        """Write all triplets in one ``--send-hex`` call; failures are logged."""
        payload = encode_hex(triplets)
        if not payload:
            return

        logger.debug(f"[amidi-send] {payload}")
        try:
            await run(["amidi", "-p", self.port, f"--send-hex={payload}"])
        except ExternalCommandError as e:
            handle_midi_send_error(e)
