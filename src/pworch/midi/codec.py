"""Hex-line MIDI codec for the control surface.

Inbound, the raw MIDI dump is a stream of lines holding two or three hex
bytes. The hardware drops a status byte when it repeats the previous one
(running status), so a two-byte line whose first byte is not a status byte
is decoded as the data bytes of the last status seen.

Outbound, LED updates are NoteOn triplets ``(0x90 | channel, note, state)``
concatenated into a single hex string.
"""

import logging
import re
from typing import Iterable, NamedTuple, Optional

import mido

logger = logging.getLogger(__name__)

# High nibble of a status byte -> mido message type
STATUS_KINDS: dict[int, str] = {
    0x8: "note_off",
    0x9: "note_on",
    0xA: "polytouch",
    0xB: "control_change",
    0xC: "program_change",
    0xD: "aftertouch",
    0xE: "pitchwheel",
}

# Message types whose wire form is status + one data byte
TWO_BYTE_KINDS = {"program_change", "aftertouch"}

NOTE_ON = 0x9

_WHITESPACE = re.compile(r"\s+")


class ByteTriplet(NamedTuple):
    """Three raw protocol bytes; the wire unit for outbound LED commands."""

    b1: int
    b2: int
    b3: int

    def hex(self) -> str:
        return f"{self.b1:02x}{self.b2:02x}{self.b3:02x}"


def status_kind(status: int) -> Optional[str]:
    """Return the message type for a status byte, or None if it isn't one."""
    return STATUS_KINDS.get(status >> 4)


class HexMidiDecoder:
    """Stateful decoder for newline-delimited hex MIDI lines.

    ``last_status`` is the status byte of the last successfully decoded
    message. It starts at 0, so a headless two-byte line before any full
    message is decoded against status 0 and yields no event.
    """

    def __init__(self):
        self.last_status = 0

    def decode_line(self, line: str) -> Optional[mido.Message]:
        """Decode one line into a message.

        Returns:
            The decoded message, or None for blank, malformed or unknown input
        """
        hex_str = _WHITESPACE.sub("", line)
        if not hex_str:
            return None

        if len(hex_str) not in (4, 6):
            logger.warning(f"encountered hex line that wasn't 2 or 3 bytes long: {line.strip()}")
            return None

        try:
            data = bytes.fromhex(hex_str)
        except ValueError:
            logger.warning(f"encountered non-hex line: {line.strip()}")
            return None

        logger.debug(f"[midi-raw] {hex_str}")

        if len(data) == 2 and status_kind(data[0]) is None:
            # Running status: the device omitted a repeated status byte
            b1, b2, b3 = self.last_status, data[0], data[1]
        else:
            b1 = data[0]
            b2 = data[1]
            b3 = data[2] if len(data) > 2 else 0

        kind = status_kind(b1)
        if kind is None:
            logger.debug(f"Unknown MIDI status byte {b1:02x} found")
            return None

        raw = [b1, b2] if kind in TWO_BYTE_KINDS else [b1, b2, b3]
        try:
            msg = mido.Message.from_bytes(raw)
        except ValueError as e:
            logger.warning(f"failed to decode midi bytes {bytes(raw).hex()}: {e}")
            return None

        self.last_status = b1
        return msg

    def decode_lines(self, lines: Iterable[str]) -> list[mido.Message]:
        messages = []
        for line in lines:
            msg = self.decode_line(line)
            if msg is not None:
                messages.append(msg)
        return messages


def led_triplet(channel: int, note: int, state: int) -> ByteTriplet:
    """Build the NoteOn triplet that sets a button LED."""
    return ByteTriplet((NOTE_ON << 4) | channel, note, state)


def message_to_triplet(msg: mido.Message) -> ByteTriplet:
    """Encode a three-byte channel message as a triplet."""
    raw = msg.bytes()
    if len(raw) != 3:
        raise ValueError(f"{msg.type} is not a three-byte message")
    return ByteTriplet(*raw)


def encode_hex(triplets: Iterable[Optional[ByteTriplet]]) -> str:
    """Concatenate triplets into one outbound hex string (None entries skipped)."""
    return "".join(t.hex() for t in triplets if t is not None)
