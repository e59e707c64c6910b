"""Sequencer link: line protocol and supervised helper process.

The sequencer helper (midish) owns a virtual output device with sixteen
output channels ``out0``..``out15``. Events are queued with ``oaddev``; the
current output is switched with ``co outN``, which is prefixed automatically
whenever a command targets a different channel than the previous one.
"""

import logging
import re
from typing import Optional

import mido

from pworch.utils.process import SupervisedProcess

logger = logging.getLogger(__name__)

OUTPUT_CHANNELS = 16
PITCHWHEEL_OFFSET = 8192

_CHANNEL_RE = re.compile(r"\b(out\d+)\b")


def control_command(channel: int, controller: int, value: int, high_precision: bool = False) -> str:
    """Build a controller command; 14-bit values use ``xctl``."""
    op = "xctl" if high_precision or value > 127 else "ctl"
    return f"oaddev {{{op} out{channel} {controller} {value}}}"


def to_sequencer_command(msg: mido.Message, high_precision: bool = False) -> str:
    """Translate a channel message into an ``oaddev`` command.

    Raises:
        ValueError: For note messages, which the sequencer link cannot emit
    """
    match msg.type:
        case "note_on" | "note_off":
            raise ValueError("cannot use note_on or note_off events with the sequencer")
        case "polytouch":
            return f"oaddev {{kat out{msg.channel} {msg.note} {msg.value}}}"
        case "control_change":
            return control_command(msg.channel, msg.control, msg.value, high_precision)
        case "program_change":
            return f"oaddev {{xpc out{msg.channel} {msg.program}}}"
        case "aftertouch":
            return f"oaddev {{cat out{msg.channel} {msg.value}}}"
        case "pitchwheel":
            return f"oaddev {{bend out{msg.channel} {msg.pitch + PITCHWHEEL_OFFSET}}}"
        case _:
            raise ValueError(f"unsupported message type for the sequencer: {msg.type}")


class SequencerProtocol:
    """Tracks the current output channel and formats outgoing commands."""

    def __init__(self):
        self.current_output = "out0"

    @staticmethod
    def init_commands(device: str) -> list[str]:
        """Commands creating the output device and its sixteen channels."""
        commands = [f'dnew 0 "{device}" rw', "i"]
        commands += [f"onew out{i} {{0 {i}}}" for i in range(OUTPUT_CHANNELS)]
        commands.append("co out0")
        return commands

    def reset(self) -> None:
        self.current_output = "out0"

    def format(self, command: str) -> str:
        """Prefix ``co outN`` when the command targets a new output channel."""
        match = _CHANNEL_RE.search(command)
        if match is not None and match.group(1) != self.current_output:
            self.current_output = match.group(1)
            return f"co {self.current_output}\n{command}"
        return command


class SequencerProcess(SupervisedProcess):
    """The sequencer helper, restarted when it reports a sensing timeout."""

    def __init__(self, device: str = "14:0", executable: str = "midish", component_id: str = "midish"):
        super().__init__(component_id)
        self.device = device
        self.executable = executable
        self.protocol = SequencerProtocol()

    def command(self) -> list[str]:
        return ["stdbuf", "-i0", "-o0", "-e0", self.executable]

    async def on_started(self) -> None:
        self.protocol.reset()
        for line in self.protocol.init_commands(self.device):
            await self.write_line(line)
        logger.info(f"[{self.component_id}] startup finished")

    def on_stdout_line(self, line: str) -> None:
        if line.strip():
            logger.info(f"[{self.component_id}-stdout] {line.strip()}")

    def on_stderr_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        logger.warning(f"[{self.component_id}-stderr] {line}")
        if "sensing timeout" in line:
            logger.warning(f"[{self.component_id}] sensing timeout detected, restarting")
            self.request_restart()

    async def send(self, *commands: Optional[str]) -> None:
        """Send one or more ``oaddev`` commands."""
        for command in commands:
            if command:
                for line in self.protocol.format(command).splitlines():
                    await self.write_line(line)
