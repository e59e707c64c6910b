"""MIDI command implementations."""

import asyncio
import logging
import sys

import click

from pworch.exceptions import PwOrchError
from pworch.midi.amidi import list_ports
from pworch.midi.codec import HexMidiDecoder

from .errors import exit_with_error

logger = logging.getLogger(__name__)


@click.group(name="midi")
def midi_group():
    """MIDI device commands."""
    pass


@midi_group.command(name="decode")
def decode():
    """
    Decode hex MIDI lines from stdin (as printed by ``amidi --dump``).

    Running status is honoured across lines. Lines that do not decode are
    skipped.
    """
    decoder = HexMidiDecoder()
    for line in sys.stdin:
        msg = decoder.decode_line(line)
        if msg is not None:
            click.echo(str(msg))


@midi_group.command(name="ports")
def ports():
    """List raw MIDI ports."""
    try:
        found = asyncio.run(list_ports())
    except PwOrchError as e:
        exit_with_error(e)
        return

    if not found:
        click.echo("No raw MIDI ports found.")
        return

    click.echo("Raw MIDI ports:\n")
    for port in found:
        click.echo(f"  {port.direction:<3} {port.port:<12} {port.name}")
