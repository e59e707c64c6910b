"""ALSA sequencer client connections through ``aconnect``."""

import logging
import re

from pworch.exceptions import ExternalCommandError
from pworch.utils.process import run

logger = logging.getLogger(__name__)

_CLIENT_RE = re.compile(r"client (\d+): '(.*?)'")

ALREADY_SUBSCRIBED = "Connection is already subscribed"


def parse_client_listing(listing: str) -> dict[str, str]:
    """Map client names to client numbers from ``aconnect --list`` output."""
    clients = {}
    for line in listing.splitlines():
        match = _CLIENT_RE.search(line)
        if match:
            number, name = match.groups()
            clients[name] = number
    return clients


async def connect_midi_clients(source: str, dest: str) -> bool:
    """Connect two sequencer clients by name.

    Returns:
        True if connected (or already connected), False if either client is missing

    Raises:
        ExternalCommandError: If aconnect fails for another reason
    """
    listing, _ = await run(["aconnect", "--list"])
    clients = parse_client_listing(listing)

    source_client = clients.get(source)
    dest_client = clients.get(dest)
    if source_client is None or dest_client is None:
        logger.error(f"Failed to locate either '{source}' or '{dest}'")
        return False

    try:
        await run(["aconnect", source_client, dest_client])
    except ExternalCommandError as e:
        if e.stderr.strip() != ALREADY_SUBSCRIBED:
            raise
        logger.debug(f"[aconnect] {source} -> {dest} already connected")
    else:
        logger.info(f"[aconnect] connected {source} -> {dest}")
    return True
