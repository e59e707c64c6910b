"""Graph link requests through ``pw-link``."""

import logging

from pworch.utils.process import run

logger = logging.getLogger(__name__)


class PwLinkRequester:
    """Creates and destroys links between ``node:port`` endpoints.

    Failures raise :class:`~pworch.exceptions.ExternalCommandError`; the
    reconciler decides which of them are benign.
    """

    async def create(self, src: str, dest: str) -> None:
        logger.info(f"[command] pw-link '{src}' '{dest}'")
        await run(["pw-link", src, dest])

    async def destroy(self, src: str, dest: str) -> None:
        logger.info(f"[command] pw-link -d '{src}' '{dest}'")
        await run(["pw-link", "-d", src, dest])
