"""Source selection prompt backed by ``rofi``."""

import logging
from typing import Optional

from pworch.exceptions import ExternalCommandError
from pworch.utils.process import run

logger = logging.getLogger(__name__)


class RofiChooser:
    """Shows a dmenu-style list and returns the picked line."""

    def __init__(self, theme: Optional[str] = None, executable: str = "rofi"):
        self.theme = theme
        self.executable = executable

    def command(self, prompt: str) -> list[str]:
        argv = [self.executable, "-dmenu", "-i", "-p", prompt]
        if self.theme:
            argv += ["-theme", self.theme]
        return argv

    async def choose(self, candidates: list[str], prompt: str) -> Optional[str]:
        try:
            stdout, _ = await run(self.command(prompt), input="\n".join(candidates))
        except ExternalCommandError as e:
            # rofi exits non-zero when dismissed with Escape
            logger.debug(f"[prompt] dismissed ({e.exit_code})")
            return None

        choice = stdout.strip()
        return choice or None

    async def dismiss(self) -> None:
        try:
            await run(["xdotool", "key", "Escape"])
        except ExternalCommandError as e:
            logger.error(f"[prompt] failed to dismiss: {e.technical_message}")
