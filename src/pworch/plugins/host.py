"""LV2 plugin hosts (``jalv`` and compatible) driven over stdin."""

import asyncio
import logging
import re
from typing import Optional

from pworch.models.config import PluginConfig
from pworch.utils.process import SupervisedProcess

logger = logging.getLogger(__name__)

DEFAULT_LV2_PATH = "/usr/lib/lv2"

# The host only loads presets after they have been listed once
PRESET_WARMUP_DELAY = 0.2

_CONTROL_OUTPUT_RE = re.compile(r"^(.*) = (.*)$")


def filter_host_output(line: str) -> Optional[str]:
    """Drop prompts and control value echoes; return the line worth logging."""
    trimmed = line.strip()
    if not trimmed or trimmed.startswith(">") or _CONTROL_OUTPUT_RE.match(trimmed):
        return None
    return trimmed


class PluginHost(SupervisedProcess):
    """One hosted plugin; accepts ``preset <uri>`` and ``show`` commands."""

    def __init__(self, plugin: PluginConfig, lv2_path: Optional[str] = None):
        super().__init__(
            component_id=f"lv2:{plugin.name}",
            env={"DISPLAY": ":0", "LV2_PATH": lv2_path or DEFAULT_LV2_PATH},
        )
        self.plugin = plugin
        self._warmup: Optional[asyncio.Task] = None

    def command(self) -> list[str]:
        return ["stdbuf", "-i0", "-o0", "-e0", self.plugin.host, "-n", self.plugin.name, self.plugin.uri]

    async def on_started(self) -> None:
        self._warmup = asyncio.create_task(self._fetch_presets())

    async def _fetch_presets(self) -> None:
        await asyncio.sleep(PRESET_WARMUP_DELAY)
        await self.write_line("presets")

    def on_stdout_line(self, line: str) -> None:
        kept = filter_host_output(line)
        if kept is not None:
            logger.info(f"[{self.component_id}-stdout] {kept}")

    def on_stderr_line(self, line: str) -> None:
        kept = filter_host_output(line)
        if kept is not None:
            logger.warning(f"[{self.component_id}-stderr] {kept}")

    async def stop(self, timeout: float = 2.0) -> None:
        if self._warmup is not None:
            self._warmup.cancel()
        await super().stop(timeout)
