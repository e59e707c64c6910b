"""External process helpers.

Two shapes of external process are used by the daemon:

- one-shot commands (``pw-link``, ``amidi --send-hex``, ``aconnect``) run via
  :func:`run`, which raises :class:`ExternalCommandError` on failure;
- long-lived watched components (``amidi --dump``, ``pw-dump -m``, the
  sequencer and plugin hosts) subclassed from :class:`SupervisedProcess`,
  which streams their output line by line and surfaces an unexpected exit
  as :class:`ProcessFailureError`.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from pworch.exceptions import ExternalCommandError, ProcessFailureError

logger = logging.getLogger(__name__)


async def run(argv: list[str], input: Optional[str] = None) -> tuple[str, str]:
    """Run a command to completion.

    Args:
        argv: Program and arguments (no shell)
        input: Text written to the command's stdin

    Returns:
        Tuple of (stdout, stderr)

    Raises:
        ExternalCommandError: If the command exits non-zero or cannot be started
    """
    command = " ".join(argv)
    logger.debug(f"[run] {command}")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ExternalCommandError(command, 127, stderr=str(e)) from e

    stdout, stderr = await process.communicate(input.encode() if input is not None else None)
    out = stdout.decode(errors="replace")
    err = stderr.decode(errors="replace")

    if process.returncode != 0:
        raise ExternalCommandError(command, process.returncode, stderr=err, stdout=out)

    return out, err


class SupervisedProcess(ABC):
    """A long-lived external component watched by the orchestrator.

    Subclasses provide the command line and react to output lines. Calling
    :meth:`wait` runs the process (restarting it when :meth:`request_restart`
    was called) and returns 0 on a clean exit; any other exit raises
    :class:`ProcessFailureError` tagged with ``component_id``.
    """

    def __init__(self, component_id: str, env: Optional[dict[str, str]] = None):
        self.component_id = component_id
        self._env = env
        self._process: Optional[asyncio.subprocess.Process] = None
        self._readers: list[asyncio.Task] = []
        self._restart_requested = False
        self._stopping = False

    @abstractmethod
    def command(self) -> list[str]:
        """Return the argv used to start the component."""

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """Spawn the component and begin streaming its output."""
        argv = self.command()
        env = {**os.environ, **self._env} if self._env else None
        logger.info(f"[{self.component_id}] starting: {' '.join(argv)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            logger.error(f"[{self.component_id}] failed to start: {e}")
            raise ProcessFailureError(self.component_id, 127) from e

        self._readers = [
            asyncio.create_task(self._pump(self._process.stdout, self.on_stdout_line)),
            asyncio.create_task(self._pump(self._process.stderr, self.on_stderr_line)),
        ]
        await self.on_started()

    async def on_started(self) -> None:
        """Hook run right after the process is spawned."""

    def on_stdout_line(self, line: str) -> None:
        logger.debug(f"[{self.component_id}-stdout] {line}")

    def on_stderr_line(self, line: str) -> None:
        logger.warning(f"[{self.component_id}-stderr] {line}")

    async def _pump(self, stream: asyncio.StreamReader, handler) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                return
            line = raw.decode(errors="replace").rstrip("\r\n")
            try:
                handler(line)
            except Exception as e:
                logger.error(f"[{self.component_id}] error handling output line {line!r}: {e}", exc_info=True)

    async def _wait_once(self) -> int:
        assert self._process is not None
        code = await self._process.wait()
        # Drain remaining output before reporting the exit
        await asyncio.gather(*self._readers, return_exceptions=True)
        self._readers = []
        logger.info(f"[{self.component_id}] process exited with code {code}")
        return code

    async def wait(self) -> int:
        """Run the component until it exits for good.

        Returns:
            0 when the component exited cleanly or was stopped

        Raises:
            ProcessFailureError: If the component exited with a non-zero code
        """
        while True:
            if not self.running:
                await self.start()

            code = await self._wait_once()
            self._process = None

            if self._stopping:
                return 0

            if self._restart_requested:
                self._restart_requested = False
                logger.warning(f"[{self.component_id}] restarting")
                continue

            if code == 0:
                return 0

            raise ProcessFailureError(self.component_id, code)

    def request_restart(self) -> None:
        """Kill the current process; :meth:`wait` starts a fresh one."""
        self._restart_requested = True
        if self.running:
            self._process.kill()

    async def write_line(self, line: str) -> None:
        """Write one line to the component's stdin."""
        if not self.running or self._process.stdin is None:
            logger.warning(f"[{self.component_id}] not running, dropping input {line!r}")
            return

        if not line.endswith("\n"):
            line += "\n"

        logger.debug(f"[{self.component_id}] [cmd] {line.rstrip()!r}")
        try:
            self._process.stdin.write(line.encode())
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.error(f"[{self.component_id}] failed to write to stdin: {e}")

    async def stop(self, timeout: float = 2.0) -> None:
        """Terminate the component, killing it if it does not exit in time."""
        self._stopping = True
        if not self.running:
            return

        self._process.terminate()
        try:
            await asyncio.wait_for(self._process.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.component_id}] did not terminate, killing")
            self._process.kill()
