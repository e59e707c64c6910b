"""External process exceptions."""

from .base import PwOrchError


class ProcessFailureError(PwOrchError):
    """A watched external component exited unexpectedly.

    Carries the component identity and its exit code so the daemon can
    terminate with that code.
    """

    def __init__(self, component_id: str, exit_code: int):
        super().__init__(
            user_message=f"Problem occurred with {component_id}: exit code {exit_code}",
            technical_message=f"Watched component {component_id!r} exited with code {exit_code}",
            recoverable=False,
        )
        self.component_id = component_id
        self.exit_code = exit_code


class ExternalCommandError(PwOrchError):
    """A one-shot external command returned a non-zero exit code."""

    def __init__(self, command: str, exit_code: int, stderr: str = "", stdout: str = ""):
        super().__init__(
            user_message=f"Command failed with exit code {exit_code}: {command}",
            technical_message=f"{command!r} exited {exit_code}: {stderr.strip()}",
            recoverable=True,
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
