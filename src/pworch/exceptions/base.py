"""Root of the pworch exception hierarchy.

The daemon sorts failures into bands and handles each band at one place:

- recoverable: the affected operation is skipped and the daemon keeps
  running (an external command exiting non-zero, one unparsable graph
  snapshot fragment)
- fatal: startup aborts, or the daemon shuts down with a non-zero exit
  (invalid configuration, missing MIDI port, a link without endpoints)

Benign conditions (a link that already exists) never raise; they are
logged where they are detected.
"""

from typing import Optional


class PwOrchError(Exception):
    """A failure the daemon can describe to the person running it.

    ``user_message`` is printed by the CLI, ``technical_message`` goes to
    the log. ``recoverable`` selects the band.
    """

    def __init__(
        self,
        user_message: str,
        technical_message: Optional[str] = None,
        recoverable: bool = False,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(user_message)
        self.user_message = user_message
        self.technical_message = technical_message or user_message
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint

    @property
    def is_fatal(self) -> bool:
        return not self.recoverable

    def __str__(self) -> str:
        return self.user_message

    def get_full_message(self) -> str:
        """User message plus the recovery hint, as printed on fatal exits."""
        msg = self.user_message
        if self.recovery_hint:
            msg += f"\n\nSuggestion: {self.recovery_hint}"
        return msg
