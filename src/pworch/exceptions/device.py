"""Control-surface device exceptions."""

from typing import Optional

from .base import PwOrchError


class DeviceError(PwOrchError):
    """Base exception for control-surface device errors."""
    pass


class DevicePortNotFoundError(DeviceError):
    """The configured raw MIDI port is not present in the device listing."""

    def __init__(self, port_name: str, available: Optional[list[str]] = None):
        """
        Initialize port-not-found error.

        Args:
            port_name: The port name that was searched for
            available: Port names that were found instead
        """
        hint = "Make sure the controller is plugged in and the name matches exactly."
        if available:
            hint += "\nAvailable ports:\n" + "\n".join(f"  - {p}" for p in available)
        hint += "\nRun 'pworch midi ports' to list raw MIDI ports"

        super().__init__(
            user_message=f"MIDI port '{port_name}' not found",
            technical_message=f"No raw MIDI port named {port_name!r} in amidi listing (found: {available})",
            recoverable=False,
            recovery_hint=hint
        )
        self.port_name = port_name
        self.available = available or []


class UnknownDeviceError(DeviceError):
    """The configuration names a device with no built-in definition."""

    def __init__(self, device_name: str, known: list[str]):
        super().__init__(
            user_message=f"No device definition available for '{device_name}'",
            technical_message=f"Unknown device {device_name!r}; known devices: {known}",
            recoverable=False,
            recovery_hint="Supported devices: " + ", ".join(known)
        )
        self.device_name = device_name
