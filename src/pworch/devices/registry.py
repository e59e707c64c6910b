"""Registry of built-in control-surface definitions."""

import logging

from pworch.exceptions import UnknownDeviceError
from pworch.models.device import Device

from .apc_key25 import APC_KEY_25

logger = logging.getLogger(__name__)

_DEVICES: dict[str, Device] = {
    APC_KEY_25.name: APC_KEY_25,
}


def register_device(device: Device) -> None:
    """Add a device definition (later registrations replace earlier ones)."""
    if device.name in _DEVICES:
        logger.warning(f"Replacing device definition for '{device.name}'")
    _DEVICES[device.name] = device


def known_devices() -> list[str]:
    return sorted(_DEVICES)


def get_device(name: str) -> Device:
    """Look up a device definition by name.

    Raises:
        UnknownDeviceError: If no definition exists for ``name``
    """
    try:
        return _DEVICES[name]
    except KeyError:
        raise UnknownDeviceError(name, known_devices()) from None
