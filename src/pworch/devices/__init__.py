"""Built-in control-surface definitions."""

from .apc_key25 import APC_KEY_25
from .registry import get_device, known_devices, register_device

__all__ = ["APC_KEY_25", "get_device", "known_devices", "register_device"]
