"""
Custom exception hierarchy for pworch.

## Exception Hierarchy

```
PwOrchError (base)
├── ConfigurationError
│   ├── ConfigFileInvalidError
│   └── ConfigValidationError
├── DeviceError
│   ├── DevicePortNotFoundError
│   └── UnknownDeviceError
├── GraphError
│   ├── SnapshotFormatError
│   └── GraphIntegrityError
├── ProcessFailureError
└── ExternalCommandError
```

All custom exceptions inherit from `PwOrchError`, which provides:

- `user_message`: Human-friendly message for display to users
- `technical_message`: Detailed message for logging
- `recoverable`: Whether the daemon can continue
- `recovery_hint`: Optional suggestion for how to fix the issue

See `pworch.exceptions.handlers` for utilities to handle these exceptions systematically.
"""

from .base import PwOrchError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .device import DeviceError, DevicePortNotFoundError, UnknownDeviceError
from .graph import GraphError, GraphIntegrityError, SnapshotFormatError
from .handlers import (
    format_error_for_display,
    handle_link_error,
    handle_midi_send_error,
    is_benign_link_error,
    wrap_pydantic_error,
)
from .process import ExternalCommandError, ProcessFailureError

__all__ = [
    # Config
    "ConfigFileInvalidError",
    "ConfigValidationError",
    "ConfigurationError",
    # Device
    "DeviceError",
    "DevicePortNotFoundError",
    "UnknownDeviceError",
    # Process
    "ExternalCommandError",
    # Graph
    "GraphError",
    "GraphIntegrityError",
    "ProcessFailureError",
    # Base
    "PwOrchError",
    "SnapshotFormatError",
    "format_error_for_display",
    "handle_link_error",
    "handle_midi_send_error",
    "is_benign_link_error",
    "wrap_pydantic_error",
]
