"""
Centralized error handling utilities.

The daemon sorts failures into three bands:

| Band | Example | Handling |
|------|---------|----------|
| Benign | link already exists / already absent | logged at debug, swallowed |
| Recoverable | external command failure, one malformed snapshot | logged at error, operation skipped |
| Fatal | schema validation failure, missing hardware port | startup aborts, non-zero exit |

## Examples

### Converting Pydantic errors

```python
from pworch.exceptions import wrap_pydantic_error

try:
    config = Config.model_validate(document)
except ValidationError as e:
    raise wrap_pydantic_error(e, str(path)) from e
```

### Graph link requests

```python
try:
    await linker.create(src, dest)
except ExternalCommandError as e:
    handle_link_error(e)  # swallows "File exists", re-raises the rest
```
"""

import logging
from typing import Optional

from .base import PwOrchError
from .config import ConfigFileInvalidError, ConfigValidationError
from .process import ExternalCommandError

logger = logging.getLogger(__name__)

# pw-link stderr fragments meaning the request was already satisfied
BENIGN_LINK_ERRORS = (
    "failed to unlink ports: No such file or directory",
    "failed to link ports: File exists",
)


def wrap_pydantic_error(error: Exception, file_path: str) -> PwOrchError:
    """
    Convert Pydantic validation errors to pworch exceptions.

    Args:
        error: The Pydantic ValidationError
        file_path: Path to the config file that failed validation

    Returns:
        A ConfigurationError with appropriate type and message
    """
    from pydantic import ValidationError

    error_msg = str(error)

    if "Invalid JSON" in error_msg or "json_invalid" in error_msg:
        if "Invalid JSON:" in error_msg:
            parse_error = error_msg.split("Invalid JSON:")[1].split("[type=")[0].strip()
        else:
            parse_error = error_msg

        return ConfigFileInvalidError(file_path, parse_error)

    if isinstance(error, ValidationError):
        errors = error.errors()
        if errors:
            if len(errors) == 1:
                first_error = errors[0]
                field = ".".join(str(loc) for loc in first_error.get('loc', ('unknown',)))
                reason = first_error.get('msg', 'validation failed')
                value = first_error.get('input', None)

                return ConfigValidationError(
                    field=field,
                    value=value,
                    error_msg=reason,
                    file_path=file_path
                )

            error_lines = []
            for err in errors:
                field = ".".join(str(loc) for loc in err.get('loc', ('unknown',)))
                msg = err.get('msg', 'validation failed')
                error_lines.append(f"  - {field}: {msg}")

            combined_msg = f"{len(errors)} validation errors:\n" + "\n".join(error_lines)

            # Report the first failing field so hints stay specific
            first_field = ".".join(str(loc) for loc in errors[0].get('loc', ('unknown',)))
            return ConfigValidationError(
                field=first_field,
                value=None,
                error_msg=combined_msg,
                file_path=file_path
            )

    return ConfigValidationError(
        field="unknown",
        value=None,
        error_msg=error_msg,
        file_path=file_path
    )


def format_error_for_display(error: Exception) -> tuple[str, Optional[str]]:
    """
    Format an exception for user display.

    Args:
        error: The exception to format

    Returns:
        Tuple of (user_message, recovery_hint or None)
    """
    if isinstance(error, PwOrchError):
        return error.user_message, error.recovery_hint

    error_type = type(error).__name__
    return f"{error_type}: {error}", None


def is_benign_link_error(error: Exception) -> bool:
    """Check whether a link request failed only because it was already satisfied."""
    if isinstance(error, ExternalCommandError):
        text = f"{error.stderr}\n{error.stdout}"
    else:
        text = str(error)
    return any(fragment in text for fragment in BENIGN_LINK_ERRORS)


def handle_link_error(error: Exception) -> None:
    """
    Handle a failed graph link create/destroy request.

    Benign failures (link already exists, link already gone) are logged at
    debug level and swallowed. Everything else is logged and re-raised.
    """
    if is_benign_link_error(error):
        logger.debug(f"[pw-link] ignoring benign failure: {error}")
        return

    logger.error(f"[pw-link] {error}")
    raise error


def handle_midi_send_error(error: Exception) -> None:
    """Log a failed LED write; LED feedback is best-effort."""
    logger.error(f"failed to send midi to amidi: {error}")
