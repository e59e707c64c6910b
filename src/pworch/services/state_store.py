"""Runtime state file: restored at startup, written at shutdown."""

import logging
from typing import TYPE_CHECKING

from pworch.exceptions import PwOrchError
from pworch.models.state import PersistedState
from pworch.utils.persistence import PydanticPersistence

if TYPE_CHECKING:
    from pworch.core.context import RuntimeContext

logger = logging.getLogger(__name__)


def restore_state(context: "RuntimeContext") -> bool:
    """
    Merge the state file into the context if it exists and is well-formed.

    A missing or broken state file is not fatal; the daemon starts from
    defaults.

    Returns:
        True if state was restored
    """
    path = context.config.state_file
    if path is None:
        return False

    try:
        state = PydanticPersistence.load_json(path, PersistedState)
    except FileNotFoundError:
        logger.warning(f"State file {path} does not exist, starting fresh")
        return False
    except PwOrchError as e:
        logger.error(f"Ignoring invalid state file {path}: {e.technical_message}")
        return False

    context.restore(state)
    logger.info(f"Restored state from {path}")
    return True


def dump_state(context: "RuntimeContext") -> bool:
    """Write the restorable part of the context to the state file."""
    path = context.config.state_file
    if path is None:
        return False

    try:
        PydanticPersistence.save_json(context.snapshot(), path)
    except (OSError, PwOrchError) as e:
        logger.error(f"Failed to write state file {path}: {e}")
        return False

    logger.info(f"Wrote state to {path}")
    return True
