"""Generic utility modules for pworch.

This package contains utilities that are not specific to any domain:
- hashing: structural identity of pydantic models
- persistence: JSON/YAML document loading and atomic saves
- process: one-shot and supervised external processes
"""

from .hashing import object_id
from .persistence import PydanticPersistence
from .process import SupervisedProcess, run

__all__ = ["PydanticPersistence", "SupervisedProcess", "object_id", "run"]
