"""Stable structural identity for configuration objects."""

import hashlib

from pydantic import BaseModel


def object_id(model: BaseModel) -> str:
    """Return a stable hash of a model's static definition.

    Two structurally equal bindings share an id, so per-binding runtime
    state (cycle position, running command) survives a config reload as
    long as the binding itself is unchanged.
    """
    payload = model.model_dump_json(by_alias=True, exclude_none=False)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
