"""Runtime state persisted across daemon restarts."""

from pydantic import BaseModel, Field


class PersistedState(BaseModel):
    """Restorable subset of the runtime context."""

    ranges: dict[str, tuple[float, float]] = Field(
        default_factory=dict, description="Dial label -> active output range"
    )
    mutes: dict[str, bool] = Field(default_factory=dict, description="Dial label -> muted")
    dials: dict[str, int] = Field(default_factory=dict, description="Dial label -> last raw value")
    led_save_states: dict[str, str] = Field(
        default_factory=dict, description="Button label -> saved LED state"
    )
    cycle_states: dict[str, int] = Field(
        default_factory=dict, description="Cycle identity -> selected item index"
    )
    button_colors: dict[str, str] = Field(
        default_factory=dict, description="Button label -> current LED state"
    )
