"""Enumerations for the controller daemon."""

from enum import Enum


class MapFunction(str, Enum):
    """Transfer functions applied to dial values before publishing."""

    IDENTITY = "identity"  # Linear
    SQUARED = "squared"  # Fine control at the low end
    SQRT = "sqrt"  # Fine control at the high end
    TAPER = "taper"  # S-curve, fine control at both ends


class ConnectMode(str, Enum):
    """How an audio source is routed to a mixer channel."""

    PLAIN = "plain"  # Only add missing links
    EXCLUSIVE = "exclusive"  # Also drop every other link from the source ports
    SMART = "smart"  # Also drop links to the main output, nothing else
