"""Dial value transfer functions."""

import math
from typing import Union

from pworch.models.enums import MapFunction

FULL_RANGE = (0.0, 1.0)
SEVEN_BIT_MAX = 127
FOURTEEN_BIT_MAX = 16383


def apply_map_function(fn: Union[MapFunction, str], x: float) -> float:
    """Apply a transfer function to a fraction in [0, 1]."""
    match MapFunction(fn):
        case MapFunction.IDENTITY:
            return x
        case MapFunction.SQUARED:
            return x * x
        case MapFunction.SQRT:
            return math.sqrt(x)
        case MapFunction.TAPER:
            # Smoothstep: flat at both ends, steep in the middle
            return x * x * (3.0 - 2.0 * x)


def map_dial_value(
    raw: int,
    fn: Union[MapFunction, str] = MapFunction.IDENTITY,
    out_range: tuple[float, float] = FULL_RANGE,
    in_range: tuple[int, int] = (0, 127),
    high_precision: bool = False,
) -> int:
    """
    Map a raw dial value to an output controller value.

    The raw value is normalized against the dial's range, scaled into the
    active output range, then passed through the transfer function.

    Args:
        raw: Raw controller value from the dial
        fn: Transfer function
        out_range: Active output range as fractions of full scale
        in_range: Raw value range of the dial
        high_precision: Scale to 14 bits instead of 7

    Returns:
        Output value (0-127, or 0-16383 with high_precision)
    """
    low, high = in_range
    span = high - low
    pct = (raw - low) / span if span else 0.0
    pct = min(max(pct, 0.0), 1.0)

    start, end = out_range
    pct = pct * (end - start) + start

    mapped = apply_map_function(fn, pct)
    full_scale = FOURTEEN_BIT_MAX if high_precision else SEVEN_BIT_MAX
    return round(min(max(mapped, 0.0), 1.0) * full_scale)
