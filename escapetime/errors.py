"""Error types raised by the fractal engine, and the checks that raise them."""

import math


class InvalidParameter(ValueError):
    """Raised when a caller supplies a configuration the engine cannot render."""


def is_integral(value) -> bool:
    """True for values equal to an int, rejecting strings, NaN and infinities."""
    if isinstance(value, bool):
        return False
    try:
        return int(value) == value
    except (TypeError, ValueError, OverflowError):
        return False


def is_finite_real(value) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def is_finite_pair(value) -> bool:
    try:
        return len(value) == 2 and all(is_finite_real(v) for v in value)
    except TypeError:
        return False
