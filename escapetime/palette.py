"""Cyclic hue palette used to colour escape data."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from matplotlib.colors import hsv_to_rgb

from .errors import InvalidParameter, is_finite_real, is_integral
from .kernel import IterationResult

INSIDE_COLOR = (0, 0, 0, 255)


@dataclass(frozen=True)
class PaletteParams:
    """A palette that walks the full hue circle once every ``length`` iterations."""

    length: int = 32
    hue: float = 0.0

    def validate(self) -> None:
        if not is_integral(self.length) or self.length <= 0:
            raise InvalidParameter(f"palette length must be a positive integer, got {self.length!r}")
        if not is_finite_real(self.hue):
            raise InvalidParameter(f"palette hue must be finite, got {self.hue!r}")


def colorize_grid(values: np.ndarray, escaped: np.ndarray, palette: PaletteParams) -> np.ndarray:
    """Map escape values to RGBA8 colours.

    ``values`` are iteration counts or smoothed escape values; elements where
    ``escaped`` is false get :data:`INSIDE_COLOR`. The result has the shape of
    ``values`` plus a trailing axis of four channels.
    """

    palette.validate()
    values = np.asarray(values, dtype=np.float64)
    escaped = np.asarray(escaped, dtype=bool)
    length = np.float64(palette.length)

    # fmod is exact, so v and v + length land on the same phase
    phase = np.mod(np.where(escaped, values, 0.0), length) / length
    base = np.mod(np.float64(palette.hue), 360.0) / 360.0
    hue = np.mod(base + phase, 1.0)

    hsv = np.stack((hue, np.ones_like(hue), np.ones_like(hue)), axis=-1)
    rgb = hsv_to_rgb(hsv)

    rgba = np.empty(values.shape + (4,), dtype=np.uint8)
    rgba[..., :3] = np.uint8(np.clip(rgb * 255, 0, 255))
    rgba[..., 3] = 255
    rgba[~escaped] = INSIDE_COLOR
    return rgba


def colorize(result: IterationResult, palette: PaletteParams, smooth: bool = True) -> tuple[int, int, int, int]:
    """Colour a single :class:`IterationResult`."""

    palette.validate()
    if not result.escaped:
        return INSIDE_COLOR

    value = result.iterations
    if smooth and result.smoothed_value is not None:
        value = result.smoothed_value
    rgba = colorize_grid(np.array([value], dtype=np.float64), np.array([True]), palette)[0]
    return tuple(int(channel) for channel in rgba)
