"""Mapping between the pixel grid and the complex plane."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import InvalidParameter, is_finite_pair, is_finite_real, is_integral


@dataclass(frozen=True)
class ViewWindow:
    """Region of the complex plane shown by an image.

    ``scale`` is the extent, in plane units, covered by the shorter image
    dimension. Pixels are square, so the longer dimension covers
    proportionally more of the plane.
    """

    center: tuple[float, float] = (0.0, 0.0)
    scale: float = 4.0

    def validate(self) -> None:
        if not is_finite_pair(self.center):
            raise InvalidParameter(f"view center must be a finite (x, y) pair, got {self.center!r}")
        if not is_finite_real(self.scale) or self.scale <= 0:
            raise InvalidParameter(f"view scale must be a positive finite number, got {self.scale!r}")

    def pixel_step(self, width: int, height: int) -> float:
        return float(self.scale) / min(width, height)


def _check_dimensions(width: int, height: int) -> None:
    if not (is_integral(width) and is_integral(height)) or width <= 0 or height <= 0:
        raise InvalidParameter(f"image dimensions must be positive, got {width}x{height}")


def map_pixel(px: int, py: int, width: int, height: int, view: ViewWindow) -> tuple[float, float]:
    """Return the plane coordinates of pixel ``(px, py)`` (top-left origin)."""

    _check_dimensions(width, height)
    view.validate()
    if not (is_integral(px) and is_integral(py)) or not (0 <= px < width and 0 <= py < height):
        raise InvalidParameter(f"pixel ({px}, {py}) lies outside a {width}x{height} image")

    step = view.pixel_step(width, height)
    x = float(view.center[0]) + (px - width // 2) * step
    y = float(view.center[1]) - (py - height // 2) * step
    return x, y


def plane_grid(
    width: int,
    height: int,
    view: ViewWindow,
    row_start: int = 0,
    row_stop: Optional[int] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Sample the plane for rows ``row_start:row_stop`` as two float64 grids.

    Every element equals what :func:`map_pixel` returns for the same pixel.
    """

    _check_dimensions(width, height)
    view.validate()
    row_stop = height if row_stop is None else row_stop
    if not (is_integral(row_start) and is_integral(row_stop)) or not (0 <= row_start < row_stop <= height):
        raise InvalidParameter(f"row range {row_start}:{row_stop} is not inside 0:{height}")

    step = np.float64(view.pixel_step(width, height))
    cols = (np.arange(width, dtype=np.int64) - width // 2).astype(np.float64)
    rows = (np.arange(row_start, row_stop, dtype=np.int64) - height // 2).astype(np.float64)

    x = np.float64(view.center[0]) + cols * step
    y = np.float64(view.center[1]) - rows * step
    return np.meshgrid(x, y)


def plane_bounds(width: int, height: int, view: ViewWindow) -> tuple[float, float, float, float]:
    """Return ``(x_min, x_max, y_min, y_max)`` over the sampled pixel positions."""

    x_min, y_max = map_pixel(0, 0, width, height, view)
    x_max, y_min = map_pixel(width - 1, height - 1, width, height, view)
    return x_min, x_max, y_min, y_max
