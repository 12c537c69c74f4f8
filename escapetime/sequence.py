"""Planning of multi-frame sequences: zooms and Julia constant sweeps."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

import numpy as np

from .errors import InvalidParameter
from .kernel import EscapeGrid, Julia
from .plane import ViewWindow, map_pixel

logger = logging.getLogger(__name__)

EASINGS = ("linear", "ease")


def _easing(name: str) -> Callable[[np.ndarray], np.ndarray]:
    mode = name.lower()
    if mode == "linear":
        return lambda t: t
    if mode == "ease":
        return lambda t: 3 * t ** 2 - 2 * t ** 3
    raise InvalidParameter(f"unknown easing {name!r}, expected one of {', '.join(EASINGS)}")


def _progress(frames: int, easing: str) -> np.ndarray:
    """Eased progress in [0, 1] for each frame, ending at 1."""

    ease = _easing(easing)
    if frames == 1:
        return np.array([1.0], dtype=np.float64)
    t = np.arange(frames, dtype=np.float64) / (frames - 1)
    return np.clip(ease(t), 0.0, 1.0)


def compute_zoom_factors(frames: int, zoom_factor: float, *, final_zoom: Optional[float] = None, easing: str = "ease") -> np.ndarray:
    """Per-frame scale multipliers.

    With ``final_zoom`` the multipliers are spread in log space along the
    easing curve so that their product equals ``final_zoom``; otherwise every
    frame uses ``zoom_factor``.
    """

    if frames <= 0:
        return np.array([], dtype=np.float64)

    if final_zoom is not None:
        if final_zoom <= 0:
            raise InvalidParameter(f"final_zoom must be positive, got {final_zoom!r}")
        alphas = _progress(frames, easing)
        increments = np.diff(np.concatenate(([0.0], alphas)))
        return np.exp(increments * np.log(final_zoom))

    if zoom_factor <= 0:
        raise InvalidParameter(f"zoom_factor must be positive, got {zoom_factor!r}")
    return np.full(frames, np.float64(zoom_factor), dtype=np.float64)


def zoom_sequence(view: ViewWindow, factors: np.ndarray, focus: Optional[tuple[float, float]] = None) -> list[ViewWindow]:
    """Views for a zoom animation; the first frame is ``view`` itself.

    Each later frame multiplies the scale by the next factor. When ``focus``
    is given the center moves onto it from the second frame on.
    """

    view.validate()
    if len(factors) == 0:
        return []
    views = [view]
    current = view if focus is None else replace(view, center=(float(focus[0]), float(focus[1])))
    for factor in factors[:-1]:
        current = replace(current, scale=float(np.float64(current.scale) * np.float64(factor)))
        current.validate()
        views.append(current)
    logger.debug("planned %d zoom frames ending at scale %g", len(views), views[-1].scale)
    return views


def boundary_mask(escaped: np.ndarray) -> np.ndarray:
    """Pixels whose escape state differs from their upper or left neighbour."""

    escaped = np.asarray(escaped, dtype=bool)
    mask = np.zeros_like(escaped)
    mask[1:, :] |= escaped[1:, :] != escaped[:-1, :]
    mask[:, 1:] |= escaped[:, 1:] != escaped[:, :-1]
    return mask


def select_focus_pixel(mask: np.ndarray) -> tuple[int, int]:
    """Return the ``(row, col)`` of the marked pixel closest to the image center.

    Falls back to the center itself when nothing is marked. Ties go to the
    first pixel in row-major order.
    """

    height, width = mask.shape
    center = np.array([(height - 1) / 2.0, (width - 1) / 2.0], dtype=np.float64)
    indices = np.argwhere(mask)
    if indices.size == 0:
        return height // 2, width // 2
    distances = np.sum((indices.astype(np.float64) - center) ** 2, axis=1)
    row, col = indices[int(np.argmin(distances))]
    return int(row), int(col)


def boundary_focus(grid: EscapeGrid, view: ViewWindow) -> tuple[float, float]:
    """Plane point on the set boundary nearest the middle of a rendered frame."""

    height, width = grid.escaped.shape
    row, col = select_focus_pixel(boundary_mask(grid.escaped))
    return map_pixel(col, row, width, height, view)


def julia_sweep(start: tuple[float, float], end: tuple[float, float], frames: int, *, easing: str = "linear") -> list[Julia]:
    """Julia variants whose constant travels from ``start`` to ``end``."""

    if frames <= 0:
        return []
    first = Julia((float(start[0]), float(start[1])))
    last = Julia((float(end[0]), float(end[1])))
    first.validate()
    last.validate()
    if frames == 1:
        return [first]
    alphas = _progress(frames, easing)
    a = np.array(first.c, dtype=np.float64)
    b = np.array(last.c, dtype=np.float64)
    variants = [Julia((float(c[0]), float(c[1]))) for c in (a + np.outer(alphas, b - a))]
    # pin the endpoints against rounding in the interpolation
    variants[0], variants[-1] = first, last
    return variants
