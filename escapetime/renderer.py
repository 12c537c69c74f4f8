"""Rendering of escape-time fractals into RGBA pixel buffers."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import PIL.Image
import tensorflow as tf

from .errors import InvalidParameter, is_integral
from .kernel import (
    ESCAPE_RADIUS_SQ,
    EscapeGrid,
    FractalParams,
    Julia,
    Mandelbrot,
    iterate_grid,
    validate_iteration_bounds,
)
from .palette import PaletteParams, colorize_grid
from .plane import ViewWindow, plane_grid

logger = logging.getLogger(__name__)

CHANNELS = 4
DEFAULT_DEVICE = "/CPU:0"


@dataclass(frozen=True)
class GenerationRequest:
    """Everything needed to render one image."""

    width: int
    height: int
    view: ViewWindow = field(default_factory=ViewWindow)
    fractal: FractalParams = field(default_factory=Mandelbrot)
    palette: PaletteParams = field(default_factory=PaletteParams)
    max_iterations: int = 1000
    escape_radius_sq: float = ESCAPE_RADIUS_SQ
    smooth: bool = False

    def validate(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not is_integral(value) or value <= 0:
                raise InvalidParameter(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.view, ViewWindow):
            raise InvalidParameter(f"view must be a ViewWindow, got {self.view!r}")
        self.view.validate()
        if not isinstance(self.palette, PaletteParams):
            raise InvalidParameter(f"palette must be a PaletteParams, got {self.palette!r}")
        if not isinstance(self.fractal, (Mandelbrot, Julia)):
            raise InvalidParameter(f"unknown fractal variant {self.fractal!r}")
        self.fractal.validate()
        self.palette.validate()
        validate_iteration_bounds(self.max_iterations, self.escape_radius_sq)


@dataclass(frozen=True)
class PixelBuffer:
    """Row-major RGBA8 pixels with a top-left origin and no row padding."""

    width: int
    height: int
    data: np.ndarray

    def __len__(self) -> int:
        return int(self.data.size)

    def tobytes(self) -> bytes:
        return self.data.tobytes()

    def as_array(self) -> np.ndarray:
        """View the buffer as a ``(height, width, 4)`` array without copying."""
        return self.data.reshape(self.height, self.width, CHANNELS)

    def to_image(self) -> PIL.Image.Image:
        return PIL.Image.fromarray(self.as_array())


def allocate_buffer(width: int, height: int) -> PixelBuffer:
    return PixelBuffer(width, height, np.zeros(width * height * CHANNELS, dtype=np.uint8))


def _row_blocks(height: int, rows_per_block: int) -> list[tuple[int, int]]:
    return [(start, min(start + rows_per_block, height)) for start in range(0, height, rows_per_block)]


def _escape_rows(request: GenerationRequest, row_start: int, row_stop: int, device: str) -> EscapeGrid:
    xs, ys = plane_grid(request.width, request.height, request.view, row_start, row_stop)
    with tf.device(device):
        return iterate_grid(xs, ys, request.fractal, request.max_iterations, request.escape_radius_sq)


def _render_rows(request: GenerationRequest, row_start: int, row_stop: int, pixels: np.ndarray, device: str) -> None:
    grid = _escape_rows(request, row_start, row_stop, device)
    values = grid.smooth if request.smooth else grid.iterations
    # each block owns rows row_start:row_stop of the shared buffer
    pixels[row_start:row_stop] = colorize_grid(values, grid.escaped, request.palette)


def _resolve_target(request: GenerationRequest, out: Optional[PixelBuffer]) -> PixelBuffer:
    if out is None:
        return allocate_buffer(request.width, request.height)
    expected = request.width * request.height * CHANNELS
    if out.data.dtype != np.uint8 or out.data.size != expected or not out.data.flags.c_contiguous:
        raise InvalidParameter(
            f"output buffer must be a contiguous uint8 array of {expected} bytes, "
            f"got {out.data.size} {out.data.dtype} elements"
        )
    return PixelBuffer(request.width, request.height, out.data.reshape(-1))


def render_escape(request: GenerationRequest, *, device: Optional[str] = None) -> EscapeGrid:
    """Compute escape data for every pixel of ``request`` without colouring it."""

    request.validate()
    return _escape_rows(request, 0, request.height, device or DEFAULT_DEVICE)


def generate(
    request: GenerationRequest,
    *,
    workers: Optional[int] = None,
    rows_per_block: Optional[int] = None,
    out: Optional[PixelBuffer] = None,
    device: Optional[str] = None,
) -> PixelBuffer:
    """Render ``request`` into an RGBA8 :class:`PixelBuffer`.

    Rows are split into blocks that are rendered concurrently on ``workers``
    threads; every block writes a disjoint slice of the same buffer, so the
    result does not depend on the worker count or block size. Passing
    ``out`` reuses an existing allocation of the right size.
    """

    request.validate()
    if workers is None:
        workers = os.cpu_count() or 1
    if not is_integral(workers) or workers <= 0:
        raise InvalidParameter(f"workers must be positive, got {workers!r}")
    if rows_per_block is None:
        rows_per_block = max(1, request.height // (4 * workers))
    if not is_integral(rows_per_block) or rows_per_block <= 0:
        raise InvalidParameter(f"rows_per_block must be positive, got {rows_per_block!r}")

    target = _resolve_target(request, out)
    pixels = target.as_array()
    device = device or DEFAULT_DEVICE
    blocks = _row_blocks(request.height, rows_per_block)

    logger.debug(
        "rendering %dx%d %s in %d blocks of up to %d rows on %d workers",
        request.width,
        request.height,
        type(request.fractal).__name__,
        len(blocks),
        rows_per_block,
        workers,
    )

    if workers == 1 or len(blocks) == 1:
        for row_start, row_stop in blocks:
            _render_rows(request, row_start, row_stop, pixels, device)
        return target

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_render_rows, request, row_start, row_stop, pixels, device)
            for row_start, row_stop in blocks
        ]
        for future in futures:
            future.result()

    return target
