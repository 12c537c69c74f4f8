"""Escape-time iteration of z <- z**2 + c for Mandelbrot and Julia sets."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import tensorflow as tf

from .errors import InvalidParameter, is_finite_pair, is_finite_real, is_integral

ESCAPE_RADIUS_SQ = 4.0
MAX_ITERATIONS_LIMIT = int(np.iinfo(np.int32).max)

# Lower bound applied to log|z| before taking its logarithm.
_LOG_FLOOR = 1e-12
_LOG2 = math.log(2.0)


@dataclass(frozen=True)
class Mandelbrot:
    """The Mandelbrot set: z starts at 0 and c is the sampled point."""

    def validate(self) -> None:
        pass


@dataclass(frozen=True)
class Julia:
    """A Julia set: z starts at the sampled point and c is fixed."""

    c: tuple[float, float] = (-0.8, 0.156)

    def validate(self) -> None:
        if not is_finite_pair(self.c):
            raise InvalidParameter(f"Julia constant must be a finite (re, im) pair, got {self.c!r}")


FractalParams = Union[Mandelbrot, Julia]


@dataclass(frozen=True)
class IterationResult:
    """Escape data for a single point."""

    escaped: bool
    iterations: int
    smoothed_value: Optional[float] = None


@dataclass(frozen=True)
class EscapeGrid:
    """Escape data for a grid of points, one element per pixel."""

    iterations: np.ndarray
    escaped: np.ndarray
    smooth: np.ndarray


def validate_iteration_bounds(max_iter: int, escape_radius_sq: float) -> None:
    if not is_integral(max_iter) or not 0 <= max_iter <= MAX_ITERATIONS_LIMIT:
        raise InvalidParameter(
            f"max_iter must be an integer in [0, {MAX_ITERATIONS_LIMIT}], got {max_iter!r}"
        )
    if not is_finite_real(escape_radius_sq) or escape_radius_sq <= 0:
        raise InvalidParameter(
            f"escape_radius_sq must be a positive finite number, got {escape_radius_sq!r}"
        )


def _validate_variant(variant: FractalParams) -> None:
    if not isinstance(variant, (Mandelbrot, Julia)):
        raise InvalidParameter(f"unknown fractal variant {variant!r}")
    variant.validate()


def smoothed_escape(iterations: int, magnitude_sq: float) -> float:
    """Continuous escape value ``n + 1 - log(log|z|) / log 2``."""

    log_abs = max(0.5 * math.log(magnitude_sq), _LOG_FLOOR)
    return iterations + 1.0 - math.log(log_abs) / _LOG2


def iterate(
    c0: tuple[float, float],
    variant: FractalParams,
    max_iter: int,
    escape_radius_sq: float = ESCAPE_RADIUS_SQ,
) -> IterationResult:
    """Run the escape recurrence for the plane point ``c0``.

    A point escapes at step ``n`` only when ``n < max_iter``; everything else,
    including a point first leaving the radius on the last step, is reported
    as non-escaped with ``iterations == max_iter``. The starting value is
    never tested against the radius. A magnitude that overflows to inf or
    turns into NaN is not counted as an escape. An orbit that lands on a
    fixed point stops early, since it can no longer escape.
    """

    _validate_variant(variant)
    validate_iteration_bounds(max_iter, escape_radius_sq)
    if not is_finite_pair(c0):
        raise InvalidParameter(f"point must be a finite (x, y) pair, got {c0!r}")
    x, y = float(c0[0]), float(c0[1])

    if isinstance(variant, Julia):
        zr, zi = x, y
        cr, ci = float(variant.c[0]), float(variant.c[1])
    else:
        zr, zi = 0.0, 0.0
        cr, ci = x, y

    max_iter = int(max_iter)
    for n in range(1, max_iter):
        zr_next, zi_next = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci
        magnitude_sq = zr_next * zr_next + zi_next * zi_next
        if magnitude_sq > escape_radius_sq and math.isfinite(magnitude_sq):
            return IterationResult(True, n, smoothed_escape(n, magnitude_sq))
        # z_n is bounded here, so a repeat of z_{n-1} stays bounded forever
        if zr_next == zr and zi_next == zi:
            break
        zr, zi = zr_next, zi_next

    return IterationResult(False, max_iter, None)


@tf.function
def _escape_step(
    zr: tf.Tensor,
    zi: tf.Tensor,
    cr: tf.Tensor,
    ci: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
    escape_radius_sq: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every point that has not escaped by one step."""

    zr_new = zr * zr - zi * zi + cr
    zi_new = 2.0 * zr * zi + ci
    zr = tf.where(active, zr_new, zr)
    zi = tf.where(active, zi_new, zi)
    ns = ns + tf.cast(active, tf.int32)
    magnitude_sq = zr * zr + zi * zi
    escaping = tf.logical_and(
        tf.logical_and(active, magnitude_sq > escape_radius_sq),
        tf.math.is_finite(magnitude_sq),
    )
    return zr, zi, ns, tf.logical_and(active, tf.logical_not(escaping))


_GRID = tf.TensorSpec(shape=[None, None], dtype=tf.float64)


@tf.function(
    input_signature=[
        _GRID,
        _GRID,
        _GRID,
        _GRID,
        tf.TensorSpec(shape=[], dtype=tf.int32),
        tf.TensorSpec(shape=[], dtype=tf.float64),
    ]
)
def _escape_run(
    zr: tf.Tensor,
    zi: tf.Tensor,
    cr: tf.Tensor,
    ci: tf.Tensor,
    max_iterations: tf.Tensor,
    escape_radius_sq: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Iterate with a TensorFlow while loop until every point escaped or the bound is hit."""

    i = tf.constant(0, dtype=tf.int32)
    ns = tf.zeros_like(zr, dtype=tf.int32)
    active = tf.ones_like(zr, dtype=tf.bool)

    def cond(i, zr, zi, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, zr, zi, ns, active):
        zr, zi, ns, active = _escape_step(zr, zi, cr, ci, ns, active, escape_radius_sq)
        return i + 1, zr, zi, ns, active

    return tf.while_loop(cond, body, (i, zr, zi, ns, active))


def iterate_grid(
    xs: np.ndarray,
    ys: np.ndarray,
    variant: FractalParams,
    max_iter: int,
    escape_radius_sq: float = ESCAPE_RADIUS_SQ,
) -> EscapeGrid:
    """Vectorised :func:`iterate` over 2-D arrays of plane coordinates.

    Iteration counts and escape flags match :func:`iterate` point for point.
    Must be called inside the desired ``tf.device`` scope.
    """

    _validate_variant(variant)
    validate_iteration_bounds(max_iter, escape_radius_sq)
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.ndim != 2 or xs.shape != ys.shape:
        raise InvalidParameter(f"coordinate grids must be 2-D and equally shaped, got {xs.shape} and {ys.shape}")
    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise InvalidParameter("coordinate grids must be finite")

    if isinstance(variant, Julia):
        zr0, zi0 = xs, ys
        cr = np.full_like(xs, variant.c[0])
        ci = np.full_like(ys, variant.c[1])
    else:
        zr0, zi0 = np.zeros_like(xs), np.zeros_like(ys)
        cr, ci = xs, ys

    _, zr, zi, ns, active = _escape_run(
        tf.convert_to_tensor(zr0, dtype=tf.float64),
        tf.convert_to_tensor(zi0, dtype=tf.float64),
        tf.convert_to_tensor(cr, dtype=tf.float64),
        tf.convert_to_tensor(ci, dtype=tf.float64),
        tf.constant(int(max_iter), dtype=tf.int32),
        tf.constant(float(escape_radius_sq), dtype=tf.float64),
    )

    iterations = ns.numpy()
    # leaving the radius on the final step still counts as bounded
    escaped = np.logical_and(np.logical_not(active.numpy()), iterations < int(max_iter))
    zr = zr.numpy()
    zi = zi.numpy()

    smooth = np.full(iterations.shape, np.nan, dtype=np.float64)
    if np.any(escaped):
        magnitude_sq = zr[escaped] * zr[escaped] + zi[escaped] * zi[escaped]
        log_abs = np.maximum(0.5 * np.log(magnitude_sq), _LOG_FLOOR)
        smooth[escaped] = iterations[escaped] + 1.0 - np.log(log_abs) / _LOG2

    return EscapeGrid(iterations=iterations, escaped=escaped, smooth=smooth)
