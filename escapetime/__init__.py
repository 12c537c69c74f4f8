"""Public API for escape-time fractal rendering."""

from .errors import InvalidParameter
from .kernel import EscapeGrid, FractalParams, IterationResult, Julia, Mandelbrot, iterate, iterate_grid
from .palette import INSIDE_COLOR, PaletteParams, colorize, colorize_grid
from .plane import ViewWindow, map_pixel, plane_bounds, plane_grid
from .renderer import GenerationRequest, PixelBuffer, allocate_buffer, generate, render_escape
from .sequence import (
    boundary_focus,
    boundary_mask,
    compute_zoom_factors,
    julia_sweep,
    select_focus_pixel,
    zoom_sequence,
)

__all__ = [
    "EscapeGrid",
    "FractalParams",
    "GenerationRequest",
    "INSIDE_COLOR",
    "InvalidParameter",
    "IterationResult",
    "Julia",
    "Mandelbrot",
    "PaletteParams",
    "PixelBuffer",
    "ViewWindow",
    "allocate_buffer",
    "boundary_focus",
    "boundary_mask",
    "colorize",
    "colorize_grid",
    "compute_zoom_factors",
    "generate",
    "iterate",
    "iterate_grid",
    "julia_sweep",
    "map_pixel",
    "plane_bounds",
    "plane_grid",
    "render_escape",
    "select_focus_pixel",
    "zoom_sequence",
]
