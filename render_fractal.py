import logging
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path

# TensorFlow reads TF_CPP_MIN_LOG_LEVEL once, when it is first imported.
_QUIET_TF = not {"-v", "--verbose"} & set(sys.argv[1:]) and os.environ.get("TF_CPP_MIN_LOG_LEVEL") != "0"
if _QUIET_TF:
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")

import tensorflow as tf
import numpy as np

if _QUIET_TF:
    tf.get_logger().setLevel("ERROR")

import PIL.Image
import imageio

from escapetime import (
    GenerationRequest,
    InvalidParameter,
    Julia,
    Mandelbrot,
    PaletteParams,
    ViewWindow,
    boundary_focus,
    compute_zoom_factors,
    generate,
    julia_sweep,
    plane_bounds,
    render_escape,
    zoom_sequence,
)
from escapetime.sequence import EASINGS

from argparse import ArgumentParser

logger = logging.getLogger("render_fractal")

MODES = ("image", "gif")


def select_device() -> str:
    """Use the first visible GPU when TensorFlow reports one, else the CPU."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        logger.info("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        logger.info("could not configure %s (%s), using CPU", gpus[0].name, e)
        return '/CPU:0'
    logger.info("GPU found, using %s", gpus[0].name)
    return '/GPU:0'


@dataclass
class OutputConfig:
    mode: str
    path: Path
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render Mandelbrot and Julia sets to PNG stills or GIF animations.')

    parser.add_argument('--width', type=int, dest='width', metavar='WIDTH', default=800,
                        help='image width in pixels')
    parser.add_argument('--height', type=int, dest='height', metavar='HEIGHT', default=800,
                        help='image height in pixels')

    parser.add_argument('--center-x', type=float, dest='center_x', metavar='CENTER_X', default=-0.5,
                        help='real coordinate of the image center')
    parser.add_argument('--center-y', type=float, dest='center_y', metavar='CENTER_Y', default=0.0,
                        help='imaginary coordinate of the image center')
    parser.add_argument('--scale', type=float, dest='scale', metavar='SCALE', default=3.0,
                        help='extent of the complex plane covered by the shorter image side')

    parser.add_argument('--fractal', choices=['mandelbrot', 'julia'], default='mandelbrot',
                        help='which set to render')
    parser.add_argument('--cx', type=float, dest='cx', metavar='CX', default=-0.8,
                        help='real part of the Julia constant')
    parser.add_argument('--cy', type=float, dest='cy', metavar='CY', default=0.156,
                        help='imaginary part of the Julia constant')

    parser.add_argument('--max-iterations', type=int, dest='max_iterations', metavar='MAX_ITERATIONS', default=1000,
                        help='maximum number of times to apply z -> z^2 + c')
    parser.add_argument('--escape-radius', type=float, dest='escape_radius', metavar='RADIUS', default=2.0,
                        help='magnitude beyond which a point counts as escaped')

    parser.add_argument('--palette-length', type=int, dest='palette_length', metavar='LENGTH', default=32,
                        help='number of iterations per full trip around the hue circle')
    parser.add_argument('--palette-hue', type=float, dest='palette_hue', metavar='DEGREES', default=0.0,
                        help='hue offset of the palette in degrees')
    parser.add_argument('--smooth', action='store_true',
                        help='colour by the continuous escape value instead of the iteration count')

    parser.add_argument('--workers', type=int, default=None,
                        help='number of render threads (default: one per CPU)')
    parser.add_argument('--rows-per-block', type=int, dest='rows_per_block', default=None,
                        help='image rows handed to a thread at a time')

    parser.add_argument('--mode', choices=MODES, default='image',
                        help='"image" writes the last frame as a still, "gif" writes every frame as an animation')
    parser.add_argument('--output', type=str, default=None,
                        help='destination file (default: fractal.<format> or movie.gif)')
    parser.add_argument('--format', type=str, dest='format', metavar='FORMAT', default='png',
                        help='file format for still images; any extension supported by Pillow')

    parser.add_argument('--frames', type=int, dest='frames', metavar='FRAMES', default=1,
                        help='number of frames to generate')
    parser.add_argument('--zoom-factor', type=float, dest='zoom_factor', metavar='ZOOM_FACTOR', default=0.8,
                        help='factor applied to the scale each frame; < 1 zooms in, > 1 zooms out')
    parser.add_argument('--final-zoom', type=float, default=None,
                        help='overall scale applied by the last frame; overrides --zoom-factor')
    parser.add_argument('--easing', choices=EASINGS, default='ease',
                        help='temporal curve for --final-zoom and Julia sweeps')
    parser.add_argument('--focus', choices=['center', 'boundary'], default='center',
                        help='zoom on the view center or on the set boundary nearest to it')
    parser.add_argument('--julia-end-cx', type=float, dest='julia_end_cx', default=None,
                        help='sweep the Julia constant to this real part over the frames')
    parser.add_argument('--julia-end-cy', type=float, dest='julia_end_cy', default=None,
                        help='sweep the Julia constant to this imaginary part over the frames')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='enable debug logging, including TensorFlow diagnostics')

    return parser


_FORMAT_ALIASES = {"JPG": "JPEG", "TIF": "TIFF"}


def pillow_format(extension: str) -> str:
    """Pillow format name for a file extension such as ``jpg`` or ``.png``."""
    name = extension.lstrip(".").upper()
    return _FORMAT_ALIASES.get(name, name)


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    if opt.mode == "gif":
        path = Path(opt.output) if opt.output else Path("movie.gif")
        if not path.suffix:
            path = path.with_suffix(".gif")
        elif path.suffix.lower() != ".gif":
            parser.error("GIF outputs must end with .gif.")
        image_format = "gif"
    else:
        path = Path(opt.output) if opt.output else Path(f"fractal.{image_format}")
        if not path.suffix:
            path = path.with_suffix(f".{image_format}")
        elif path.suffix.lower() != f".{image_format}":
            parser.error(f"--output extension {path.suffix} does not match --format {image_format}.")

    path = path.expanduser().resolve()
    if path.exists() and path.is_dir():
        parser.error("--output must point to a file, not a directory.")
    return OutputConfig(mode=opt.mode, path=path, image_format=image_format)


def request_from_args(opt) -> GenerationRequest:
    if not opt.escape_radius > 0:
        raise InvalidParameter(f"--escape-radius must be positive, got {opt.escape_radius!r}")
    if opt.fractal == 'julia':
        fractal = Julia((opt.cx, opt.cy))
    else:
        fractal = Mandelbrot()
    request = GenerationRequest(
        width=opt.width,
        height=opt.height,
        view=ViewWindow(center=(opt.center_x, opt.center_y), scale=opt.scale),
        fractal=fractal,
        palette=PaletteParams(length=opt.palette_length, hue=opt.palette_hue),
        max_iterations=opt.max_iterations,
        escape_radius_sq=opt.escape_radius * opt.escape_radius,
        smooth=bool(opt.smooth),
    )
    request.validate()
    return request


def plan_frames(opt, request: GenerationRequest, device: str) -> list[GenerationRequest]:
    """Expand the base request into one request per frame."""

    sweep_end = (opt.julia_end_cx, opt.julia_end_cy)
    if any(v is not None for v in sweep_end):
        if not isinstance(request.fractal, Julia):
            raise InvalidParameter("--julia-end-cx/--julia-end-cy require --fractal julia")
        end = tuple(c if e is None else e for c, e in zip(request.fractal.c, sweep_end))
        variants = julia_sweep(request.fractal.c, end, opt.frames, easing=opt.easing)
        return [replace(request, fractal=variant) for variant in variants]

    factors = compute_zoom_factors(opt.frames, opt.zoom_factor, final_zoom=opt.final_zoom, easing=opt.easing)
    focus = None
    if opt.focus == 'boundary' and len(factors) > 1:
        focus = boundary_focus(render_escape(request, device=device), request.view)
        logger.debug("zoom focus on the boundary at %s", focus)
    return [replace(request, view=view) for view in zoom_sequence(request.view, factors, focus)]


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    if pillow_format(image_format) in {"JPEG", "BMP"}:
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pillow_format(image_format))


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if opt.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if opt.frames <= 0:
        parser.error("--frames must be positive.")
    output_config = resolve_output_config(opt, parser)
    device = select_device()

    try:
        request = request_from_args(opt)
        frames = plan_frames(opt, request, device)
    except InvalidParameter as exc:
        parser.error(str(exc))

    x_min, x_max, y_min, y_max = plane_bounds(request.width, request.height, request.view)
    logger.debug("first frame spans x [%g, %g], y [%g, %g]", x_min, x_max, y_min, y_max)

    output_config.path.parent.mkdir(parents=True, exist_ok=True)

    if output_config.mode == "image":
        buffer = generate(frames[-1], workers=opt.workers, rows_per_block=opt.rows_per_block, device=device)
        write_single_image(buffer.to_image(), output_config.path, output_config.image_format)
        return output_config.path

    writer = imageio.get_writer(str(output_config.path), mode='I', duration=0.1, loop=0)
    try:
        buffer = None
        for i, frame in enumerate(frames):
            print("frame {0} out of {1}".format(i, len(frames)), end='\r')
            buffer = generate(frame, workers=opt.workers, rows_per_block=opt.rows_per_block, out=buffer, device=device)
            writer.append_data(np.ascontiguousarray(buffer.as_array()[..., :3]))
    finally:
        writer.close()
    return output_config.path


if __name__ == '__main__':
    main()
