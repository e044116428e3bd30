import os
import sys
from argparse import ArgumentParser
from dataclasses import dataclass
from pathlib import Path
from typing import Any

VERBOSE = any(arg in ("-v", "--verbose") for arg in sys.argv[1:])

# Must be set before TensorFlow loads its native runtime.
if not VERBOSE:
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import numpy as np
import tensorflow as tf

if not VERBOSE:
    tf.get_logger().setLevel("ERROR")

import PIL.Image
import imageio

from fractals import (
    COLORINGS,
    DEFAULT_CHUNK_PIXELS,
    DEFAULT_GRADIENT,
    GRADIENTS,
    INITIAL_ZOOM,
    VARIANTS,
    Julia,
    Mandelbrot,
    Newton,
    Viewport,
    compute_zoom_factors,
    render,
)


def select_device() -> str:
    """Use the first GPU TensorFlow can see, otherwise the CPU."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Path | None
    image_path: Path | None
    frame_dir: Path | None
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render Mandelbrot, Julia and Newton fractals to image files.')

    parser.add_argument('--fractal', choices=sorted(VARIANTS), default='mandelbrot',
                        help='fractal to render')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='maximum number of iterations per pixel',
                        metavar='MAX_ITERATIONS', default=100)

    parser.add_argument('--escape-radius', type=float,
                        dest='escape_radius', help='escape radius for the Mandelbrot and Julia sets',
                        metavar='ESCAPE_RADIUS', default=2.0)

    parser.add_argument('--julia-c', type=float, nargs=2,
                        dest='julia_c', help='real and imaginary parts of the Julia constant',
                        metavar=('RE', 'IM'), default=(-0.7, 0.27015))

    parser.add_argument('--gradient', type=str, choices=GRADIENTS,
                        dest='gradient', help='color ramp used by the gradient coloring',
                        default=DEFAULT_GRADIENT)

    parser.add_argument('--coloring', choices=COLORINGS, default='gradient',
                        help='"gradient" for the named ramp, "oscillator" for the sine palette')

    parser.add_argument('--width', type=int,
                        dest='width', help='frame width in pixels',
                        metavar='WIDTH', default=640)

    parser.add_argument('--height', type=int,
                        dest='height', help='frame height in pixels',
                        metavar='HEIGHT', default=480)

    parser.add_argument('--zoom', type=float,
                        dest='zoom', help='plane units per pixel; smaller values magnify',
                        metavar='ZOOM', default=INITIAL_ZOOM)

    parser.add_argument('--offset-x', type=float,
                        dest='offset_x', help='real coordinate at the center of the frame',
                        metavar='OFFSET_X', default=0.0)

    parser.add_argument('--offset-y', type=float,
                        dest='offset_y', help='imaginary coordinate at the center of the frame',
                        metavar='OFFSET_Y', default=0.0)

    parser.add_argument('--zoom-box', type=float, nargs=4, default=None,
                        metavar=('X0', 'Y0', 'X1', 'Y1'),
                        help='pixel corners of a box to center on and zoom into before rendering')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='number of frames to generate',
                        metavar='FRAMES', default=1)

    parser.add_argument('--zoom-factor', type=float,
                        dest='zoom_factor', help='the factor by which to multiply the zoom each frame. Choose < 1 for zoom in, >1 for zoom out',
                        metavar='ZOOM_FACTOR', default=0.8)

    parser.add_argument('--final-zoom', type=float, default=None,
                        help='Overall scale applied by the last frame (e.g., 1e-4 magnifies by 10000x). If set, overrides --zoom-factor.')

    parser.add_argument('--easing', type=str, default='ease',
                        help='Temporal curve used for variable zoom: "linear" or "ease" for smooth ease-in-out.')

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: image, gif, frames.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store numbered frames.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image-based outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--gif-frame-duration', type=float, default=0.1,
                        dest='gif_frame_duration', help='seconds each GIF frame stays on screen')

    parser.add_argument('--workers', type=int, default=None,
                        help='maximum number of render threads (default: CPU count)')

    parser.add_argument('--chunk-pixels', type=int, default=DEFAULT_CHUNK_PIXELS,
                        dest='chunk_pixels', help='pixels evaluated per render task')

    parser.add_argument('--device', type=str, default=None,
                        help='TensorFlow device, e.g. "/CPU:0". Defaults to the first GPU when available.')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    valid_modes = {"image", "gif", "frames"}
    modes = opt.modes or ["image"]

    normalized_modes: list[str] = []
    for mode in modes:
        if mode not in valid_modes:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(sorted(valid_modes))}.")
        if mode not in normalized_modes:
            normalized_modes.append(mode)
    modes_tuple = tuple(normalized_modes)

    image_format = (getattr(opt, "format", "png") or "png").lower().lstrip(".")
    if not image_format:
        image_format = "png"

    frame_dir_path: Path | None = None
    if "frames" in modes_tuple:
        frame_dir_path = Path(opt.frame_dir or "./frames").expanduser().resolve()
    elif opt.frame_dir is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    file_modes = [mode for mode in modes_tuple if mode in {"gif", "image"}]
    gif_path: Path | None = None
    image_path: Path | None = None

    if not file_modes:
        if opt.output:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        mode = file_modes[0]
        if opt.output:
            output_path = Path(opt.output).expanduser()
            if output_path.exists() and output_path.is_dir():
                parser.error("--output must point to a file, not a directory, when a single file mode is active.")
            expected_suffix = ".gif" if mode == "gif" else f".{image_format}"
            if output_path.suffix:
                if output_path.suffix.lower() != expected_suffix:
                    parser.error(f"--output extension {output_path.suffix} does not match the {mode} output ({expected_suffix}).")
            else:
                output_path = output_path.with_suffix(expected_suffix)
            if mode == "gif":
                gif_path = output_path.resolve()
            else:
                image_path = output_path.resolve()
        elif mode == "gif":
            gif_path = Path("fractal.gif").resolve()
        else:
            image_path = Path(f"fractal.{image_format}").resolve()
    else:
        base_dir = Path(opt.output).expanduser() if opt.output else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "fractal.gif").resolve()
        image_path = (base_dir / f"fractal.{image_format}").resolve()

    return OutputConfig(
        modes=modes_tuple,
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir_path,
        image_format=image_format,
    )


def build_variant(opt, parser: ArgumentParser):
    try:
        if opt.fractal == "mandelbrot":
            return Mandelbrot(
                max_iterations=opt.max_iterations,
                escape_radius=opt.escape_radius,
                gradient=opt.gradient,
            )
        if opt.fractal == "julia":
            return Julia(
                max_iterations=opt.max_iterations,
                escape_radius=opt.escape_radius,
                c=tuple(opt.julia_c),
                gradient=opt.gradient,
            )
        return Newton(max_iterations=opt.max_iterations, gradient=opt.gradient)
    except ValueError as exc:
        parser.error(str(exc))


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def frame_image(buffer: bytearray, width: int, height: int) -> PIL.Image.Image:
    return PIL.Image.frombytes("RGBA", (width, height), bytes(buffer))


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    if pil_format == "JPEG":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)


def write_frame_sequence(
    image: PIL.Image.Image,
    frame_dir: Path,
    index: int,
    digits: int,
    image_format: str,
) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    frame_path = frame_dir / f"frame{index:0{digits}d}.{image_format}"
    write_single_image(image, frame_path, image_format)
    return frame_path


def write_gif(writer: Any, frame_array: np.ndarray) -> None:
    """Append ``frame_array`` to an active GIF writer."""

    writer.append_data(frame_array)


@dataclass
class OutputWriters:
    config: OutputConfig
    frame_digits: int
    gif_frame_duration: float

    def __post_init__(self) -> None:
        self._gif_writer = None
        if "gif" in self.config.modes and self.config.gif_path is not None:
            self.config.gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(
                str(self.config.gif_path), mode='I', duration=self.gif_frame_duration, loop=0
            )

    def write_frame(self, frame_index: int, image: PIL.Image.Image) -> None:
        if self._gif_writer is not None:
            write_gif(self._gif_writer, np.asarray(image))
        if "frames" in self.config.modes and self.config.frame_dir is not None:
            write_frame_sequence(image, self.config.frame_dir, frame_index, self.frame_digits, self.config.image_format)

    def finalize(self, final_image: PIL.Image.Image | None) -> None:
        if "image" in self.config.modes and final_image is not None and self.config.image_path is not None:
            write_single_image(final_image, self.config.image_path, self.config.image_format)

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    if opt.width <= 0 or opt.height <= 0:
        parser.error("--width and --height must be positive.")
    if opt.zoom <= 0:
        parser.error("--zoom must be positive.")
    if opt.frames < 1:
        parser.error("--frames must be at least 1.")
    if opt.chunk_pixels < 1:
        parser.error("--chunk-pixels must be at least 1.")
    if opt.workers is not None and opt.workers < 1:
        parser.error("--workers must be at least 1.")

    output_config = resolve_output_config(opt, parser)
    variant = build_variant(opt, parser)
    device = opt.device or select_device()

    log("TensorFlow version: %s" % tf.__version__)
    log("Rendering %r on %s" % (variant, device))

    viewport = Viewport(zoom=opt.zoom, offset_x=opt.offset_x, offset_y=opt.offset_y)
    if opt.zoom_box is not None:
        x0, y0, x1, y1 = opt.zoom_box
        viewport = viewport.zoom_to_box((x0, y0), (x1, y1), opt.width, opt.height)
        log("Zoom box applied: %r" % (viewport,))

    per_frame_factors = compute_zoom_factors(
        opt.frames,
        opt.zoom_factor,
        final_zoom=opt.final_zoom,
        easing=opt.easing,
    )

    frame_digits = max(3, len(str(max(opt.frames - 1, 0))))
    writers = OutputWriters(output_config, frame_digits=frame_digits, gif_frame_duration=opt.gif_frame_duration)

    buffer = bytearray(opt.width * opt.height * 4)
    final_image: PIL.Image.Image | None = None

    try:
        for i in range(opt.frames):
            print("frame {0} out of {1}".format(i, opt.frames), end='\r')
            if i > 0:
                viewport = viewport.zoomed(per_frame_factors[i])
            render(
                variant,
                buffer,
                opt.width,
                opt.height,
                viewport.zoom,
                viewport.offset_x,
                viewport.offset_y,
                coloring=opt.coloring,
                chunk_pixels=opt.chunk_pixels,
                workers=opt.workers,
                device=device,
            )
            image = frame_image(buffer, opt.width, opt.height)
            writers.write_frame(i, image)
            final_image = image
            log("frame %d: zoom=%g offset=(%g, %g)" % (i, viewport.zoom, viewport.offset_x, viewport.offset_y))
    finally:
        writers.close()

    writers.finalize(final_image)


if __name__ == '__main__':
    main()
