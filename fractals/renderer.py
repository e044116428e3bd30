"""Frame renderer: evaluates a fractal variant over every pixel of an RGBA buffer."""

from __future__ import annotations

import math
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .colors import gradient_lookup, oscillator_colors
from .kernels import (
    IterationResult,
    julia_kernel,
    mandelbrot_kernel,
    newton_kernel,
    normalized_fraction,
    smooth_iterations,
)
from .variants import FractalVariant, Julia, Mandelbrot, Newton, variant_name
from .viewport import pixel_to_complex

DEFAULT_CHUNK_PIXELS = 65536
COLORINGS = ("gradient", "oscillator")


@dataclass(frozen=True)
class FrameJob:
    """Read-only parameters shared by every chunk of one render call."""

    variant: FractalVariant
    width: int
    height: int
    zoom: float
    offset_x: float
    offset_y: float
    coloring: str
    device: Optional[str]


def evaluate(variant: FractalVariant, real, imag, *, device: Optional[str] = None) -> tuple[IterationResult, np.ndarray]:
    """Run the variant's kernel and return the raw result with its iteration counts.

    Mandelbrot and Julia counts carry the smooth-coloring correction, Newton
    counts are the raw integers.
    """

    if isinstance(variant, Mandelbrot):
        result = mandelbrot_kernel(
            real,
            imag,
            max_iterations=variant.max_iterations,
            escape_radius=variant.escape_radius,
            device=device,
        )
        return result, smooth_iterations(result)
    if isinstance(variant, Julia):
        result = julia_kernel(
            real,
            imag,
            c=variant.c,
            max_iterations=variant.max_iterations,
            escape_radius=variant.escape_radius,
            device=device,
        )
        return result, smooth_iterations(result)
    if isinstance(variant, Newton):
        result = newton_kernel(real, imag, max_iterations=variant.max_iterations, device=device)
        return result, result.iterations.astype(np.float64)
    raise TypeError(f"Expected a Mandelbrot, Julia or Newton variant, got {type(variant).__name__}.")


def colorize(job: FrameJob, real: np.ndarray, imag: np.ndarray) -> np.ndarray:
    """Compute ``(n, 4)`` RGBA bytes for the plane coordinates of one chunk."""

    _, counts = evaluate(job.variant, real, imag, device=job.device)
    if job.coloring == "oscillator":
        return oscillator_colors(counts)
    fraction = normalized_fraction(counts, job.variant.max_iterations)
    return gradient_lookup(job.variant.gradient, fraction)


def _render_chunk(job: FrameJob, pixels: np.ndarray, start: int, stop: int) -> None:
    index = np.arange(start, stop, dtype=np.int64)
    rows = index // job.width
    columns = index % job.width
    real, imag = pixel_to_complex(columns, rows, job.width, job.height, job.zoom, job.offset_x, job.offset_y)
    pixels[start:stop] = colorize(job, real, imag)


def pixel_view(buffer, width: int, height: int) -> np.ndarray:
    """Return a writable ``(width * height, 4)`` uint8 view onto the caller's buffer."""

    if isinstance(width, bool) or not isinstance(width, int) or width <= 0:
        raise ValueError(f"width must be a positive integer, got {width!r}.")
    if isinstance(height, bool) or not isinstance(height, int) or height <= 0:
        raise ValueError(f"height must be a positive integer, got {height!r}.")

    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise ValueError(f"Pixel buffer must hold uint8 values, got {buffer.dtype}.")
        if not buffer.flags.c_contiguous:
            raise ValueError("Pixel buffer must be C-contiguous.")
        flat = buffer.reshape(-1)
    else:
        try:
            flat = np.frombuffer(buffer, dtype=np.uint8)
        except TypeError as exc:
            raise ValueError(f"Pixel buffer must support the buffer protocol, got {type(buffer).__name__}.") from exc

    expected = width * height * 4
    if flat.size != expected:
        raise ValueError(
            f"Pixel buffer holds {flat.size} bytes but a {width}x{height} RGBA frame needs {expected}."
        )
    if not flat.flags.writeable:
        raise ValueError("Pixel buffer is read-only.")
    return flat.reshape(width * height, 4)


def render(
    variant: FractalVariant,
    buffer,
    width: int,
    height: int,
    zoom: float,
    offset_x: float,
    offset_y: float,
    *,
    coloring: str = "gradient",
    chunk_pixels: int = DEFAULT_CHUNK_PIXELS,
    workers: Optional[int] = None,
    device: Optional[str] = None,
) -> None:
    """Write the RGBA color of every pixel of ``variant`` into ``buffer``.

    ``buffer`` is borrowed for the duration of the call and must hold exactly
    ``width * height * 4`` writable bytes, row-major. All arguments are
    validated before the first write. Pixels are split into chunks of
    ``chunk_pixels`` and evaluated on at most ``workers`` threads; every pixel
    depends only on its own coordinates, so the output is identical for any
    chunking.
    """

    variant_name(variant)
    if coloring not in COLORINGS:
        raise ValueError(f"Unknown coloring '{coloring}'. Valid choices: {', '.join(COLORINGS)}.")
    if not math.isfinite(zoom) or zoom <= 0:
        raise ValueError(f"zoom must be positive and finite, got {zoom}.")
    if not (math.isfinite(offset_x) and math.isfinite(offset_y)):
        raise ValueError(f"offset must be finite, got ({offset_x}, {offset_y}).")
    if chunk_pixels < 1:
        raise ValueError(f"chunk_pixels must be at least 1, got {chunk_pixels}.")
    if workers is not None and workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}.")

    pixels = pixel_view(buffer, width, height)
    job = FrameJob(
        variant=variant,
        width=width,
        height=height,
        zoom=float(zoom),
        offset_x=float(offset_x),
        offset_y=float(offset_y),
        coloring=coloring,
        device=device,
    )

    total = width * height
    starts = range(0, total, chunk_pixels)
    if len(starts) == 1:
        _render_chunk(job, pixels, 0, total)
        return

    max_workers = workers if workers is not None else (os.cpu_count() or 1)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(_render_chunk, job, pixels, start, min(start + chunk_pixels, total)) for start in starts]
        for future in futures:
            future.result()
