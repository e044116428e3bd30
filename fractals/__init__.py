"""Public API for the fractal evaluation engine."""

from .colors import DEFAULT_GRADIENT, GRADIENTS, gradient_lookup, lerp, oscillator_colors, resolve_gradient
from .kernels import (
    NEWTON_ROOTS,
    NEWTON_TOLERANCE,
    IterationResult,
    julia_kernel,
    mandelbrot_kernel,
    newton_kernel,
    normalized_fraction,
    smooth_iterations,
)
from .renderer import COLORINGS, DEFAULT_CHUNK_PIXELS, evaluate, render
from .variants import (
    VARIANTS,
    FractalVariant,
    Julia,
    Mandelbrot,
    Newton,
    default_variant,
    reset_variant,
    variant_name,
    with_gradient,
)
from .viewport import INITIAL_ZOOM, Viewport, compute_zoom_factors, pixel_to_complex, scroll_zoom_factor

__all__ = [
    "COLORINGS",
    "DEFAULT_CHUNK_PIXELS",
    "DEFAULT_GRADIENT",
    "FractalVariant",
    "GRADIENTS",
    "INITIAL_ZOOM",
    "IterationResult",
    "Julia",
    "Mandelbrot",
    "NEWTON_ROOTS",
    "NEWTON_TOLERANCE",
    "Newton",
    "VARIANTS",
    "Viewport",
    "compute_zoom_factors",
    "default_variant",
    "evaluate",
    "gradient_lookup",
    "julia_kernel",
    "lerp",
    "mandelbrot_kernel",
    "newton_kernel",
    "normalized_fraction",
    "oscillator_colors",
    "pixel_to_complex",
    "render",
    "reset_variant",
    "resolve_gradient",
    "scroll_zoom_factor",
    "smooth_iterations",
    "variant_name",
    "with_gradient",
]
