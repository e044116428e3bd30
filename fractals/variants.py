"""Fractal configurations accepted by the frame renderer."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, replace
from typing import Union

from .colors import DEFAULT_GRADIENT

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_ESCAPE_RADIUS = 2.0
DEFAULT_JULIA_C = (-0.7, 0.27015)
# Iteration counters are 64-bit.
MAX_ITERATIONS_LIMIT = 2 ** 63 - 1


def _check_iterations(max_iterations: int) -> int:
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, numbers.Integral):
        raise ValueError(f"max_iterations must be an integer, got {max_iterations!r}.")
    if not 1 <= max_iterations <= MAX_ITERATIONS_LIMIT:
        raise ValueError(f"max_iterations must be between 1 and {MAX_ITERATIONS_LIMIT}, got {max_iterations}.")
    return int(max_iterations)


def _check_radius(escape_radius: float) -> None:
    if isinstance(escape_radius, bool) or not isinstance(escape_radius, numbers.Real):
        raise ValueError(f"escape_radius must be a real number, got {escape_radius!r}.")
    if not math.isfinite(escape_radius) or escape_radius <= 0:
        raise ValueError(f"escape_radius must be positive and finite, got {escape_radius}.")


@dataclass(frozen=True)
class Mandelbrot:
    """Iterate ``z <- z^2 + c`` from ``z = 0`` with ``c`` the pixel's plane coordinate."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    escape_radius: float = DEFAULT_ESCAPE_RADIUS
    gradient: str = DEFAULT_GRADIENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_iterations", _check_iterations(self.max_iterations))
        _check_radius(self.escape_radius)


@dataclass(frozen=True)
class Julia:
    """Iterate ``z <- z^2 + c`` from the pixel's plane coordinate with a fixed ``c``."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    escape_radius: float = DEFAULT_ESCAPE_RADIUS
    c: tuple[float, float] = DEFAULT_JULIA_C
    gradient: str = DEFAULT_GRADIENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_iterations", _check_iterations(self.max_iterations))
        _check_radius(self.escape_radius)
        try:
            real, imag = self.c
        except (TypeError, ValueError) as exc:
            raise ValueError(f"c must be a (real, imaginary) pair, got {self.c!r}.") from exc
        if not all(isinstance(part, numbers.Real) and not isinstance(part, bool) for part in (real, imag)):
            raise ValueError(f"c must contain real numbers, got {self.c!r}.")
        object.__setattr__(self, "c", (float(real), float(imag)))


@dataclass(frozen=True)
class Newton:
    """Newton's method on ``z^3 - 1``, starting from the pixel's plane coordinate."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    gradient: str = DEFAULT_GRADIENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_iterations", _check_iterations(self.max_iterations))


FractalVariant = Union[Mandelbrot, Julia, Newton]

VARIANTS: dict[str, type] = {
    "mandelbrot": Mandelbrot,
    "julia": Julia,
    "newton": Newton,
}


def default_variant(name: str, gradient: str | None = None) -> FractalVariant:
    """Build a fresh variant with default parameters for ``name``."""

    try:
        variant_cls = VARIANTS[name.lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown fractal '{name}'. Valid choices: {', '.join(VARIANTS)}.") from exc
    if gradient is None:
        return variant_cls()
    return variant_cls(gradient=gradient)


def reset_variant(variant: FractalVariant) -> FractalVariant:
    """Restore the default parameters of ``variant`` while keeping its gradient."""

    return default_variant(variant_name(variant), gradient=variant.gradient)


def with_gradient(variant: FractalVariant, gradient: str) -> FractalVariant:
    return replace(variant, gradient=gradient)


def variant_name(variant: FractalVariant) -> str:
    for name, variant_cls in VARIANTS.items():
        if type(variant) is variant_cls:
            return name
    raise TypeError(f"Expected a Mandelbrot, Julia or Newton variant, got {type(variant).__name__}.")
