"""Escape-time and Newton iteration kernels."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

NEWTON_TOLERANCE = 1e-6

NEWTON_ROOTS = (
    complex(1.0, 0.0),
    complex(-0.5, math.sqrt(3.0) / 2.0),
    complex(-0.5, -math.sqrt(3.0) / 2.0),
)

_POINTS = tf.TensorSpec(shape=[None], dtype=tf.float64)
_COUNT = tf.TensorSpec(shape=[], dtype=tf.int64)
_REAL = tf.TensorSpec(shape=[], dtype=tf.float64)


@dataclass(frozen=True)
class IterationResult:
    """Raw per-point outcome of a kernel run, in the shape of the input coordinates."""

    iterations: np.ndarray
    z_real: np.ndarray
    z_imag: np.ndarray
    max_iterations: int
    roots: Optional[np.ndarray] = None

    @property
    def escaped(self) -> np.ndarray:
        return self.iterations < self.max_iterations

    @property
    def converged(self) -> np.ndarray:
        if self.roots is None:
            raise AttributeError("Only Newton results carry convergence information.")
        return self.roots >= 0


@tf.function
def _escape_step(x, y, x2, y2, cx, cy, ns, active, radius_sq):
    """Apply ``z <- z^2 + c`` to the points that are still bounded."""

    y_new = 2.0 * x * y + cy
    x_new = x2 - y2 + cx
    x = tf.where(active, x_new, x)
    y = tf.where(active, y_new, y)
    x2 = x * x
    y2 = y * y
    ns = ns + tf.cast(active, tf.int64)
    active = tf.logical_and(active, x2 + y2 <= radius_sq)
    return x, y, x2, y2, ns, active


@tf.function(input_signature=[_POINTS, _POINTS, _POINTS, _POINTS, _COUNT, _REAL])
def _escape_run(zx, zy, cx, cy, max_iterations, radius_sq):
    """Iterate the quadratic map until every point escapes or runs out of iterations."""

    i = tf.constant(0, dtype=tf.int64)
    x2 = zx * zx
    y2 = zy * zy
    ns = tf.zeros_like(zx, dtype=tf.int64)
    active = x2 + y2 <= radius_sq

    def cond(i, x, y, x2, y2, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, x, y, x2, y2, ns, active):
        x, y, x2, y2, ns, active = _escape_step(x, y, x2, y2, cx, cy, ns, active, radius_sq)
        return i + 1, x, y, x2, y2, ns, active

    _, x, y, _, _, ns, _ = tf.while_loop(cond, body, (i, zx, zy, x2, y2, ns, active))
    return x, y, ns


def _near_roots(z: tf.Tensor, roots: tf.Tensor, tolerance: tf.Tensor) -> tf.Tensor:
    diff = tf.expand_dims(z, -1) - tf.expand_dims(roots, 0)
    close = tf.logical_and(
        tf.abs(tf.math.real(diff)) < tolerance,
        tf.abs(tf.math.imag(diff)) < tolerance,
    )
    return close


@tf.function
def _newton_step(z, ns, active, stalled, roots, tolerance):
    """Apply one Newton update for ``z^3 - 1`` to the unconverged points."""

    three = tf.constant(3.0, dtype=z.dtype)
    one = tf.constant(1.0, dtype=z.dtype)
    derivative = three * z * z
    degenerate = tf.logical_and(active, tf.equal(derivative, tf.zeros_like(derivative)))
    moving = tf.logical_and(active, tf.logical_not(degenerate))
    safe_derivative = tf.where(degenerate, tf.ones_like(derivative), derivative)
    z_new = z - (z * z * z - one) / safe_derivative
    z = tf.where(moving, z_new, z)
    ns = ns + tf.cast(moving, tf.int64)
    done = tf.reduce_any(_near_roots(z, roots, tolerance), axis=-1)
    active = tf.logical_and(moving, tf.logical_not(done))
    stalled = tf.logical_or(stalled, degenerate)
    return z, ns, active, stalled


@tf.function(input_signature=[_POINTS, _POINTS, _COUNT, _REAL])
def _newton_run(zx, zy, max_iterations, tolerance):
    """Run Newton's method until every point converges, stalls or runs out of iterations."""

    roots = tf.constant(NEWTON_ROOTS, dtype=tf.complex128)
    z = tf.complex(zx, zy)
    i = tf.constant(0, dtype=tf.int64)
    ns = tf.zeros_like(zx, dtype=tf.int64)
    active = tf.logical_not(tf.reduce_any(_near_roots(z, roots, tolerance), axis=-1))
    stalled = tf.zeros_like(active)

    def cond(i, z, ns, active, stalled):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, z, ns, active, stalled):
        z, ns, active, stalled = _newton_step(z, ns, active, stalled, roots, tolerance)
        return i + 1, z, ns, active, stalled

    _, z, ns, _, stalled = tf.while_loop(cond, body, (i, z, ns, active, stalled))

    # A vanishing derivative counts as non-convergence.
    ns = tf.where(stalled, tf.fill(tf.shape(ns), max_iterations), ns)
    close = _near_roots(z, roots, tolerance)
    found = tf.logical_and(tf.reduce_any(close, axis=-1), tf.logical_not(stalled))
    basin = tf.where(found, tf.argmax(tf.cast(close, tf.int32), axis=-1, output_type=tf.int64), -tf.ones_like(ns))
    return tf.math.real(z), tf.math.imag(z), ns, basin


def _flatten(real, imag) -> tuple[np.ndarray, np.ndarray, tuple[int, ...]]:
    real_arr, imag_arr = np.broadcast_arrays(np.asarray(real, dtype=np.float64), np.asarray(imag, dtype=np.float64))
    shape = real_arr.shape
    return np.ascontiguousarray(real_arr).reshape(-1), np.ascontiguousarray(imag_arr).reshape(-1), shape


def _run_escape(zx, zy, cx, cy, shape, max_iterations: int, escape_radius: float, device: Optional[str]) -> IterationResult:
    with tf.device(device if device is not None else "/CPU:0"):
        x, y, ns = _escape_run(
            tf.convert_to_tensor(zx, dtype=tf.float64),
            tf.convert_to_tensor(zy, dtype=tf.float64),
            tf.convert_to_tensor(cx, dtype=tf.float64),
            tf.convert_to_tensor(cy, dtype=tf.float64),
            tf.constant(max_iterations, dtype=tf.int64),
            tf.constant(float(escape_radius) ** 2, dtype=tf.float64),
        )
    return IterationResult(
        iterations=ns.numpy().reshape(shape),
        z_real=x.numpy().reshape(shape),
        z_imag=y.numpy().reshape(shape),
        max_iterations=int(max_iterations),
    )


def mandelbrot_kernel(real, imag, *, max_iterations: int, escape_radius: float, device: Optional[str] = None) -> IterationResult:
    """Escape-time iteration of ``z <- z^2 + c`` with ``z0 = 0`` and ``c = real + i*imag``."""

    cx, cy, shape = _flatten(real, imag)
    zeros = np.zeros_like(cx)
    return _run_escape(zeros, zeros, cx, cy, shape, max_iterations, escape_radius, device)


def julia_kernel(
    real,
    imag,
    *,
    c: tuple[float, float],
    max_iterations: int,
    escape_radius: float,
    device: Optional[str] = None,
) -> IterationResult:
    """Escape-time iteration of ``z <- z^2 + c`` with ``z0 = real + i*imag`` and a fixed ``c``."""

    zx, zy, shape = _flatten(real, imag)
    cx = np.full_like(zx, np.float64(c[0]))
    cy = np.full_like(zy, np.float64(c[1]))
    return _run_escape(zx, zy, cx, cy, shape, max_iterations, escape_radius, device)


def newton_kernel(
    real,
    imag,
    *,
    max_iterations: int,
    tolerance: float = NEWTON_TOLERANCE,
    device: Optional[str] = None,
) -> IterationResult:
    """Newton's method for ``z^3 - 1`` from ``z0 = real + i*imag``.

    Points within ``tolerance`` of a cube root of unity (componentwise) stop
    iterating. A zero derivative ends the point's run as non-converged with
    ``iterations == max_iterations``.
    """

    zx, zy, shape = _flatten(real, imag)
    with tf.device(device if device is not None else "/CPU:0"):
        x, y, ns, basin = _newton_run(
            tf.convert_to_tensor(zx, dtype=tf.float64),
            tf.convert_to_tensor(zy, dtype=tf.float64),
            tf.constant(max_iterations, dtype=tf.int64),
            tf.constant(tolerance, dtype=tf.float64),
        )
    return IterationResult(
        iterations=ns.numpy().reshape(shape),
        z_real=x.numpy().reshape(shape),
        z_imag=y.numpy().reshape(shape),
        max_iterations=int(max_iterations),
        roots=basin.numpy().reshape(shape),
    )


def smooth_iterations(result: IterationResult) -> np.ndarray:
    """Continuous iteration count ``n + 1 - log2(log2 |z|)`` for escaped points.

    Points that never escaped, and points whose final ``|z|`` does not exceed 1,
    keep their integer count.
    """

    counts = result.iterations.astype(np.float64)
    modulus_sq = result.z_real * result.z_real + result.z_imag * result.z_imag
    corrected = np.logical_and(result.escaped, modulus_sq > 1.0)
    log2 = np.log(2.0)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        log_zn = np.log(np.where(corrected, modulus_sq, 2.0)) / 2.0
        nu = np.log(log_zn / log2) / log2
        smooth = counts + 1.0 - nu
    return np.where(np.logical_and(corrected, np.isfinite(smooth)), smooth, counts)


def normalized_fraction(counts, max_iterations: int) -> np.ndarray:
    """Scale iteration counts by ``max_iterations`` into [0, 1]."""

    return np.clip(np.asarray(counts, dtype=np.float64) / np.float64(max_iterations), 0.0, 1.0)
