"""Color model: two-color interpolation, named gradient ramps and the oscillator palette."""

from __future__ import annotations

import threading

import numpy as np
from matplotlib import colormaps as _mpl_colormaps
from matplotlib.colors import Colormap, ListedColormap

DEFAULT_GRADIENT = "Magma"

# Gradient identifier -> matplotlib colormap name. ``None`` marks ramps built locally.
_GRADIENT_SOURCES: dict[str, str | None] = {
    "Magma": "magma",
    "Inferno": "inferno",
    "Plasma": "plasma",
    "Viridis": "viridis",
    "Cividis": "cividis",
    "Turbo": "turbo",
    "Rainbow": "rainbow",
    "Sinebow": None,
}

GRADIENTS: tuple[str, ...] = tuple(_GRADIENT_SOURCES)

SINEBOW_SAMPLES = 256
# The full sinebow period wraps onto its starting color.
SINEBOW_SPAN = 5.0 / 6.0

OSCILLATOR_FREQUENCIES = (0.0730, 0.0460, 0.0900)

_cache: dict[str, Colormap] = {}
_cache_lock = threading.Lock()


def _saturate(values: np.ndarray) -> np.ndarray:
    """Truncate to 8-bit channels, saturating at 0 and 255."""

    values = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0)
    return np.clip(values, 0.0, 255.0).astype(np.uint8)


def lerp(start, end, t):
    """Linearly interpolate two RGB colors channel by channel.

    ``start`` and ``end`` are RGB triples (or arrays of them along the last
    axis) and ``t`` a scalar or array of weights. Each channel becomes
    ``start * (1 - t) + end * t`` truncated to an 8-bit integer. Range checks
    on ``t`` are left to the caller.
    """

    start_arr = np.asarray(start, dtype=np.float64)
    end_arr = np.asarray(end, dtype=np.float64)
    weight = np.asarray(t, dtype=np.float64)[..., np.newaxis]
    channels = _saturate(start_arr * (1.0 - weight) + end_arr * weight)
    if channels.ndim == 1:
        return tuple(int(channel) for channel in channels)
    return channels


def _sinebow_colormap() -> ListedColormap:
    phase = 0.5 - np.linspace(0.0, SINEBOW_SPAN, SINEBOW_SAMPLES, dtype=np.float64)
    colors = np.stack(
        [np.sin(np.pi * (phase + shift)) ** 2 for shift in (0.0, 1.0 / 3.0, 2.0 / 3.0)],
        axis=-1,
    )
    return ListedColormap(colors, name="sinebow")


def _load_gradient(gradient_id: str) -> Colormap:
    source = _GRADIENT_SOURCES[gradient_id]
    cmap = _sinebow_colormap() if source is None else _mpl_colormaps[source]
    # Build the lookup table now so worker threads only read it.
    cmap(0.0)
    return cmap


def resolve_gradient(gradient_id: str) -> Colormap:
    """Return the colormap for ``gradient_id``, falling back to the default ramp."""

    if gradient_id not in _GRADIENT_SOURCES:
        gradient_id = DEFAULT_GRADIENT
    with _cache_lock:
        cmap = _cache.get(gradient_id)
        if cmap is None:
            cmap = _load_gradient(gradient_id)
            _cache[gradient_id] = cmap
    return cmap


def gradient_lookup(gradient_id: str, fraction):
    """Map ``fraction`` in [0, 1] to an 8-bit RGBA color of the named ramp.

    A scalar fraction yields a 4-tuple of ints, an array yields an
    ``(..., 4)`` uint8 array.
    """

    cmap = resolve_gradient(gradient_id)
    if np.ndim(fraction) == 0:
        return tuple(int(channel) for channel in cmap(float(fraction), bytes=True))
    return np.asarray(cmap(np.asarray(fraction, dtype=np.float64), bytes=True), dtype=np.uint8)


def oscillator_colors(iterations) -> np.ndarray:
    """Color iteration counts with three sine oscillators, smoothed between integers."""

    counts = np.asarray(iterations, dtype=np.float64)
    frequencies = np.asarray(OSCILLATOR_FREQUENCIES, dtype=np.float64)
    current = _saturate(np.sin(np.multiply.outer(counts, frequencies)) * 255.0)
    following = _saturate(np.sin(np.multiply.outer(counts + 1.0, frequencies)) * 255.0)
    rgb = np.asarray(lerp(current, following, np.mod(counts, 1.0)), dtype=np.uint8)
    alpha = np.full(rgb.shape[:-1] + (1,), 255, dtype=np.uint8)
    return np.concatenate([rgb, alpha], axis=-1)
