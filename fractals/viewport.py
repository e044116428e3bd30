"""Viewport mapping and the pan/zoom arithmetic applied between frames."""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

INITIAL_ZOOM = 0.003
SCROLL_ZOOM_AMOUNT = 5.0
PAN_DISTANCE = 0.5
BOX_ZOOM_COEFFICIENT = 10.0
BOX_ZOOM_LIMITS = (0.00001, 0.8)
MIN_BOX_AREA = 100.0


def pixel_to_complex(column, row, width: int, height: int, zoom: float, offset_x: float, offset_y: float):
    """Map pixel ``(column, row)`` onto the complex plane.

    The pixel is centered on ``(width // 2, height // 2)``, scaled by ``zoom``
    and shifted by the offset, identically on both axes. Accepts scalars or
    arrays of pixel indices.
    """

    real = (np.asarray(column, dtype=np.int64) - width // 2).astype(np.float64) * np.float64(zoom) + np.float64(offset_x)
    imag = (np.asarray(row, dtype=np.int64) - height // 2).astype(np.float64) * np.float64(zoom) + np.float64(offset_y)
    return real, imag


@dataclass(frozen=True)
class Viewport:
    """Zoom (plane units per pixel) and plane-space offset of the visible region."""

    zoom: float = INITIAL_ZOOM
    offset_x: float = 0.0
    offset_y: float = 0.0

    def zoomed(self, factor: float) -> "Viewport":
        return replace(self, zoom=float(np.float64(self.zoom) * np.float64(factor)))

    def panned(self, dx: float, dy: float) -> "Viewport":
        return replace(self, offset_x=self.offset_x + dx, offset_y=self.offset_y + dy)

    def pan_step(self) -> float:
        """Plane distance of one keyboard pan, constant in screen terms."""

        return PAN_DISTANCE * (self.zoom / INITIAL_ZOOM)

    def pixel_to_complex(self, column, row, width: int, height: int):
        return pixel_to_complex(column, row, width, height, self.zoom, self.offset_x, self.offset_y)

    def zoom_to_box(
        self,
        start: tuple[float, float],
        end: tuple[float, float],
        width: int,
        height: int,
    ) -> "Viewport":
        """Center on a dragged pixel box and zoom in by its share of the screen.

        Boxes smaller than ``MIN_BOX_AREA`` square pixels only recenter.
        """

        box_width = abs(start[0] - end[0])
        box_height = abs(start[1] - end[1])
        left = min(start[0], end[0])
        top = min(start[1], end[1])

        offset_x = self.offset_x + ((left + box_width / 2.0) - width / 2.0) * self.zoom
        offset_y = self.offset_y + ((top + box_height / 2.0) - height / 2.0) * self.zoom
        zoom = self.zoom

        box_area = box_width * box_height
        if box_area >= MIN_BOX_AREA:
            screen_area = float(width * height)
            low, high = BOX_ZOOM_LIMITS
            zoom *= float(np.clip(box_area / screen_area * BOX_ZOOM_COEFFICIENT, low, high))

        return Viewport(zoom=zoom, offset_x=offset_x, offset_y=offset_y)


def scroll_zoom_factor(scroll: float, zoom_amount: float = SCROLL_ZOOM_AMOUNT) -> float:
    """Multiplicative zoom for a scroll step; scrolling up magnifies."""

    if scroll == 0:
        return 1.0
    return 1.0 + 0.1 * zoom_amount * -float(np.sign(scroll))


def compute_zoom_factors(frames: int, zoom_factor: float, *, final_zoom: float | None = None, easing: str = "ease") -> np.ndarray:
    """Compute per-frame zoom multipliers for an animation.

    With ``final_zoom`` the factors multiply out to ``final_zoom``, spread over
    the frames by a linear or smoothstep curve; otherwise every frame uses
    ``zoom_factor``.
    """

    if frames <= 0:
        return np.array([], dtype=np.float64)

    if final_zoom is None or final_zoom <= 0:
        return np.full(frames, np.float64(zoom_factor), dtype=np.float64)

    def smoothstep(t: float) -> float:
        return 3 * t ** 2 - 2 * t ** 3

    ease = (lambda t: t) if easing.lower() == "linear" else smoothstep
    if frames == 1:
        progress = np.array([1.0], dtype=np.float64)
    else:
        progress = np.array([ease(i / (frames - 1)) for i in range(frames)], dtype=np.float64)
    progress = np.clip(progress, 0.0, 1.0)
    increments = np.diff(np.concatenate(([0.0], progress)))
    return np.exp(increments * np.log(final_zoom))
