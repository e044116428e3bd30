import numpy as np
import pytest

from fractals.viewport import (
    INITIAL_ZOOM,
    Viewport,
    compute_zoom_factors,
    pixel_to_complex,
    scroll_zoom_factor,
)


@pytest.mark.parametrize("width,height", [(4, 4), (5, 3), (640, 480), (1, 1)])
@pytest.mark.parametrize("zoom,offset", [(0.01, (0.0, 0.0)), (0.003, (-0.75, 0.1)), (2.5, (1e-3, -4.0))])
def test_center_pixel_maps_to_offset(width, height, zoom, offset):
    real, imag = pixel_to_complex(width // 2, height // 2, width, height, zoom, *offset)
    assert real == offset[0]
    assert imag == offset[1]


def test_pixel_mapping_scales_and_shifts_both_axes():
    real, imag = pixel_to_complex(0, 3, 4, 4, 0.5, 1.0, -1.0)
    assert real == pytest.approx(0.0)
    assert imag == pytest.approx(-0.5)


def test_pixel_mapping_is_vectorized():
    columns = np.array([0, 1, 2, 3])
    rows = np.array([3, 2, 1, 0])
    real, imag = pixel_to_complex(columns, rows, 4, 4, 1.0, 0.0, 0.0)
    np.testing.assert_array_equal(real, [-2.0, -1.0, 0.0, 1.0])
    np.testing.assert_array_equal(imag, [1.0, 0.0, -1.0, -2.0])


def test_viewport_method_matches_function():
    view = Viewport(zoom=0.25, offset_x=0.5, offset_y=-0.5)
    assert view.pixel_to_complex(7, 1, 10, 6) == pixel_to_complex(7, 1, 10, 6, 0.25, 0.5, -0.5)


def test_zoom_is_multiplicative_and_pan_additive():
    view = Viewport()
    assert view.zoom == INITIAL_ZOOM
    zoomed = view.zoomed(0.5).zoomed(0.5)
    assert zoomed.zoom == pytest.approx(INITIAL_ZOOM / 4)
    panned = zoomed.panned(0.25, -1.0).panned(0.25, 0.0)
    assert (panned.offset_x, panned.offset_y) == (0.5, -1.0)
    assert panned.zoom == zoomed.zoom


def test_pan_step_tracks_magnification():
    assert Viewport().pan_step() == pytest.approx(0.5)
    assert Viewport(zoom=INITIAL_ZOOM / 10).pan_step() == pytest.approx(0.05)


@pytest.mark.parametrize("scroll,expected", [(1.0, 0.5), (-1.0, 1.5), (3.0, 0.5), (0.0, 1.0)])
def test_scroll_zoom_factor(scroll, expected):
    assert scroll_zoom_factor(scroll) == pytest.approx(expected)


def test_zoom_to_box_recenters_and_zooms():
    view = Viewport(zoom=0.01)
    boxed = view.zoom_to_box((200.0, 150.0), (100.0, 50.0), 400, 300)
    assert boxed.offset_x == pytest.approx(-0.5)
    assert boxed.offset_y == pytest.approx(-0.5)
    # 10 * 10000 / 120000 exceeds the 0.8 ceiling.
    assert boxed.zoom == pytest.approx(0.008)


def test_zoom_to_box_small_box_only_recenters():
    view = Viewport(zoom=0.01, offset_x=1.0)
    boxed = view.zoom_to_box((300.0, 150.0), (305.0, 155.0), 400, 300)
    assert boxed.zoom == 0.01
    assert boxed.offset_x == pytest.approx(1.0 + 102.5 * 0.01)
    assert boxed.offset_y == pytest.approx(2.5 * 0.01)


def test_zoom_to_box_uses_box_share_of_screen():
    view = Viewport(zoom=1.0)
    boxed = view.zoom_to_box((0.0, 0.0), (20.0, 30.0), 400, 300)
    assert boxed.zoom == pytest.approx(10 * 600 / 120000)


def test_constant_zoom_factors():
    np.testing.assert_allclose(compute_zoom_factors(4, 0.8), [0.8] * 4)
    assert compute_zoom_factors(0, 0.8).size == 0


@pytest.mark.parametrize("easing", ["linear", "ease"])
def test_final_zoom_factors_multiply_out(easing):
    factors = compute_zoom_factors(10, 0.8, final_zoom=1e-3, easing=easing)
    assert factors.shape == (10,)
    assert factors[0] == pytest.approx(1.0)
    assert np.prod(factors) == pytest.approx(1e-3)
