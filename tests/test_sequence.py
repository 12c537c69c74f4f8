import numpy as np
import pytest

from escapetime import (
    GenerationRequest,
    InvalidParameter,
    Julia,
    ViewWindow,
    boundary_focus,
    boundary_mask,
    compute_zoom_factors,
    julia_sweep,
    render_escape,
    select_focus_pixel,
    zoom_sequence,
)


def test_no_frames_no_factors():
    assert compute_zoom_factors(0, 0.8).size == 0
    assert zoom_sequence(ViewWindow(), np.array([])) == []


def test_constant_zoom_factor():
    np.testing.assert_array_equal(compute_zoom_factors(4, 0.5), np.full(4, 0.5))


@pytest.mark.parametrize("easing", ["linear", "ease"])
def test_final_zoom_is_reached(easing):
    factors = compute_zoom_factors(10, 0.8, final_zoom=1e-3, easing=easing)
    assert factors.shape == (10,)
    assert np.prod(factors) == pytest.approx(1e-3)


def test_linear_final_zoom_is_geometric():
    factors = compute_zoom_factors(5, 0.8, final_zoom=1e-4, easing="linear")
    assert factors[0] == pytest.approx(1.0)
    np.testing.assert_allclose(factors[1:], np.full(4, 0.1))


def test_unknown_easing():
    with pytest.raises(InvalidParameter):
        compute_zoom_factors(5, 0.8, final_zoom=0.1, easing="bounce")


def test_non_positive_zoom():
    with pytest.raises(InvalidParameter):
        compute_zoom_factors(3, 0.0)
    with pytest.raises(InvalidParameter):
        compute_zoom_factors(3, 0.8, final_zoom=-1.0)


def test_zoom_sequence_scales_each_frame():
    view = ViewWindow(center=(-0.5, 0.0), scale=3.0)
    views = zoom_sequence(view, np.full(4, 0.5))
    assert views[0] == view
    assert [v.scale for v in views] == [3.0, 1.5, 0.75, 0.375]
    assert all(v.center == (-0.5, 0.0) for v in views)


def test_zoom_sequence_moves_to_focus():
    views = zoom_sequence(ViewWindow(center=(0.0, 0.0), scale=2.0), np.full(3, 0.5), focus=(-0.75, 0.1))
    assert views[0].center == (0.0, 0.0)
    assert views[1].center == (-0.75, 0.1)
    assert views[2].scale == 0.5


def test_boundary_mask_marks_transitions():
    escaped = np.array(
        [
            [True, True, True],
            [True, False, True],
            [True, True, True],
        ]
    )
    mask = boundary_mask(escaped)
    expected = np.array(
        [
            [False, False, False],
            [False, True, True],
            [False, True, False],
        ]
    )
    np.testing.assert_array_equal(mask, expected)


def test_select_focus_pixel_prefers_the_center():
    mask = np.zeros((5, 5), dtype=bool)
    mask[0, 0] = True
    mask[2, 3] = True
    assert select_focus_pixel(mask) == (2, 3)
    assert select_focus_pixel(np.zeros((4, 6), dtype=bool)) == (2, 3)


def test_boundary_focus_lies_near_the_set():
    request = GenerationRequest(width=32, height=32, view=ViewWindow(center=(-0.5, 0.0), scale=3.0), max_iterations=100)
    x, y = boundary_focus(render_escape(request), request.view)
    assert -2.0 <= x <= 0.5
    assert -1.5 <= y <= 1.5


def test_julia_sweep_endpoints():
    variants = julia_sweep((-0.8, 0.156), (0.285, 0.01), 5)
    assert len(variants) == 5
    assert variants[0] == Julia((-0.8, 0.156))
    assert variants[-1] == Julia((0.285, 0.01))
    assert variants[2].c == pytest.approx(((-0.8 + 0.285) / 2, (0.156 + 0.01) / 2))


def test_julia_sweep_small_counts():
    assert julia_sweep((0.0, 0.0), (1.0, 1.0), 0) == []
    assert julia_sweep((0.0, 0.0), (1.0, 1.0), 1) == [Julia((0.0, 0.0))]
    with pytest.raises(InvalidParameter):
        julia_sweep((float("nan"), 0.0), (1.0, 1.0), 3)
