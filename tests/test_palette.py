import numpy as np
import pytest

from escapetime import INSIDE_COLOR, InvalidParameter, IterationResult, PaletteParams, colorize, colorize_grid


@pytest.mark.parametrize("palette", [PaletteParams(16, 0.0), PaletteParams(1, 200.0), PaletteParams(7, -33.3)])
def test_points_in_the_set_use_the_sentinel(palette):
    assert colorize(IterationResult(False, 50, None), palette) == INSIDE_COLOR
    assert INSIDE_COLOR == (0, 0, 0, 255)


def test_alpha_is_opaque():
    palette = PaletteParams(16, 10.0)
    for k in range(1, 40):
        assert colorize(IterationResult(True, k, None), palette)[3] == 255


def test_full_period_with_zero_hue_is_red():
    assert colorize(IterationResult(True, 16, None), PaletteParams(16, 0.0)) == (255, 0, 0, 255)


def test_palette_is_periodic_in_iterations():
    palette = PaletteParams(16, 37.5)
    for k in range(1, 40):
        first = colorize(IterationResult(True, k, None), palette)
        second = colorize(IterationResult(True, k + 16, None), palette)
        assert first == second


def test_palette_is_periodic_in_smoothed_values():
    palette = PaletteParams(16, 100.0)
    first = colorize(IterationResult(True, 3, 3.25), palette)
    second = colorize(IterationResult(True, 19, 19.25), palette)
    assert first == second


def test_hue_wraps_at_360():
    results = [IterationResult(True, k, None) for k in range(1, 20)]
    for result in results:
        base = colorize(result, PaletteParams(12, 45.0))
        assert colorize(result, PaletteParams(12, 405.0)) == base
        assert colorize(result, PaletteParams(12, -315.0)) == base


def test_smoothing_can_be_disabled():
    palette = PaletteParams(16, 0.0)
    result = IterationResult(True, 16, 16.5)
    assert colorize(result, palette, smooth=False) == (255, 0, 0, 255)
    assert colorize(result, palette, smooth=True) != (255, 0, 0, 255)


def test_smoothed_colours_change_continuously():
    palette = PaletteParams(32, 0.0)
    a = np.array(colorize(IterationResult(True, 5, 5.0), palette), dtype=int)
    b = np.array(colorize(IterationResult(True, 5, 5.001), palette), dtype=int)
    assert np.abs(a - b).max() <= 2


def test_grid_matches_scalar_colorize():
    palette = PaletteParams(9, 300.0)
    values = np.array([[1.0, 2.5, 7.0], [11.0, 12.75, 50.0]])
    escaped = np.array([[True, True, True], [True, True, False]])
    rgba = colorize_grid(values, escaped, palette)
    assert rgba.shape == (2, 3, 4)
    assert rgba.dtype == np.uint8
    for index in np.ndindex(values.shape):
        result = IterationResult(bool(escaped[index]), int(values[index]), float(values[index]))
        assert tuple(rgba[index]) == colorize(result, palette)


@pytest.mark.parametrize("length", [0, -3, 2.5])
def test_invalid_length(length):
    with pytest.raises(InvalidParameter):
        colorize(IterationResult(True, 3, None), PaletteParams(length, 0.0))


def test_invalid_hue():
    with pytest.raises(InvalidParameter):
        colorize(IterationResult(True, 3, None), PaletteParams(8, float("nan")))


@pytest.mark.parametrize("palette", [PaletteParams("8", 0.0), PaletteParams(None, 0.0), PaletteParams(8, "red")])
def test_malformed_palette(palette):
    with pytest.raises(InvalidParameter):
        colorize(IterationResult(True, 3, None), palette)
