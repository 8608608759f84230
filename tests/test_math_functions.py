import math

import numpy as np
import pytest

from mandelbrot_raster.core.math_functions import Axis, EscapeEvaluator, ViewWindow, in_set


def test_axis_rejects_degenerate_range():
    """An axis with zero range cannot be constructed."""
    with pytest.raises(ValueError):
        Axis(1.5, 1.5)


@pytest.mark.parametrize("bounds", [(float("nan"), 1.0), (0.0, float("inf"))])
def test_axis_rejects_non_finite(bounds):
    with pytest.raises(ValueError):
        Axis(*bounds)


def test_axis_map_endpoints():
    axis = Axis(-2.0, 1.0)
    assert axis.map(0.0) == -2.0
    assert axis.map(1.0) == 1.0
    assert axis.range == 3.0


@pytest.mark.parametrize("lo,hi", [(-2.0, 1.0), (-1e-3, 1e-3), (10.0, 250.0)])
def test_axis_map_is_monotonic(lo, hi):
    """Mapping never decreases over [0, 1] when max > min."""
    axis = Axis(lo, hi)
    values = [axis.map(t) for t in np.linspace(0.0, 1.0, 257)]
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_view_window_height_follows_aspect_ratio():
    window = ViewWindow.from_bounds((-2.0, 1.0, -1.0, 1.0))
    assert window.aspect_ratio == pytest.approx(1.5)
    assert window.height_for(800) == 533
    assert window.height_for(3) == 2


def test_view_window_pixel_mapping():
    window = ViewWindow.from_bounds((-1.0, 1.0, -1.0, 1.0))
    assert window.pixel_to_complex(0, 0, 4, 4) == (-1.0, -1.0)
    assert window.pixel_to_complex(2, 2, 4, 4) == (0.0, 0.0)
    assert window.pixel_to_complex(3, 1, 4, 4) == (0.5, -0.5)


def test_view_window_rejects_bad_bounds():
    with pytest.raises(ValueError):
        ViewWindow.from_bounds((-1.0, 1.0, 0.5))
    with pytest.raises(ValueError):
        ViewWindow.from_bounds((-1.0, 1.0, 0.5, 0.5))


@pytest.mark.parametrize("max_iter", [1, 2, 19, 20, 21, 100, 1000])
@pytest.mark.parametrize("smooth", [False, True])
def test_origin_never_escapes(max_iter, smooth):
    """The origin lies deep inside the main cardioid."""
    evaluator = EscapeEvaluator(max_iter=max_iter, smooth=smooth)
    result = evaluator.evaluate(0.0, 0.0)
    assert result == max_iter
    assert evaluator.is_inside(result)


@pytest.mark.parametrize("max_iter", [1, 2, 10, 1000])
@pytest.mark.parametrize("smooth", [False, True])
def test_far_point_escapes_immediately(max_iter, smooth):
    evaluator = EscapeEvaluator(max_iter=max_iter, smooth=smooth)
    result = evaluator.evaluate(3.0, 0.0)
    assert not evaluator.is_inside(result)
    if smooth:
        assert 0.0 <= result < 2.0
    else:
        assert result in (0, 1)


def test_discrete_escape_count():
    # c = -1 - i: |z1|^2 = 2, |z2|^2 = 2, |z3|^2 = 10
    evaluator = EscapeEvaluator(max_iter=10)
    assert evaluator.evaluate(-1.0, -1.0) == 2


def test_periodic_orbit_is_inside():
    """c = -1 settles into the 2-cycle 0, -1 and is caught by the orbit check."""
    checked = EscapeEvaluator(max_iter=100000)
    unchecked = EscapeEvaluator(max_iter=1000, periodicity_interval=0)
    assert checked.evaluate(-1.0, 0.0) == 100000
    assert unchecked.evaluate(-1.0, 0.0) == 1000


@pytest.mark.parametrize("smooth", [False, True])
def test_periodicity_check_keeps_slow_escapes(smooth):
    """A slowly escaping point just outside the cusp still escapes."""
    checked = EscapeEvaluator(max_iter=1000, smooth=smooth)
    unchecked = EscapeEvaluator(max_iter=1000, smooth=smooth, periodicity_interval=0)
    assert checked.evaluate(0.26, 0.0) == unchecked.evaluate(0.26, 0.0)
    assert not checked.is_inside(checked.evaluate(0.26, 0.0))


@pytest.mark.parametrize("c_real", [0.3, 0.35, 0.5, 0.7])
def test_smooth_value_is_continuous(c_real):
    evaluator = EscapeEvaluator(max_iter=500, smooth=True)
    a = evaluator.evaluate(c_real, 0.0)
    b = evaluator.evaluate(c_real + 1e-9, 0.0)
    assert abs(a - b) < 1e-3


def test_smooth_value_matches_formula():
    evaluator = EscapeEvaluator(max_iter=50, smooth=True)
    # c = 3: z1 = 3 escapes at index 0
    expected = 0 + 1 - math.log(math.log(3.0)) / math.log(2.0)
    assert evaluator.evaluate(3.0, 0.0) == pytest.approx(expected)


def test_smooth_value_is_clamped_for_huge_c():
    evaluator = EscapeEvaluator(max_iter=50, smooth=True)
    assert evaluator.evaluate(1e200, 1e200) == 0.0
    assert evaluator.evaluate(1e10, 0.0) == 0.0


@pytest.mark.parametrize("kwargs", [
    {"max_iter": 0},
    {"periodicity_interval": -1},
    {"periodicity_epsilon": -1e-12},
])
def test_evaluator_validation(kwargs):
    with pytest.raises(ValueError):
        EscapeEvaluator(**kwargs)


def test_periodicity_check_short_circuits_orbit():
    """A loose tolerance makes the orbit check fire before the point escapes."""
    unchecked = EscapeEvaluator(max_iter=1000, periodicity_interval=0, periodicity_epsilon=10.0)
    checked = EscapeEvaluator(max_iter=1000, periodicity_epsilon=10.0)

    assert unchecked.evaluate(0.26, 0.0) == 29
    assert checked.evaluate(0.26, 0.0) == 1000
    assert checked.is_inside(checked.evaluate(0.26, 0.0))


@pytest.mark.parametrize("interval,expected", [(20, 1000), (29, 1000), (30, 29), (50, 29)])
def test_periodicity_interval_sets_first_checkpoint(interval, expected):
    """The first check runs after `interval` iterations; earlier escapes are untouched."""
    evaluator = EscapeEvaluator(max_iter=1000, periodicity_interval=interval,
                                periodicity_epsilon=10.0)
    assert evaluator.evaluate(0.26, 0.0) == expected


@pytest.mark.parametrize("smooth", [False, True])
def test_evaluate_rows_matches_point_evaluation(smooth):
    evaluator = EscapeEvaluator(max_iter=200, smooth=smooth)
    window = ViewWindow.from_bounds((-2.0, 1.0, -1.0, 1.0))
    reals, imags = window.pixel_grid(21, 14)
    progress = np.zeros(2, dtype=np.int64)

    results = evaluator.evaluate_rows(reals, imags, progress, slot=1)

    assert results.shape == (14, 21)
    assert list(progress) == [0, 21 * 14]
    for y in range(14):
        for x in range(21):
            assert results[y, x] == evaluator.evaluate(*window.pixel_to_complex(x, y, 21, 14))


def test_pixel_grid_matches_pixel_mapping():
    window = ViewWindow.from_bounds((-2.0, 1.0, -1.0, 1.0))
    reals, imags = window.pixel_grid(7, 5)
    assert list(reals) == [window.pixel_to_complex(x, 0, 7, 5)[0] for x in range(7)]
    assert list(imags) == [window.pixel_to_complex(0, y, 7, 5)[1] for y in range(5)]


def test_in_set_works_on_arrays():
    np.testing.assert_array_equal(in_set(np.array([0.0, 49.9, 50.0]), 50), [False, False, True])
