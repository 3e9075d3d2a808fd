import math
import random

import pytest

from rhost.rhost_datagen import moving_window, randn, random_walk, regression_points
from rhost.rhost_datatypes import ParameterError


def test_regression_points_are_deterministic_for_a_seed():
    a = regression_points(25, 2.0, 1.0, 0.5, random.Random(7))
    b = regression_points(25, 2.0, 1.0, 0.5, random.Random(7))
    assert a == b
    assert len(a.x) == len(a.y) == 25
    assert all(0 <= x < 10 for x in a.x)


def test_zero_noise_lies_on_the_line():
    data = regression_points(10, -1.5, 4.0, 0, random.Random(1))
    for x, y in zip(data.x, data.y):
        assert y == pytest.approx(4.0 - 1.5 * x)


def test_parameters_may_arrive_as_floats():
    data = regression_points(5.0, 1, 0, 1, random.Random(3))
    assert len(data.x) == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(n=1, slope=1, intercept=0, noise=1),
        dict(n="many", slope=1, intercept=0, noise=1),
        dict(n=10, slope=math.nan, intercept=0, noise=1),
        dict(n=10, slope=1, intercept=math.inf, noise=1),
        dict(n=10, slope=1, intercept=0, noise=-0.1),
    ],
)
def test_regression_rejects_bad_parameters(kwargs):
    with pytest.raises(ParameterError):
        regression_points(rng=random.Random(0), **kwargs)


def test_randn_is_roughly_standard_normal():
    rng = random.Random(42)
    xs = [randn(rng) for _ in range(4000)]
    mean = sum(xs) / len(xs)
    var = sum((x - mean) ** 2 for x in xs) / len(xs)
    assert abs(mean) < 0.1
    assert 0.85 < var < 1.15


def test_random_walk_length_and_determinism():
    a = random_walk(20, random.Random(5))
    assert len(a.values) == 20
    assert a == random_walk(20, random.Random(5))
    assert a != random_walk(20, random.Random(6))


def test_random_walk_rejects_empty_series():
    with pytest.raises(ParameterError):
        random_walk(0, random.Random(0))


def test_moving_window_bounds():
    assert moving_window(5.0, 20) == 5
    assert moving_window(20, 20) == 20
    with pytest.raises(ParameterError):
        moving_window(0, 20)
    with pytest.raises(ParameterError):
        moving_window(21, 20)


@pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan, 2.7])
def test_counts_must_be_finite_whole_numbers(value):
    with pytest.raises(ParameterError):
        regression_points(value, 1, 0, 1, random.Random(0))
    with pytest.raises(ParameterError):
        random_walk(value, random.Random(0))


@pytest.mark.parametrize("window", [math.inf, 4.9])
def test_moving_window_rejects_non_whole_windows(window):
    with pytest.raises(ParameterError):
        moving_window(window, 20)
