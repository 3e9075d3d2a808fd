"""
Synthetic input data for the panels that feed the evaluator generated data.

Every generator is a pure function of its parameters and a supplied
`random.Random`; the same seed gives the same data.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import List

from rhost.rhost_datatypes import ParameterError


@dataclass(frozen=True)
class RegressionData:
    x: List[float]
    y: List[float]


@dataclass(frozen=True)
class SeriesData:
    values: List[float]


def randn(rng: random.Random) -> float:
    """A standard normal deviate (Box-Muller)."""
    u = 0.0
    v = 0.0
    while u == 0.0:
        u = rng.random()
    while v == 0.0:
        v = rng.random()
    return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def _count(name: str, value, minimum: int) -> int:
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise ParameterError(f"{name} must be an integer, got {value!r}") from e
    if not math.isfinite(v) or v != int(v):
        raise ParameterError(f"{name} must be a whole number, got {value!r}")
    n = int(v)
    if n < minimum:
        raise ParameterError(f"{name} must be at least {minimum}, got {n}")
    return n


def _finite(name: str, value) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise ParameterError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(v):
        raise ParameterError(f"{name} must be finite, got {v}")
    return v


def regression_points(n, slope, intercept, noise, rng: random.Random) -> RegressionData:
    """`n` points with x uniform on [0, 10) and y = intercept + slope*x + noise."""
    n = _count("n", n, 2)
    slope = _finite("slope", slope)
    intercept = _finite("intercept", intercept)
    noise = _finite("noise", noise)
    if noise < 0:
        raise ParameterError(f"noise must not be negative, got {noise}")
    x: List[float] = []
    y: List[float] = []
    for _ in range(n):
        xv = rng.random() * 10
        x.append(xv)
        y.append(intercept + slope * xv + randn(rng) * noise)
    return RegressionData(x, y)


def random_walk(points, rng: random.Random, start: float = 50.0) -> SeriesData:
    """A drifting walk with a slow sine component."""
    points = _count("points", points, 1)
    values: List[float] = []
    val = float(start)
    for i in range(points):
        val += (rng.random() - 0.5) * 5 + math.sin(i / 10) * 3
        values.append(val)
    return SeriesData(values)


def moving_window(window, points) -> int:
    """Validate a moving-average window against the series length."""
    window = _count("window", window, 1)
    points = _count("points", points, 1)
    if window > points:
        raise ParameterError(f"window ({window}) is longer than the series ({points} points)")
    return window
