"""
The demo panels.

A `PanelSpec` bundles what makes one panel different from another: its
default program, its parameters, how it generates host-side data, which
bindings it prepends to the user's program, and how it reads the result.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from rhost import rhost_shapes as shapes
from rhost.rhost_datagen import RegressionData, SeriesData, moving_window, random_walk, regression_points
from rhost.rhost_datatypes import Success
from rhost.rhost_serialize import serialize_scalar, serialize_vector

PROGRAMS_DIR = Path(__file__).parent / "programs"

Generator = Callable[[Mapping[str, float], random.Random], Any]
PreludeBuilder = Callable[[Mapping[str, float], Any], List[Tuple[str, str]]]
Parser = Callable[[Success, Mapping[str, float]], Any]


def load_program(name: str) -> str:
    return (PROGRAMS_DIR / f"{name}.R").read_text(encoding="utf-8")


def _no_prelude(parameters, data) -> List[Tuple[str, str]]:
    return []


@dataclass(frozen=True)
class PanelSpec:
    panel_id: str
    title: str
    default_code: str
    parse: Parser
    parameters: Mapping[str, float] = field(default_factory=dict)
    generate: Optional[Generator] = None
    prelude: PreludeBuilder = _no_prelude
    run_on_boot: bool = False

    @property
    def generates_data(self) -> bool:
        return self.generate is not None


# --------------------------
# Regression
# --------------------------

def _regression_generate(p: Mapping[str, float], rng: random.Random) -> RegressionData:
    return regression_points(p["n"], p["slope"], p["intercept"], p["noise"], rng)


def _regression_prelude(p, data: RegressionData):
    return [("x", serialize_vector(data.x)), ("y", serialize_vector(data.y))]


# --------------------------
# Time series
# --------------------------

def _timeseries_generate(p: Mapping[str, float], rng: random.Random) -> SeriesData:
    return random_walk(p["points"], rng)


def _timeseries_prelude(p, data: SeriesData):
    window = moving_window(p["window"], len(data.values))
    return [("data", serialize_vector(data.values)), ("window", serialize_scalar(window))]


def builtin_panels() -> Dict[str, PanelSpec]:
    """The six demo panels, keyed by panel id, in display order."""
    specs = [
        PanelSpec("playground", "Playground", load_program("playground"), shapes.parse_playground),
        PanelSpec(
            "regression", "Linear regression", load_program("regression"), shapes.parse_regression,
            parameters={"n": 60, "slope": 1.5, "intercept": 3.0, "noise": 2.0},
            generate=_regression_generate,
            prelude=_regression_prelude,
            run_on_boot=True,
        ),
        PanelSpec("stats", "Summary statistics", load_program("stats"), shapes.parse_stats),
        PanelSpec("dataframe", "Data frames", load_program("dataframe"), shapes.parse_dataframe),
        PanelSpec("strings", "Strings & functional", load_program("strings"), shapes.parse_console_only),
        PanelSpec(
            "timeseries", "Time series", load_program("timeseries"), shapes.parse_timeseries,
            parameters={"points": 100, "window": 10},
            generate=_timeseries_generate,
            prelude=_timeseries_prelude,
        ),
    ]
    return {s.panel_id: s for s in specs}
