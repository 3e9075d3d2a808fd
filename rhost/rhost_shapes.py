"""
Panel-specific views of the evaluator's structured value.

The evaluator encodes a named list as a JSON object and collapses
length-one vectors to scalars, with NA as null. The parsers here accept
exactly that encoding and raise `ContractMismatch` for anything a panel
cannot draw.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from rhost.rhost_datatypes import ContractMismatch, Success


# --------------------------
# Field coercion
# --------------------------

def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _require_object(value, expected: Sequence[str]) -> Mapping:
    if value is None:
        raise ContractMismatch(expected, "no structured value was returned (return a named list)")
    if not isinstance(value, Mapping):
        raise ContractMismatch(expected, f"got {type(value).__name__} instead of a named list")
    missing = [k for k in expected if k not in value]
    if missing:
        raise ContractMismatch(expected, "missing " + ", ".join(missing))
    return value


def number(obj: Mapping, key: str, expected: Sequence[str]) -> float:
    v = obj[key]
    match v:
        case None:
            return math.nan
        case bool():
            raise ContractMismatch(expected, f"{key} is logical, not numeric")
        case int() | float():
            return float(v)
        case [single] if _is_number(single) or single is None:
            return math.nan if single is None else float(single)
        case _:
            raise ContractMismatch(expected, f"{key} is not a number: {v!r}")


def numbers(obj: Mapping, key: str, expected: Sequence[str]) -> List[float]:
    v = obj[key]
    items = v if isinstance(v, list) else [v]
    out: List[float] = []
    for item in items:
        if item is None:
            out.append(math.nan)
        elif _is_number(item):
            out.append(float(item))
        else:
            raise ContractMismatch(expected, f"{key} must be a numeric vector, found {item!r}")
    return out


def strings(obj: Mapping, key: str, expected: Sequence[str]) -> List[str]:
    v = obj[key]
    items = v if isinstance(v, list) else [v]
    if not all(isinstance(s, str) for s in items):
        raise ContractMismatch(expected, f"{key} must be a character vector")
    return list(items)


def logicals(obj: Mapping, key: str, expected: Sequence[str]) -> List[Optional[bool]]:
    v = obj[key]
    items = v if isinstance(v, list) else [v]
    if not all(b is None or isinstance(b, bool) for b in items):
        raise ContractMismatch(expected, f"{key} must be a logical vector")
    return list(items)


# --------------------------
# Shapes
# --------------------------

@dataclass(frozen=True)
class PlaygroundOutput:
    value: Any
    printed: str

    def summary(self):
        return [("value", self.printed)] if self.printed else []


@dataclass(frozen=True)
class ConsoleOnly:
    def summary(self):
        return []


@dataclass(frozen=True)
class RegressionFit:
    intercept: float
    slope: float
    r2: float
    yhat: List[float]

    FIELDS = ("intercept", "slope", "r2", "yhat")

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x

    def summary(self):
        return [("intercept", self.intercept), ("slope", self.slope), ("r2", self.r2)]


@dataclass(frozen=True)
class SummaryStats:
    values: List[float]
    labels: List[str]
    mean: float
    sd: float
    sorted: Optional[List[float]] = None

    FIELDS = ("values", "mean", "sd")

    def summary(self):
        return [("n", len(self.values)), ("mean", self.mean), ("sd", self.sd)]


@dataclass(frozen=True)
class DataTable:
    name: List[str]
    age: List[float]
    score: List[float]
    passed: List[Optional[bool]]
    mean_score: float
    mean_age: float

    FIELDS = ("name", "age", "score", "pass", "mean_score", "mean_age")

    @property
    def rows(self):
        return list(zip(self.name, self.age, self.score, self.passed))

    def summary(self):
        return [("rows", len(self.name)), ("mean score", self.mean_score), ("mean age", self.mean_age)]


@dataclass(frozen=True)
class MovingAverage:
    original: List[float]
    ma: List[float]
    mean: float
    sd: float
    min: float
    max: float

    FIELDS = ("original", "ma", "mean", "sd", "min", "max")

    def summary(self):
        return [("points", len(self.original)), ("mean", self.mean), ("sd", self.sd),
                ("min", self.min), ("max", self.max)]


# --------------------------
# Parsers
# --------------------------

def parse_playground(result: Success, parameters=None) -> PlaygroundOutput:
    return PlaygroundOutput(result.structured_value, result.printed_value)


def parse_console_only(result: Success, parameters=None) -> ConsoleOnly:
    return ConsoleOnly()


def parse_regression(result: Success, parameters=None) -> RegressionFit:
    f = RegressionFit.FIELDS
    obj = _require_object(result.structured_value, f)
    return RegressionFit(
        intercept=number(obj, "intercept", f),
        slope=number(obj, "slope", f),
        r2=number(obj, "r2", f),
        yhat=numbers(obj, "yhat", f),
    )


def parse_stats(result: Success, parameters=None) -> SummaryStats:
    f = SummaryStats.FIELDS
    obj = _require_object(result.structured_value, f)
    values = numbers(obj, "values", f)
    if "labels" in obj and obj["labels"] is not None:
        labels = strings(obj, "labels", f)
        if len(labels) != len(values):
            raise ContractMismatch(f, f"labels has {len(labels)} entries for {len(values)} values")
    else:
        labels = [f"x{i + 1}" for i in range(len(values))]
    return SummaryStats(
        values=values,
        labels=labels,
        mean=number(obj, "mean", f),
        sd=number(obj, "sd", f),
        sorted=numbers(obj, "sorted", f) if "sorted" in obj else None,
    )


def parse_dataframe(result: Success, parameters=None) -> DataTable:
    f = DataTable.FIELDS
    obj = _require_object(result.structured_value, f)
    table = DataTable(
        name=strings(obj, "name", f),
        age=numbers(obj, "age", f),
        score=numbers(obj, "score", f),
        passed=logicals(obj, "pass", f),
        mean_score=number(obj, "mean_score", f),
        mean_age=number(obj, "mean_age", f),
    )
    n = len(table.name)
    for key, col in (("age", table.age), ("score", table.score), ("pass", table.passed)):
        if len(col) != n:
            raise ContractMismatch(f, f"column {key} has {len(col)} rows, name has {n}")
    return table


def parse_timeseries(result: Success, parameters=None) -> MovingAverage:
    f = MovingAverage.FIELDS
    obj = _require_object(result.structured_value, f)
    return MovingAverage(
        original=numbers(obj, "original", f),
        ma=numbers(obj, "ma", f),
        mean=number(obj, "mean", f),
        sd=number(obj, "sd", f),
        min=number(obj, "min", f),
        max=number(obj, "max", f),
    )
