import json
import math
import re

import pytest

from rhost.rhost_evaluator import EvaluatorHandle
from rhost.rhost_serialize import read_literal

_BINDING = re.compile(r"^([A-Za-z.][A-Za-z0-9._]*) <- (.*)$")


def split_program(source: str):
    """Peel leading `name <- literal` lines off a composed program."""
    bindings = {}
    rest = source
    while True:
        line, nl, tail = rest.partition("\n")
        m = _BINDING.match(line)
        if not nl or not m:
            break
        try:
            bindings[m.group(1)] = read_literal(m.group(2))
        except ValueError:
            break
        rest = tail
    return bindings, rest


def ok(value=None, output="", printed=""):
    """A success response in the evaluator's wire shape."""
    resp = {"output": output, "value": printed or repr(value)}
    if value is not None:
        resp["json"] = json.dumps(value)
    return resp


def r_error(message, output=""):
    return {"error": message, "output": output}


class StubEvaluator:
    """Answers composed programs by looking up the user part in a table.

    Each registered program is a Python function of the prelude bindings
    returning a raw evaluator response.
    """

    def __init__(self):
        self.programs = {}
        self.calls = []

    def register(self, code, fn):
        self.programs[code] = fn

    def bindings_of(self, call_index=-1):
        return split_program(self.calls[call_index])[0]

    def __call__(self, source):
        self.calls.append(source)
        bindings, code = split_program(source)
        fn = self.programs.get(code)
        if fn is None:
            return r_error("could not find function \"program\"")
        return fn(bindings)


# --------------------------
# Reference programs
# --------------------------

def least_squares(b):
    x, y = b["x"], b["y"]
    n = len(x)
    mx = sum(x) / n
    my = sum(y) / n
    sxy = sum((xi - mx) * (yi - my) for xi, yi in zip(x, y))
    sxx = sum((xi - mx) ** 2 for xi in x)
    slope = sxy / sxx
    intercept = my - slope * mx
    yhat = [intercept + slope * xi for xi in x]
    ss_tot = sum((yi - my) ** 2 for yi in y)
    ss_res = sum((yi - fi) ** 2 for yi, fi in zip(y, yhat))
    r2 = 1 - ss_res / ss_tot
    return ok({"intercept": intercept, "slope": slope, "r2": r2, "yhat": yhat},
              output=f"slope: {slope}\n")


def _sd(values):
    m = sum(values) / len(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / (len(values) - 1))


def moving_average(b):
    data = b["data"]
    n = int(b["window"])
    ma = [sum(data[i - n + 1:i + 1]) / n for i in range(n - 1, len(data))]
    return ok({
        "original": data,
        "ma": ma,
        "mean": round(sum(data) / len(data), 4),
        "sd": round(_sd(data), 4),
        "min": round(min(data), 4),
        "max": round(max(data), 4),
    }, output=f"Points: {len(data)}\n")


def summary_stats(b):
    values = [23, 45, 12, 67, 34, 89, 56, 78, 42, 31]
    return ok({
        "values": values,
        "sorted": sorted(values),
        "labels": [f"x{i + 1}" for i in range(len(values))],
        "mean": sum(values) / len(values),
        "sd": _sd(values),
    }, output="mean: 47.7\n")


@pytest.fixture
def stub():
    return StubEvaluator()


@pytest.fixture
def handle(stub):
    return EvaluatorHandle.ready(stub, name="stub")
