from __future__ import annotations

import json
import math
import re
from typing import Any, Iterable, List, Union

from rhost.rhost_datatypes import MalformedResult

NA = "NA"

# --------------------------
# Host -> evaluator literals
# --------------------------

def serialize_scalar(value) -> str:
    """Render one number as a minimal-width fixed-point literal, or NA."""
    if value is None or isinstance(value, bool):
        # bools are ints in Python; the evaluator has its own TRUE/FALSE
        return NA if value is None else ("1" if value else "0")
    v = float(value)
    if not math.isfinite(v):
        return NA
    text = f"{v:.6f}".rstrip("0").rstrip(".")
    if text == "-0":
        return "0"
    return text


def serialize_vector(values: Iterable) -> str:
    """Render a numeric sequence as a `c(...)` call literal."""
    return "c(" + ",".join(serialize_scalar(v) for v in values) + ")"


# --------------------------
# Evaluator literals -> host
# --------------------------

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def _read_number(token: str) -> float:
    token = token.strip()
    if token == NA:
        return math.nan
    if not _NUMBER_RE.match(token):
        raise ValueError(f"not a numeric literal: {token!r}")
    return float(token)


def read_literal(text: str) -> Union[float, List[float]]:
    """
    Inverse of the serializers: `c(1,2.5,NA)` -> [1.0, 2.5, nan],
    `3` -> 3.0. NA reads back as NaN.
    """
    s = text.strip()
    if s.startswith("c(") and s.endswith(")"):
        inner = s[2:-1].strip()
        if not inner:
            return []
        return [_read_number(part) for part in inner.split(",")]
    return _read_number(s)


# --------------------------
# Structured values
# --------------------------

def parse_structured(text: str) -> Any:
    """Decode the evaluator's serialized structured value (JSON)."""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        preview = text if len(text) <= 80 else text[:77] + "..."
        raise MalformedResult(f"malformed result: {e} in {preview!r}") from e


__all__ = [
    "NA",
    "serialize_scalar",
    "serialize_vector",
    "read_literal",
    "parse_structured",
]
