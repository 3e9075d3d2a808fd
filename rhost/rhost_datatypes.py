"""
Defines the core data types shared by the evaluator bridge and the panels.

Results crossing the evaluator boundary are modelled as a tagged union
(`Success` / `Failure`), and what a panel publishes to its renderer is a
second union (`Succeeded` / `Failed`). Consumers match on the class.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


class ErrorKind:
    NOT_READY = "not-ready"
    EVALUATION = "evaluation"
    CONTRACT_MISMATCH = "contract-mismatch"
    MALFORMED_RESULT = "malformed-result"
    INVALID_PARAMETERS = "invalid-parameters"


class TriggerReason:
    EXPLICIT_RUN = "explicit-run"
    PARAMETER_CHANGE = "parameter-change"
    BOOT = "boot"
    REGENERATE = "regenerate"

    # Reasons that always rebuild the panel's generated data.
    REGENERATING = frozenset({PARAMETER_CHANGE, BOOT, REGENERATE})


# =================================================================
# Errors
# =================================================================

class HostError(Exception):
    """Base class for every error raised by the host side."""
    kind = ErrorKind.EVALUATION


class NotReady(HostError):
    kind = ErrorKind.NOT_READY

    def __init__(self, message: str = "evaluator not loaded yet"):
        super().__init__(message)


class EvaluatorLoadError(HostError):
    kind = ErrorKind.NOT_READY


class EvaluationError(HostError):
    kind = ErrorKind.EVALUATION


class MalformedResult(HostError):
    kind = ErrorKind.MALFORMED_RESULT


class ParameterError(HostError):
    kind = ErrorKind.INVALID_PARAMETERS


class ContractMismatch(HostError):
    kind = ErrorKind.CONTRACT_MISMATCH

    def __init__(self, expected, detail: str = ""):
        self.expected = tuple(expected)
        self.detail = detail
        msg = "expected fields " + ", ".join(self.expected)
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


# =================================================================
# Evaluation results
# =================================================================

@dataclass(frozen=True)
class Success:
    console_text: str = ""
    printed_value: str = ""
    structured_value: Any = None


@dataclass(frozen=True)
class Failure:
    message: str
    console_text: str = ""
    kind: str = ErrorKind.EVALUATION


EvaluationResult = Union[Success, Failure]


# =================================================================
# Run tokens
# =================================================================

@dataclass(frozen=True, order=True)
class RunToken:
    serial: int
    panel_id: str = field(compare=False)

    def __repr__(self):
        return f"RunToken({self.panel_id}#{self.serial})"


class TokenSource:
    """Issues monotonically increasing run tokens."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def mint(self, panel_id: str) -> RunToken:
        return RunToken(next(self._counter), panel_id)


# =================================================================
# Published panel states
# =================================================================

@dataclass(frozen=True)
class Succeeded:
    panel_id: str
    token: Optional[RunToken]
    parsed: Any
    console_text: str = ""
    printed_value: str = ""
    elapsed_ms: float = 0.0
    # host-generated input the run evaluated, for charts that overlay it
    data: Any = None

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": "success", "parsed": self.parsed, "consoleText": self.console_text}


@dataclass(frozen=True)
class Failed:
    panel_id: str
    token: Optional[RunToken]
    message: str
    kind: str = ErrorKind.EVALUATION
    console_text: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": "failure", "message": self.message}


Published = Union[Succeeded, Failed]


@dataclass
class PanelState:
    """Everything one panel knows between runs. Never shared across panels."""
    parameters: Dict[str, float] = field(default_factory=dict)
    generated_data: Any = None
    last_result: Optional[EvaluationResult] = None
    pending_run_token: Optional[RunToken] = None
    published: Optional[Published] = None
