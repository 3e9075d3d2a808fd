from rhost.rhost_datatypes import (
    ContractMismatch, ErrorKind, EvaluationError, EvaluatorLoadError, Failed, Failure,
    HostError, MalformedResult, NotReady, PanelState, ParameterError, RunToken,
    Succeeded, Success, TriggerReason,
)
from rhost.rhost_serialize import serialize_vector, serialize_scalar, read_literal
from rhost.rhost_compose import compose
from rhost.rhost_evaluator import EvaluatorHandle, ProcessEvaluator
from rhost.rhost_bridge import invoke
from rhost.rhost_pipeline import RecomputePipeline
from rhost.rhost_scheduler import DebounceScheduler, VirtualClock
from rhost.rhost_session import DemoSession

__all__ = [
    "ContractMismatch", "ErrorKind", "EvaluationError", "EvaluatorLoadError", "Failed",
    "Failure", "HostError", "MalformedResult", "NotReady", "PanelState", "ParameterError",
    "RunToken", "Succeeded", "Success", "TriggerReason",
    "serialize_vector", "serialize_scalar", "read_literal", "compose",
    "EvaluatorHandle", "ProcessEvaluator", "invoke",
    "RecomputePipeline", "DebounceScheduler", "VirtualClock", "DemoSession",
]
