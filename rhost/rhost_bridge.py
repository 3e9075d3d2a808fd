from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger

from rhost.rhost_datatypes import (
    ErrorKind, EvaluationResult, Failure, HostError, MalformedResult, NotReady, Success,
)
from rhost.rhost_evaluator import EvaluatorHandle, call_entry_point
from rhost.rhost_serialize import parse_structured


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def format_evaluation_error(error: str, output: str) -> str:
    """Join the evaluator's error and any partial console output."""
    if output:
        return f"{error}\n\nOutput:\n{output}"
    return error


def normalize_response(response: Any) -> EvaluationResult:
    """Turn a raw entry-point response into a `Success` or `Failure`."""
    if not isinstance(response, Mapping):
        return Failure(
            message=f"malformed result: expected a mapping, got {type(response).__name__}",
            kind=ErrorKind.MALFORMED_RESULT,
        )

    output = _text(response.get("output"))
    error = response.get("error")
    if error:
        return Failure(
            message=format_evaluation_error(_text(error), output),
            console_text=output,
            kind=ErrorKind.EVALUATION,
        )

    raw = response.get("json")
    structured = None
    if isinstance(raw, str):
        if raw:
            try:
                structured = parse_structured(raw)
            except MalformedResult as e:
                return Failure(message=str(e), console_text=output, kind=ErrorKind.MALFORMED_RESULT)
    elif raw is not None:
        # In-process entry points may hand back the decoded value directly
        structured = raw

    return Success(
        console_text=output,
        printed_value=_text(response.get("value")),
        structured_value=structured,
    )


async def invoke(handle: EvaluatorHandle, source_text: str) -> EvaluationResult:
    """Evaluate one complete program. Never raises for evaluator-side problems."""
    try:
        entry = handle.entry_point
    except NotReady as e:
        return Failure(message=str(e), kind=ErrorKind.NOT_READY)

    try:
        response = await call_entry_point(entry, source_text)
    except HostError as e:
        return Failure(message=str(e), kind=e.kind)
    except Exception as e:
        logger.warning("{} raised {}: {}", handle.name, type(e).__name__, e)
        return Failure(message=f"{type(e).__name__}: {e}", kind=ErrorKind.EVALUATION)

    result = normalize_response(response)
    if isinstance(result, Failure):
        logger.debug("{} failed ({}): {}", handle.name, result.kind, result.message.splitlines()[0] if result.message else "")
    return result


__all__ = ["invoke", "normalize_response", "format_evaluation_error"]
