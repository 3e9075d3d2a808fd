"""
Loading the embedded evaluator.

The evaluator is an opaque component with a single entry point: it takes a
program as source text and returns a mapping shaped either like
``{"error": str, "output": str}`` or ``{"output": str, "value": str,
"json": str}``. This module only knows how to obtain such an entry point and
gates access to it behind an `EvaluatorHandle`.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import json
import shutil
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, Union

from loguru import logger

from rhost.rhost_datatypes import EvaluationError, EvaluatorLoadError, MalformedResult, NotReady

EntryPoint = Callable[[str], Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]]
Loader = Callable[[], Awaitable[EntryPoint]]


class EvaluatorHandle:
    """A lifecycle-gated reference to the evaluator.

    The handle starts out `unavailable`. One successful `load` moves it to
    `available`; after that the entry point never changes. A failed load
    leaves it unavailable so a later `load` can try again.
    """

    UNAVAILABLE = "unavailable"
    AVAILABLE = "available"

    def __init__(self, loader: Optional[Loader] = None, *, name: str = "evaluator"):
        self.name = name
        self._loader = loader
        self._entry: Optional[EntryPoint] = None
        self._load_lock: Optional[asyncio.Lock] = None

    @classmethod
    def ready(cls, entry: EntryPoint, *, name: str = "evaluator") -> "EvaluatorHandle":
        """A handle that is already available, for embedding and tests."""
        h = cls(name=name)
        h._entry = entry
        return h

    @property
    def state(self) -> str:
        return self.AVAILABLE if self._entry is not None else self.UNAVAILABLE

    @property
    def is_available(self) -> bool:
        return self._entry is not None

    @property
    def entry_point(self) -> EntryPoint:
        if self._entry is None:
            raise NotReady(f"{self.name} not loaded yet")
        return self._entry

    async def load(self) -> "EvaluatorHandle":
        if self._entry is not None:
            return self
        if self._loader is None:
            raise EvaluatorLoadError(f"{self.name}: no loader configured")
        if self._load_lock is None:
            self._load_lock = asyncio.Lock()
        async with self._load_lock:
            # Another waiter may have finished the load while we queued
            if self._entry is not None:
                return self
            entry = await self._loader()
            if not callable(entry):
                raise EvaluatorLoadError(f"{self.name}: loader returned a non-callable {entry!r}")
            self._entry = entry
        logger.info("{} loaded", self.name)
        return self


# ===================================================================
# Python entry points
# ===================================================================

def resolve_entry_point(ref: str) -> EntryPoint:
    """Import ``package.module:attribute`` and return the callable."""
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise EvaluatorLoadError(f"entry point must look like 'module:function', got {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise EvaluatorLoadError(f"cannot import {module_name!r}: {e}") from e
    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise EvaluatorLoadError(f"{module_name!r} has no attribute {attr!r}") from e
    if not callable(target):
        raise EvaluatorLoadError(f"{ref!r} is not callable")
    return target


def entry_point_loader(ref: str) -> Loader:
    async def _load() -> EntryPoint:
        return resolve_entry_point(ref)
    return _load


# ===================================================================
# External evaluator process
# ===================================================================

class ProcessEvaluator:
    """Runs one evaluator process per call, JSON over stdio.

    The source text is written to the process' stdin; it must print a
    single JSON object in the entry-point shape on stdout.
    """

    def __init__(self, command: Sequence[str], *, timeout: float = 10.0):
        if not command:
            raise EvaluatorLoadError("evaluator command is empty")
        self.command: List[str] = list(command)
        self.timeout = float(timeout)

    def __repr__(self):
        return f"ProcessEvaluator({' '.join(self.command)!r})"

    async def __call__(self, source: str) -> Mapping[str, Any]:
        proc = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(source.encode("utf-8")), self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise EvaluationError(f"evaluation timed out after {self.timeout:g}s")

        text = out.decode("utf-8", errors="replace").strip()
        if not text:
            stderr = err.decode("utf-8", errors="replace").strip()
            return {"error": stderr or f"evaluator exited with status {proc.returncode} and no output"}
        try:
            response = json.loads(text)
        except ValueError as e:
            raise MalformedResult(f"malformed result: evaluator printed non-JSON output ({e})") from e
        if not isinstance(response, dict):
            raise MalformedResult(f"malformed result: expected a JSON object, got {type(response).__name__}")
        return response


def process_loader(command: Sequence[str], *, timeout: float = 10.0) -> Loader:
    async def _load() -> EntryPoint:
        if not command:
            raise EvaluatorLoadError("evaluator command is empty")
        exe = shutil.which(command[0])
        if exe is None:
            raise EvaluatorLoadError(f"evaluator executable not found: {command[0]!r}")
        evaluator = ProcessEvaluator([exe, *command[1:]], timeout=timeout)
        # Probe once so a broken binary surfaces at load time, not on first run
        try:
            probe = await evaluator("1")
        except (OSError, EvaluationError, MalformedResult) as e:
            raise EvaluatorLoadError(f"evaluator probe failed: {e}") from e
        if probe.get("error"):
            raise EvaluatorLoadError(f"evaluator probe failed: {probe['error']}")
        return evaluator
    return _load


async def call_entry_point(entry: EntryPoint, source: str) -> Any:
    """Call a sync or async entry point and return its response."""
    response = entry(source)
    if inspect.isawaitable(response):
        response = await response
    return response


__all__ = [
    "EvaluatorHandle",
    "ProcessEvaluator",
    "resolve_entry_point",
    "entry_point_loader",
    "process_loader",
    "call_entry_point",
]
