from __future__ import annotations

import random
import time
from typing import Any, Callable, Optional

from loguru import logger

from rhost.rhost_bridge import invoke
from rhost.rhost_compose import compose
from rhost.rhost_datatypes import (
    ErrorKind, Failed, Failure, HostError, PanelState, Published, RunToken,
    Succeeded, Success, TokenSource, TriggerReason,
)
from rhost.rhost_evaluator import EvaluatorHandle
from rhost.rhost_panels import PanelSpec

Renderer = Callable[[Published], Any]


class RecomputePipeline:
    """Keeps one panel's data, program, result and renderer consistent.

    A run goes idle -> running -> succeeded/failed -> idle. Several runs may
    be in flight at once (the evaluator cannot be interrupted); only the most
    recently issued one is allowed to publish.
    """

    IDLE = "idle"
    RUNNING = "running"

    def __init__(self, spec: PanelSpec, handle: EvaluatorHandle, *,
                 renderer: Optional[Renderer] = None,
                 tokens: Optional[TokenSource] = None,
                 rng: Optional[random.Random] = None,
                 parameters=None,
                 code: Optional[str] = None):
        self.spec = spec
        self.handle = handle
        self.renderer = renderer
        self.tokens = tokens or TokenSource()
        self.rng = rng or random.Random()
        self.state = PanelState(parameters=dict(spec.parameters))
        if parameters:
            self.state.parameters.update(parameters)
        self.code = spec.default_code if code is None else code
        self._in_flight = 0

    @property
    def panel_id(self) -> str:
        return self.spec.panel_id

    @property
    def status(self) -> str:
        return self.RUNNING if self._in_flight else self.IDLE

    def reset_code(self) -> None:
        self.code = self.spec.default_code

    def needs_data(self, reason: str) -> bool:
        if not self.spec.generates_data:
            return False
        return reason in TriggerReason.REGENERATING or self.state.generated_data is None

    def program(self) -> str:
        """The complete program the next run would submit."""
        if self.spec.generates_data and self.state.generated_data is None:
            self.state.generated_data = self.spec.generate(self.state.parameters, self.rng)
        prelude = self.spec.prelude(self.state.parameters, self.state.generated_data)
        return compose(prelude, self.code)

    async def trigger(self, reason: str = TriggerReason.EXPLICIT_RUN,
                      token: Optional[RunToken] = None) -> Optional[Published]:
        """Run the panel once. Returns what was published, or None if superseded."""
        token = token or self.tokens.mint(self.panel_id)
        self.state.pending_run_token = token
        logger.debug("{}: {} accepted ({})", self.panel_id, token, reason)

        self._in_flight += 1
        try:
            outcome = await self._run(reason, token)
        finally:
            self._in_flight -= 1

        if outcome is None or self.state.pending_run_token != token:
            logger.debug("{}: discarding stale result of {}", self.panel_id, token)
            return None
        return self._publish(outcome)

    async def _run(self, reason: str, token: RunToken) -> Optional[Published]:
        # Data and prelude are built before the first suspension point, so a
        # run always evaluates the data that was current when it was issued.
        try:
            if self.needs_data(reason):
                self.state.generated_data = self.spec.generate(self.state.parameters, self.rng)
            source = self.program()
            data = self.state.generated_data
        except HostError as e:
            return Failed(self.panel_id, token, str(e), e.kind)
        except Exception as e:
            logger.warning("{}: data generation raised {}: {}", self.panel_id, type(e).__name__, e)
            return Failed(self.panel_id, token, f"{type(e).__name__}: {e}", ErrorKind.INVALID_PARAMETERS)

        t0 = time.perf_counter()
        result = await invoke(self.handle, source)
        elapsed_ms = (time.perf_counter() - t0) * 1000.0

        if self.state.pending_run_token != token:
            return None
        self.state.last_result = result

        match result:
            case Failure(message=message, console_text=console, kind=kind):
                logger.warning("{}: {} failed: {}", self.panel_id, token, message.splitlines()[0] if message else kind)
                return Failed(self.panel_id, token, message or kind, kind, console)
            case Success():
                try:
                    parsed = self.spec.parse(result, self.state.parameters)
                except HostError as e:
                    logger.warning("{}: {}", self.panel_id, e)
                    return Failed(self.panel_id, token, str(e), e.kind, result.console_text)
                return Succeeded(self.panel_id, token, parsed, result.console_text,
                                 result.printed_value, elapsed_ms, data)

    def _publish(self, published: Published) -> Published:
        self.state.published = published
        self.state.pending_run_token = None
        if self.renderer is not None:
            self.renderer(published)
        return published
