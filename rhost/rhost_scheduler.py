"""
Debounced triggering of panel recomputes.

Each panel has at most one pending trigger. Scheduling again before it
fires cancels it and restarts the quiet period, so a burst of parameter
changes ends in exactly one recompute. The clock is injected: production
code uses the running event loop, tests drive a `VirtualClock` by hand.
"""

from __future__ import annotations

import asyncio
import heapq
import inspect
import itertools
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from rhost.rhost_datatypes import RunToken, TokenSource


class AsyncioClock:
    """Timers on the running asyncio event loop."""

    def call_later(self, delay_ms: float, fn: Callable[[], Any]):
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay_ms, 0) / 1000.0, fn)

    def now_ms(self) -> float:
        return asyncio.get_running_loop().time() * 1000.0


class _VirtualTimer:
    __slots__ = ("due", "fn", "cancelled")

    def __init__(self, due: float, fn):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class VirtualClock:
    """A clock that only moves when `advance` is called."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._seq = itertools.count()
        self._timers: List[Tuple[float, int, _VirtualTimer]] = []

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, fn: Callable[[], Any]) -> _VirtualTimer:
        timer = _VirtualTimer(self._now + max(delay_ms, 0), fn)
        heapq.heappush(self._timers, (timer.due, next(self._seq), timer))
        return timer

    def advance(self, ms: float) -> int:
        """Move time forward, firing due timers in order. Returns how many fired."""
        target = self._now + ms
        fired = 0
        while self._timers and self._timers[0][0] <= target:
            due, _, timer = heapq.heappop(self._timers)
            self._now = due
            if timer.cancelled:
                continue
            timer.fn()
            fired += 1
        self._now = target
        return fired

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, t in self._timers if not t.cancelled)


class DebounceScheduler:
    def __init__(self, clock=None, tokens: Optional[TokenSource] = None):
        self.clock = clock or AsyncioClock()
        self.tokens = tokens or TokenSource()
        # panel id -> (token, timer handle); the only record of what is pending
        self._pending: Dict[str, Tuple[RunToken, Any]] = {}
        self._tasks: set = set()

    def mint(self, panel_id: str) -> RunToken:
        """A token for a trigger that bypasses the quiet period."""
        return self.tokens.mint(panel_id)

    def pending(self, panel_id: str) -> Optional[RunToken]:
        entry = self._pending.get(panel_id)
        return entry[0] if entry else None

    def cancel(self, panel_id: str) -> bool:
        entry = self._pending.pop(panel_id, None)
        if entry is None:
            return False
        token, handle = entry
        handle.cancel()
        logger.debug("debounce: cancelled {}", token)
        return True

    def schedule(self, panel_id: str, trigger_fn: Callable[[RunToken], Any], quiet_period_ms: float) -> RunToken:
        """Arm a trigger for `panel_id`, replacing any pending one.

        The returned token identifies the pending trigger. The run itself gets
        a fresh token when the quiet period ends, so it orders after any
        explicit run issued in the meantime.
        """
        self.cancel(panel_id)
        ticket = self.tokens.mint(panel_id)

        def _fire():
            entry = self._pending.get(panel_id)
            if entry is None or entry[0] != ticket:
                return
            del self._pending[panel_id]
            token = self.tokens.mint(panel_id)
            logger.debug("debounce: firing {} as {}", ticket, token)
            result = trigger_fn(token)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

        handle = self.clock.call_later(quiet_period_ms, _fire)
        self._pending[panel_id] = (ticket, handle)
        return ticket

    def cancel_all(self) -> int:
        count = 0
        for panel_id in list(self._pending):
            count += self.cancel(panel_id)
        return count

    async def drain(self) -> None:
        """Wait for every trigger that has already fired to finish."""
        errors = []
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            errors.extend(r for r in results if isinstance(r, Exception))
        if errors:
            raise errors[0]
