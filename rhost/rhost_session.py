from __future__ import annotations

import random
from typing import Dict, Iterable, Mapping, Optional

from loguru import logger

from rhost.rhost_config import ConfigError, HostConfig
from rhost.rhost_datatypes import EvaluatorLoadError, Published, TriggerReason
from rhost.rhost_evaluator import EvaluatorHandle
from rhost.rhost_panels import PanelSpec, builtin_panels
from rhost.rhost_pipeline import RecomputePipeline, Renderer
from rhost.rhost_scheduler import DebounceScheduler


class DemoSession:
    """All panels of one demo page sharing one evaluator.

    Explicit runs go straight to a panel's pipeline; parameter changes go
    through the debounce scheduler. Each panel draws from its own random
    stream so one panel's regeneration never shifts another's data.
    """

    def __init__(self, config: Optional[HostConfig] = None, handle: Optional[EvaluatorHandle] = None, *,
                 clock=None,
                 renderer: Optional[Renderer] = None,
                 panels: Optional[Mapping[str, PanelSpec]] = None,
                 seed: Optional[int] = None):
        self.config = config or HostConfig()
        self.handle = handle if handle is not None else self.config.evaluator.handle()
        self.scheduler = DebounceScheduler(clock, tokens=None)
        self.renderer = renderer
        if seed is None:
            seed = self.config.seed
        master = random.Random(seed)

        self.pipelines: Dict[str, RecomputePipeline] = {}
        for panel_id, spec in (panels or builtin_panels()).items():
            pc = self.config.panel(panel_id)
            unknown = set(pc.parameters) - set(spec.parameters)
            if unknown:
                raise ConfigError(f"panel {panel_id!r} has no parameters {sorted(unknown)}")
            self.pipelines[panel_id] = RecomputePipeline(
                spec, self.handle,
                renderer=self._render,
                tokens=self.scheduler.tokens,
                rng=random.Random(master.getrandbits(64)),
                parameters=pc.parameters,
                code=pc.read_code(self.config.base_dir),
            )

    def _render(self, published: Published) -> None:
        if self.renderer is not None:
            self.renderer(published)

    @property
    def panel_ids(self):
        return list(self.pipelines)

    def pipeline(self, panel_id: str) -> RecomputePipeline:
        try:
            return self.pipelines[panel_id]
        except KeyError:
            raise KeyError(f"unknown panel {panel_id!r}; expected one of {', '.join(self.pipelines)}") from None

    def boot_panels(self) -> Iterable[str]:
        for panel_id, p in self.pipelines.items():
            flag = self.config.panel(panel_id).run_on_boot
            if flag if flag is not None else p.spec.run_on_boot:
                yield panel_id

    async def boot(self, run_panels: bool = True) -> bool:
        """Load the evaluator once, then run the boot panels."""
        try:
            await self.handle.load()
        except EvaluatorLoadError as e:
            logger.error("evaluator unavailable: {}", e)
            return False
        if not run_panels:
            return True
        for panel_id in self.boot_panels():
            await self.pipelines[panel_id].trigger(TriggerReason.BOOT, self.scheduler.mint(panel_id))
        return True

    # --------------------------
    # User actions
    # --------------------------

    async def run(self, panel_id: str) -> Optional[Published]:
        p = self.pipeline(panel_id)
        return await p.trigger(TriggerReason.EXPLICIT_RUN, self.scheduler.mint(panel_id))

    async def regenerate(self, panel_id: str) -> Optional[Published]:
        p = self.pipeline(panel_id)
        return await p.trigger(TriggerReason.REGENERATE, self.scheduler.mint(panel_id))

    def set_parameter(self, panel_id: str, name: str, value) -> None:
        """Update a parameter now and recompute once the changes settle."""
        p = self.pipeline(panel_id)
        if name not in p.spec.parameters:
            raise KeyError(f"panel {panel_id!r} has no parameter {name!r}")
        p.state.parameters[name] = float(value)

        def _recompute(token):
            return p.trigger(TriggerReason.PARAMETER_CHANGE, token)

        self.scheduler.schedule(panel_id, _recompute, self.config.debounce_ms)

    def set_code(self, panel_id: str, code: str) -> None:
        self.pipeline(panel_id).code = code

    def reset(self, panel_id: str) -> None:
        self.pipeline(panel_id).reset_code()

    async def drain(self) -> None:
        await self.scheduler.drain()

    def close(self) -> None:
        self.scheduler.cancel_all()
