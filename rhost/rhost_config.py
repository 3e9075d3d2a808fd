from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from loguru import logger

from rhost.rhost_evaluator import EvaluatorHandle, entry_point_loader, process_loader

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


class ConfigError(ValueError):
    pass


@dataclass
class EvaluatorConfig:
    command: Optional[List[str]] = None
    entry_point: Optional[str] = None
    timeout: float = 10.0

    def handle(self) -> EvaluatorHandle:
        """An unloaded handle for whichever evaluator is configured."""
        # An explicit Python entry point wins over the process command
        if self.entry_point:
            return EvaluatorHandle(entry_point_loader(self.entry_point), name=self.entry_point)
        if self.command:
            return EvaluatorHandle(process_loader(self.command, timeout=self.timeout), name=self.command[0])
        raise ConfigError("evaluator: set either 'command' or 'entry_point'")


@dataclass
class PanelConfig:
    parameters: Dict[str, float] = field(default_factory=dict)
    code_file: Optional[str] = None
    run_on_boot: Optional[bool] = None

    def read_code(self, base_dir: Optional[Path] = None) -> Optional[str]:
        if not self.code_file:
            return None
        p = Path(self.code_file).expanduser()
        if not p.is_absolute() and base_dir is not None:
            p = base_dir / p
        return p.read_text(encoding="utf-8")


@dataclass
class HostConfig:
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    debounce_ms: float = 100.0
    seed: Optional[int] = None
    log_level: str = "WARNING"
    panels: Dict[str, PanelConfig] = field(default_factory=dict)
    base_dir: Optional[Path] = None

    def panel(self, panel_id: str) -> PanelConfig:
        return self.panels.get(panel_id) or PanelConfig()


# --------------------------
# Loading
# --------------------------

def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), Mapping):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    ev: Dict[str, Any] = {}
    if env.get("RHOST_EVALUATOR_COMMAND"):
        ev["command"] = shlex.split(env["RHOST_EVALUATOR_COMMAND"])
    if env.get("RHOST_EVALUATOR_ENTRY_POINT"):
        ev["entry_point"] = env["RHOST_EVALUATOR_ENTRY_POINT"]
    if ev:
        out["evaluator"] = ev
    if env.get("RHOST_LOG_LEVEL"):
        out["log_level"] = env["RHOST_LOG_LEVEL"]
    if env.get("RHOST_DEBOUNCE_MS"):
        out["debounce_ms"] = env["RHOST_DEBOUNCE_MS"]
    return out


def _build(raw: Mapping[str, Any], base_dir: Optional[Path]) -> HostConfig:
    ev = raw.get("evaluator") or {}
    command = ev.get("command")
    if isinstance(command, str):
        command = shlex.split(command)
    try:
        evaluator = EvaluatorConfig(
            command=list(command) if command else None,
            entry_point=ev.get("entry_point") or None,
            timeout=float(ev.get("timeout", 10.0)),
        )
        debounce_ms = float(raw.get("debounce_ms", 100.0))
        seed = raw.get("seed")
        seed = int(seed) if seed is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid configuration value: {e}") from e
    if debounce_ms < 0:
        raise ConfigError("debounce_ms must not be negative")

    panels: Dict[str, PanelConfig] = {}
    for panel_id, p in (raw.get("panels") or {}).items():
        p = p or {}
        params = p.get("parameters") or {}
        try:
            params = {str(k): float(v) for k, v in params.items()}
        except (TypeError, ValueError) as e:
            raise ConfigError(f"panels.{panel_id}.parameters: {e}") from e
        panels[str(panel_id)] = PanelConfig(
            parameters=params,
            code_file=p.get("code_file"),
            run_on_boot=p.get("run_on_boot"),
        )

    return HostConfig(
        evaluator=evaluator,
        debounce_ms=debounce_ms,
        seed=seed,
        log_level=str(raw.get("log_level", "WARNING")).upper(),
        panels=panels,
        base_dir=base_dir,
    )


def load_config(path: Optional[str] = None, *, env: Optional[Mapping[str, str]] = None) -> HostConfig:
    """Built-in defaults, then the user's YAML file, then environment variables."""
    raw = _read_yaml(DEFAULTS_PATH)
    base_dir = None
    if path is not None:
        p = Path(path)
        if not p.is_file():
            raise ConfigError(f"config file not found: {path}")
        raw = _merge(raw, _read_yaml(p))
        base_dir = p.parent.resolve()
    raw = _merge(raw, _env_overrides(os.environ if env is None else env))
    return _build(raw, base_dir)


def configure_logging(level: str = "WARNING") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(),
               format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <7}</level> | {name}: {message}")
