"""Process-wide defaults applied to newly created scenario contexts."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import yaml

from .handlers import HandlerRegistry, StepHandlerFactory
from .models import ScenarioOptions
from .observers import ObserverDispatcher
from .traits import NullTraitBridge, TraitBridge

ENV_CONTINUE_ON_ERROR = "BDDCHAIN_CONTINUE_ON_ERROR"
ENV_MARK_REMAINING_SKIPPED = "BDDCHAIN_MARK_REMAINING_SKIPPED"
ENV_STEP_TIMEOUT = "BDDCHAIN_STEP_TIMEOUT"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_flag(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Environment variable {name} must be a boolean flag, got {raw!r}")


def options_from_env(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect scenario option overrides present in the environment."""

    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    if env.get(ENV_CONTINUE_ON_ERROR):
        values["continue_on_error"] = _parse_flag(ENV_CONTINUE_ON_ERROR, env[ENV_CONTINUE_ON_ERROR])
    if env.get(ENV_MARK_REMAINING_SKIPPED):
        values["mark_remaining_as_skipped_on_failure"] = _parse_flag(
            ENV_MARK_REMAINING_SKIPPED, env[ENV_MARK_REMAINING_SKIPPED]
        )
    if env.get(ENV_STEP_TIMEOUT):
        values["step_timeout"] = float(env[ENV_STEP_TIMEOUT])
    return values


def load_options_file(path: Path) -> dict[str, Any]:
    """Read option values from a YAML file, either top-level or under an ``options`` key."""

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file {path} must contain a mapping")
    section = data.get("options", data)
    if not isinstance(section, dict):
        raise ValueError(f"Options file {path}: 'options' must be a mapping")
    return section


def load_options(path: Path) -> ScenarioOptions:
    return ScenarioOptions.model_validate(load_options_file(path))


def resolve_options(
    overrides: Optional[Mapping[str, Any]] = None,
    options_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ScenarioOptions:
    """
    Build scenario options with priority: explicit overrides > options file >
    environment variables > defaults.
    """

    values = options_from_env(environ)
    if options_file is not None:
        values.update(load_options_file(options_file))
    if overrides:
        values.update({key: value for key, value in overrides.items() if value is not None})
    return ScenarioOptions.model_validate(values)


@dataclass(frozen=True)
class BddConfiguration:
    """Defaults handed to every context the factory creates."""

    options: ScenarioOptions = field(default_factory=ScenarioOptions)
    observers: ObserverDispatcher = field(default_factory=ObserverDispatcher)
    handler_factory: Optional[StepHandlerFactory] = field(default_factory=HandlerRegistry)
    trait_bridge_factory: Callable[[], TraitBridge] = NullTraitBridge


_lock = threading.Lock()
_configuration: Optional[BddConfiguration] = None


def get_configuration() -> BddConfiguration:
    global _configuration
    with _lock:
        if _configuration is None:
            _configuration = BddConfiguration(options=resolve_options())
        return _configuration


def configure(
    *,
    options: Optional[ScenarioOptions] = None,
    observers: Optional[ObserverDispatcher] = None,
    handler_factory: Optional[StepHandlerFactory] = None,
    trait_bridge_factory: Optional[Callable[[], TraitBridge]] = None,
) -> BddConfiguration:
    """Replace selected defaults; contexts created earlier keep what they were given."""

    global _configuration
    current = get_configuration()
    changes: dict[str, Any] = {}
    if options is not None:
        changes["options"] = options
    if observers is not None:
        changes["observers"] = observers
    if handler_factory is not None:
        changes["handler_factory"] = handler_factory
    if trait_bridge_factory is not None:
        changes["trait_bridge_factory"] = trait_bridge_factory
    with _lock:
        _configuration = replace(current, **changes)
        return _configuration


def reset_configuration() -> None:
    global _configuration
    with _lock:
        _configuration = None
