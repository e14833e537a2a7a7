"""Scenario target loading helpers for the CLI."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from types import ModuleType
from typing import Callable, Optional


class ScenarioTarget:
    """A ``module:function`` reference to a scenario function."""

    def __init__(self, module_name: str, function_name: str) -> None:
        self.module_name = module_name
        self.function_name = function_name

    @classmethod
    def parse(cls, reference: str) -> "ScenarioTarget":
        module_name, sep, function_name = reference.partition(":")
        if not sep or not module_name.strip() or not function_name.strip():
            raise ValueError(f"Scenario target '{reference}' must look like 'module:function'")
        return cls(module_name.strip(), function_name.strip())

    def __str__(self) -> str:
        return f"{self.module_name}:{self.function_name}"


class ScenarioRegistry:
    """Caches scenario modules/functions, importing relative to a search root."""

    def __init__(self, search_root: Optional[Path] = None) -> None:
        self.search_root = search_root
        self._cache: dict[tuple[str, str], Callable] = {}
        self._modules: dict[str, ModuleType] = {}
        self._path_added = False

    def resolve(self, target: ScenarioTarget) -> Callable:
        key = (target.module_name, target.function_name)
        if key in self._cache:
            return self._cache[key]

        self._ensure_path()
        module = self._modules.get(target.module_name)
        if module is None:
            module = importlib.import_module(target.module_name)
            self._modules[target.module_name] = module
        func = getattr(module, target.function_name, None)
        if func is None:
            raise AttributeError(f"Scenario function {target.function_name} not found in {target.module_name}")
        if not callable(func):
            raise TypeError(f"Scenario target {target} is not callable")
        self._cache[key] = func
        return func

    def _ensure_path(self) -> None:
        if self._path_added or self.search_root is None:
            return
        root_str = str(self.search_root)
        if root_str not in sys.path:
            sys.path.insert(0, root_str)
            importlib.invalidate_caches()
        self._path_added = True
