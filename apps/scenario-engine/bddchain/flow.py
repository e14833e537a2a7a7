"""Implicit entry points resolving the scenario context from the ambient slot."""

from __future__ import annotations

from typing import Any

from . import ambient
from .chain import ScenarioChain
from .context import ScenarioContext


def given(title: str, setup: Any) -> ScenarioChain[Any]:
    return ScenarioChain.seed(ambient.current(), title, setup)


def context() -> ScenarioContext:
    return ambient.current()


def add_tags(*tags: str) -> None:
    ambient.current().add_tags(*tags)
