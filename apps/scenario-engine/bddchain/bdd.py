"""Explicit-context entry points."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional

from . import ambient
from .chain import ScenarioChain
from .context import ScenarioContext
from .errors import StepFailedError
from .factory import ScenarioContextFactory
from .pipeline import begin_scenario, end_scenario


def create_context(
    feature_name: str,
    scenario_name: str,
    feature_description: Optional[str] = None,
    *,
    tags: Iterable[str] = (),
) -> ScenarioContext:
    return ScenarioContextFactory().create(feature_name, scenario_name, feature_description, tags=tags)


def create_context_from(source: Any, scenario_name: Optional[str] = None) -> ScenarioContext:
    return ScenarioContextFactory().create_from_source(source, scenario_name)


def given(context: ScenarioContext, title: str, setup: Any) -> ScenarioChain[Any]:
    """Start a chain on ``context``; ``setup`` is a value, ``setup()`` or ``setup(token)``."""

    return ScenarioChain.seed(context, title, setup)


@asynccontextmanager
async def scenario_scope(context: ScenarioContext) -> AsyncIterator[ScenarioContext]:
    """
    Bracket a scenario: fire scenario observers once and expose ``context`` as the
    ambient context of the current flow until the block exits.
    """

    token = ambient.set_current(context)
    started = await begin_scenario(context)
    try:
        yield context
    except BaseException as exc:
        if not isinstance(exc, StepFailedError):
            context.record_scenario_error(exc)
        raise
    finally:
        try:
            if started:
                await end_scenario(context)
        finally:
            ambient.reset(token)
