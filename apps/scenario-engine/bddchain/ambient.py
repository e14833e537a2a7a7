"""Flow-local "current scenario" slot used by the implicit API."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Callable, Iterator, Optional

from .context import ScenarioContext
from .errors import AmbientContextMissingError

# asyncio tasks copy the current contextvars context when created, so each
# concurrently running scenario sees only the value set on its own flow.
_current: ContextVar[Optional[ScenarioContext]] = ContextVar("bddchain_current_scenario", default=None)
_current_test: ContextVar[Optional[Callable[..., Any]]] = ContextVar("bddchain_current_test", default=None)


def get_current() -> Optional[ScenarioContext]:
    return _current.get()


def current() -> ScenarioContext:
    context = _current.get()
    if context is None:
        raise AmbientContextMissingError(
            "No ambient ScenarioContext is set on this flow. "
            "Use bddchain.bdd.scenario_scope(ctx) or bddchain.ambient.use(ctx) before calling the implicit API."
        )
    return context


def set_current(context: Optional[ScenarioContext]) -> Token[Optional[ScenarioContext]]:
    return _current.set(context)


def reset(token: Token[Optional[ScenarioContext]]) -> None:
    _current.reset(token)


@contextmanager
def use(context: ScenarioContext) -> Iterator[ScenarioContext]:
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def register_test(test: Optional[Callable[..., Any]]) -> Token[Optional[Callable[..., Any]]]:
    """Record the test callable currently executing; used for naming and diagnostics only."""

    return _current_test.set(test)


def current_test() -> Optional[Callable[..., Any]]:
    return _current_test.get()


@contextmanager
def use_test(test: Callable[..., Any]) -> Iterator[Callable[..., Any]]:
    token = _current_test.set(test)
    try:
        yield test
    finally:
        _current_test.reset(token)
