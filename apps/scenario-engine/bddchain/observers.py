"""Scenario and step observers and the dispatcher that isolates their failures."""

from __future__ import annotations

import inspect
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

import structlog

from .models import StepInfo, StepIO, StepResult

if TYPE_CHECKING:
    from .context import ScenarioContext

LOGGER = structlog.get_logger("bddchain")

ObserverErrorSink = Callable[[str, Any, Exception], None]


@runtime_checkable
class ScenarioObserver(Protocol):
    """Notified when a scenario starts and finishes. Methods may be sync or async."""

    def on_scenario_starting(self, context: "ScenarioContext") -> Any:
        ...

    def on_scenario_finished(self, context: "ScenarioContext") -> Any:
        ...


@runtime_checkable
class StepObserver(Protocol):
    """Notified around every executed step. Methods may be sync or async."""

    def on_step_starting(self, context: "ScenarioContext", step: StepInfo) -> Any:
        ...

    def on_step_finished(
        self,
        context: "ScenarioContext",
        step: StepInfo,
        result: StepResult,
        io: StepIO,
    ) -> Any:
        ...


class ObserverDispatcher:
    """
    Calls registered observers in registration order.

    Every observer is awaited before the next one runs. An observer that raises is
    logged and reported to ``on_error`` but never interrupts the dispatch or the
    scenario being observed.
    """

    def __init__(self, on_error: Optional[ObserverErrorSink] = None) -> None:
        self._lock = threading.Lock()
        self._scenario_observers: tuple[ScenarioObserver, ...] = ()
        self._step_observers: tuple[StepObserver, ...] = ()
        self.on_error = on_error

    @property
    def scenario_observers(self) -> tuple[ScenarioObserver, ...]:
        return self._scenario_observers

    @property
    def step_observers(self) -> tuple[StepObserver, ...]:
        return self._step_observers

    def add(self, observer: Any) -> "ObserverDispatcher":
        """Register an observer under every role it implements."""

        matched = False
        if isinstance(observer, ScenarioObserver):
            self.add_scenario_observer(observer)
            matched = True
        if isinstance(observer, StepObserver):
            self.add_step_observer(observer)
            matched = True
        if not matched:
            raise TypeError(f"{type(observer).__name__} implements neither scenario nor step observer methods")
        return self

    def add_scenario_observer(self, observer: ScenarioObserver) -> "ObserverDispatcher":
        with self._lock:
            self._scenario_observers = (*self._scenario_observers, observer)
        return self

    def add_step_observer(self, observer: StepObserver) -> "ObserverDispatcher":
        with self._lock:
            self._step_observers = (*self._step_observers, observer)
        return self

    async def scenario_starting(self, context: "ScenarioContext") -> None:
        for observer in self._scenario_observers:
            await self._invoke("on_scenario_starting", observer, context)

    async def scenario_finished(self, context: "ScenarioContext") -> None:
        for observer in self._scenario_observers:
            await self._invoke("on_scenario_finished", observer, context)

    async def step_starting(self, context: "ScenarioContext", step: StepInfo) -> None:
        for observer in self._step_observers:
            await self._invoke("on_step_starting", observer, context, step)

    async def step_finished(
        self,
        context: "ScenarioContext",
        step: StepInfo,
        result: StepResult,
        io: StepIO,
    ) -> None:
        for observer in self._step_observers:
            await self._invoke("on_step_finished", observer, context, step, result, io)

    async def _invoke(self, event: str, observer: Any, *args: Any) -> None:
        try:
            outcome = getattr(observer, event)(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            LOGGER.warning(
                "observer_failed",
                observer_event=event,
                observer=type(observer).__name__,
                error=f"{type(exc).__name__}: {exc}",
            )
            if self.on_error is not None:
                try:
                    self.on_error(event, observer, exc)
                except Exception:  # pragma: no cover - diagnostics only
                    LOGGER.debug("observer_error_sink_failed", observer_event=event)
