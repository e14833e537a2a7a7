"""Scenario context: the aggregate that records executed steps."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Optional

import structlog

from .errors import ScenarioAssertionError
from .models import ScenarioOptions, StepIO, StepResult
from .observers import ObserverDispatcher
from .traits import NullTraitBridge, TraitBridge

if TYPE_CHECKING:
    from .handlers import StepHandlerFactory

LOGGER = structlog.get_logger("bddchain")


class ScenarioContext:
    """
    Owns the ordered step results, the IO trail and the tags of one scenario.

    ``steps`` and ``io`` are append-only and always have the same length; entry ``i``
    of each describes the same executed step.
    """

    def __init__(
        self,
        feature_name: str,
        scenario_name: str,
        *,
        feature_description: Optional[str] = None,
        options: Optional[ScenarioOptions] = None,
        trait_bridge: Optional[TraitBridge] = None,
        observers: Optional[ObserverDispatcher] = None,
        handler_factory: Optional["StepHandlerFactory"] = None,
    ) -> None:
        if not feature_name or not feature_name.strip():
            raise ValueError("Feature name must be specified")
        if not scenario_name or not scenario_name.strip():
            raise ValueError("Scenario name must be specified")
        self.feature_name = feature_name
        self.feature_description = feature_description
        self.scenario_name = scenario_name
        self.options = (options or ScenarioOptions()).model_copy()
        self.trait_bridge: TraitBridge = trait_bridge or NullTraitBridge()
        self.observers = observers or ObserverDispatcher()
        self.handler_factory = handler_factory
        self.current_value: Any = None
        self.scenario_started = False
        self.scenario_finished = False
        self.scenario_error: Optional[BaseException] = None
        self._steps: list[StepResult] = []
        self._io: list[StepIO] = []
        self._tags: dict[str, None] = {}

    def __repr__(self) -> str:
        return (
            f"ScenarioContext(feature={self.feature_name!r}, scenario={self.scenario_name!r}, "
            f"steps={len(self._steps)}, all_passed={self.all_passed})"
        )

    @property
    def steps(self) -> tuple[StepResult, ...]:
        return tuple(self._steps)

    @property
    def io(self) -> tuple[StepIO, ...]:
        return tuple(self._io)

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self._tags)

    def add_step(self, result: StepResult) -> None:
        self._steps.append(result)

    def add_io(self, io: StepIO) -> None:
        self._io.append(io)

    def add_tag(self, tag: str) -> None:
        if not isinstance(tag, str) or not tag.strip():
            raise ValueError("Tags must be non-empty strings")
        if tag in self._tags:
            return
        self._tags[tag] = None
        try:
            self.trait_bridge.add_tag(tag)
        except Exception as exc:
            LOGGER.warning(
                "trait_bridge_failed",
                tag=tag,
                bridge=type(self.trait_bridge).__name__,
                error=f"{type(exc).__name__}: {exc}",
            )

    def add_tags(self, *tags: str) -> None:
        for tag in tags:
            self.add_tag(tag)

    @property
    def all_passed(self) -> bool:
        return all(step.passed for step in self._steps)

    @property
    def succeeded(self) -> bool:
        """All steps passed and the scenario did not end with an unrecorded error."""

        return self.scenario_error is None and self.all_passed

    def record_scenario_error(self, error: BaseException) -> None:
        """Keep the first error that ended the scenario outside any recorded step."""

        if self.scenario_error is None:
            self.scenario_error = error

    @property
    def first_failure(self) -> Optional[StepResult]:
        return next((step for step in self._steps if not step.passed), None)

    def total_elapsed(self) -> timedelta:
        return sum((step.elapsed for step in self._steps), timedelta(0))

    def merge_steps(self, other: "ScenarioContext") -> None:
        """Append another context's steps and IO, e.g. a composed sub-scenario."""

        steps, io = other.steps, other.io
        self._steps.extend(steps)
        self._io.extend(io)

    def record(self, result: StepResult, io: StepIO) -> None:
        self.add_step(result)
        self.add_io(io)

    def assert_passed(self) -> None:
        failure = self.first_failure
        if failure is None:
            return
        detail = f": {type(failure.error).__name__}: {failure.error}" if failure.error is not None else ""
        raise ScenarioAssertionError(
            f"Step failed: {failure.kind.value} {failure.title}{detail}",
            kind=failure.kind.value,
            title=failure.title,
        ) from failure.error

    def assert_failed(self) -> None:
        if self.first_failure is None:
            raise ScenarioAssertionError("Scenario had no failed steps.")
