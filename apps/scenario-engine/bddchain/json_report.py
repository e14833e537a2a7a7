"""JSON report observer: one document with every finished scenario and its steps."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from .context import ScenarioContext
from .models import StepResult, StepStatus

LOGGER = structlog.get_logger("bddchain")


class StepReport(BaseModel):
    """One recorded step."""

    index: int
    kind: str
    title: str
    status: StepStatus
    duration_ms: float
    input: Optional[str] = None
    output: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class ScenarioReport(BaseModel):
    """One finished scenario."""

    feature: str
    feature_description: Optional[str] = None
    scenario: str
    tags: list[str] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime
    duration_ms: float
    passed: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    steps: list[StepReport] = Field(default_factory=list)


class JsonReport(BaseModel):
    """Aggregated report written after every scenario."""

    generated_at: datetime
    total_scenarios: int = 0
    passed_scenarios: int = 0
    failed_scenarios: int = 0
    scenarios: list[ScenarioReport] = Field(default_factory=list)


def _describe(value: object) -> Optional[str]:
    return None if value is None else repr(value)


def _step_report(index: int, step: StepResult, io_input: object, io_output: object) -> StepReport:
    error = step.error
    return StepReport(
        index=index,
        kind=step.kind.value,
        title=step.title,
        status=step.status,
        duration_ms=step.elapsed.total_seconds() * 1000,
        input=_describe(io_input),
        output=_describe(io_output),
        error=str(error) if error is not None else None,
        error_type=type(error).__name__ if error is not None else None,
    )


def build_scenario_report(
    context: ScenarioContext,
    started_at: Optional[datetime] = None,
    finished_at: Optional[datetime] = None,
) -> ScenarioReport:
    finished = finished_at or datetime.now(timezone.utc)
    error = context.scenario_error
    steps = [
        _step_report(index, step, io.input, io.output)
        for index, (step, io) in enumerate(zip(context.steps, context.io), start=1)
    ]
    return ScenarioReport(
        feature=context.feature_name,
        feature_description=context.feature_description,
        scenario=context.scenario_name,
        tags=list(context.tags),
        started_at=started_at or finished,
        finished_at=finished,
        duration_ms=context.total_elapsed().total_seconds() * 1000,
        passed=context.succeeded,
        error=str(error) if error is not None else None,
        error_type=type(error).__name__ if error is not None else None,
        steps=steps,
    )


class JsonReportObserver:
    """Scenario observer that rewrites ``path`` each time a scenario finishes."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._started: dict[int, datetime] = {}
        self.report = JsonReport(generated_at=datetime.now(timezone.utc))

    def on_scenario_starting(self, context: ScenarioContext) -> None:
        self._started[id(context)] = datetime.now(timezone.utc)

    def on_scenario_finished(self, context: ScenarioContext) -> None:
        scenario = build_scenario_report(context, self._started.pop(id(context), None))
        with self._lock:
            self.report.scenarios.append(scenario)
            self.report.total_scenarios += 1
            if scenario.passed:
                self.report.passed_scenarios += 1
            else:
                self.report.failed_scenarios += 1
            self.report.generated_at = scenario.finished_at
            self.write()

    def write(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self.report.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("json_report_write_failed", path=str(self.path), error=str(exc))
