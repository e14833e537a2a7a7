"""Line reporters and the Gherkin-style scenario formatter."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from .context import ScenarioContext
from .models import StepResult, StepStatus

_STATUS_LABELS = {
    StepStatus.PASSED: "OK",
    StepStatus.FAILED: "FAIL",
    StepStatus.SKIPPED: "SKIP",
    StepStatus.CANCELLED: "CANCEL",
}


@runtime_checkable
class Reporter(Protocol):
    def write_line(self, message: str) -> None:
        ...


class StringReporter:
    """Collects lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write_line(self, message: str) -> None:
        self.lines.append(message)

    def __str__(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


class LoggingReporter:
    """Emits every line as a structured log event."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger("bddchain")

    def write_line(self, message: str) -> None:
        self._logger.info("gherkin", line=message)


def format_step(step: StepResult) -> list[str]:
    elapsed_ms = round(step.elapsed.total_seconds() * 1000)
    lines = [f"  {step.kind.value} {step.title} [{_STATUS_LABELS[step.status]}] {elapsed_ms} ms"]
    if step.error is not None and step.status is not StepStatus.SKIPPED:
        lines.append(f"    Error: {type(step.error).__name__}: {step.error}")
    return lines


def format_gherkin(context: ScenarioContext) -> list[str]:
    lines = [f"Feature: {context.feature_name}"]
    if context.feature_description and context.feature_description.strip():
        lines.append(f"  {context.feature_description}")
    if context.tags:
        lines.append("  " + " ".join(f"@{tag}" for tag in context.tags))
    lines.append(f"Scenario: {context.scenario_name}")
    for step in context.steps:
        lines.extend(format_step(step))
    return lines


def write_gherkin(context: ScenarioContext, reporter: Reporter) -> None:
    for line in format_gherkin(context):
        reporter.write_line(line)
