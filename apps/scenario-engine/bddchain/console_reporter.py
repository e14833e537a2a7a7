"""Console reporter observer with environment detection for scenario output."""

from __future__ import annotations

import os
import sys
from datetime import timedelta
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .context import ScenarioContext
from .models import StepInfo, StepIO, StepResult, StepStatus
from .output_config import OutputFormat

_STATUS_STYLES = {
    StepStatus.PASSED: ("✓ PASS", "green"),
    StepStatus.FAILED: ("✗ FAIL", "red"),
    StepStatus.SKIPPED: ("- SKIP", "yellow"),
    StepStatus.CANCELLED: ("! CANCEL", "magenta"),
}

_CI_VARIABLES = ("CI", "JENKINS_HOME", "GITLAB_CI", "TRAVIS", "GITHUB_ACTIONS")


def _milliseconds(elapsed: timedelta) -> float:
    return elapsed.total_seconds() * 1000


class ConsoleReporter:
    """
    Scenario and step observer that prints results as they happen.

    Automatically detects:
    - Interactive terminals (rich tables and a summary panel)
    - CI/CD environments (plain text)
    - Pipe/redirect scenarios (plain text)
    """

    def __init__(self, output_format: OutputFormat = OutputFormat.AUTO, console: Optional[Console] = None):
        self.output_format = output_format
        self.use_rich = self._detect_rich(output_format) if console is None else True
        self.console = console or (Console() if self.use_rich else None)
        self.total = 0
        self.passed = 0
        self.failed = 0
        self.elapsed = timedelta(0)
        self._tables: dict[int, Table] = {}

    @staticmethod
    def _detect_rich(output_format: OutputFormat) -> bool:
        if output_format is OutputFormat.RICH:
            return True
        if output_format in (OutputFormat.PLAIN, OutputFormat.JSON):
            return False
        is_terminal = sys.stdout.isatty()
        is_ci = any(name in os.environ for name in _CI_VARIABLES)
        return is_terminal and not is_ci

    def on_scenario_starting(self, context: ScenarioContext) -> None:
        if self.use_rich:
            table = Table(show_header=True, header_style="bold cyan", title_justify="left")
            table.title = f"{context.feature_name} / {context.scenario_name}"
            table.add_column("Step", style="dim", width=8)
            table.add_column("Title", width=48)
            table.add_column("Status", width=10)
            table.add_column("Duration", justify="right", width=10)
            self._tables[id(context)] = table
        else:
            print(f"Feature: {context.feature_name}")
            print(f"Scenario: {context.scenario_name}")
            print("-" * 80)

    def on_step_starting(self, context: ScenarioContext, step: StepInfo) -> None:
        if not self.use_rich:
            print(f"  {step.kind.value} {step.title} ... ", end="", flush=True)

    def on_step_finished(
        self,
        context: ScenarioContext,
        step: StepInfo,
        result: StepResult,
        io: StepIO,
    ) -> None:
        label, style = _STATUS_STYLES[result.status]
        duration_ms = _milliseconds(result.elapsed)
        error_msg = None
        if result.error is not None and result.status is not StepStatus.SKIPPED:
            error_msg = f"{type(result.error).__name__}: {result.error}"

        table = self._tables.get(id(context))
        if self.use_rich and table is not None:
            table.add_row(result.kind.value, result.title, Text(label, style=style), f"{duration_ms:.0f}ms")
            if error_msg:
                table.add_row("", Text(f"Error: {error_msg}", style="red"), "", "")
        else:
            print(f"{label} ({duration_ms:.0f}ms)")
            if error_msg:
                print(f"    Error: {error_msg}")

    def on_scenario_finished(self, context: ScenarioContext) -> None:
        self.total += 1
        if context.succeeded:
            self.passed += 1
        else:
            self.failed += 1
        self.elapsed += context.total_elapsed()

        error = context.scenario_error
        error_msg = f"{type(error).__name__}: {error}" if error is not None else None
        table = self._tables.pop(id(context), None)
        if self.use_rich and table is not None:
            if error_msg:
                table.add_row("", Text(f"Scenario error: {error_msg}", style="red"), Text("✗ FAIL", style="red"), "")
            self.console.print(table)
        else:
            outcome = "PASSED" if context.succeeded else "FAILED"
            print(f"Scenario {outcome}: {context.scenario_name}")
            if error_msg:
                print(f"  Scenario error: {error_msg}")
            print()

    def finish(self) -> None:
        """Display the summary of every scenario observed so far."""

        duration_ms = _milliseconds(self.elapsed)
        status = "✓ ALL SCENARIOS PASSED" if self.failed == 0 else "✗ SOME SCENARIOS FAILED"
        if self.use_rich:
            summary_text = Text()
            summary_text.append(f"Total: {self.total}  ", style="bold")
            summary_text.append(f"Passed: {self.passed}  ", style="bold green")
            summary_text.append(f"Failed: {self.failed}  ", style="bold red" if self.failed else "bold green")
            summary_text.append(f"Duration: {duration_ms:.0f}ms", style="bold cyan")
            self.console.print()
            self.console.print(
                Panel(
                    summary_text,
                    title=Text(status, style="bold green" if self.failed == 0 else "bold red"),
                    border_style="green" if self.failed == 0 else "red",
                )
            )
        else:
            print("-" * 80)
            print(f"Total: {self.total} | Passed: {self.passed} | Failed: {self.failed} | Duration: {duration_ms:.0f}ms")
            print(status)

    def print_error(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[bold red]Error:[/] {message}")
        else:
            print(f"Error: {message}")
