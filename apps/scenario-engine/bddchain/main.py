"""CLI entrypoint for bddchain."""

from __future__ import annotations

import asyncio
import inspect
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer

if __package__ in {None, ""}:
    package_root = Path(__file__).resolve().parents[1]
    if str(package_root) not in sys.path:
        sys.path.insert(0, str(package_root))
    __package__ = "bddchain"

from .bdd import scenario_scope
from .configuration import get_configuration, resolve_options
from .console_reporter import ConsoleReporter
from .drivers import ScenarioRegistry, ScenarioTarget
from .errors import StepFailedError
from .factory import ScenarioContextFactory
from .json_report import JsonReportObserver
from .logging_utils import configure_logging
from .observers import ObserverDispatcher
from .output_config import get_log_format, get_output_format
from .pipeline import maybe_await

app = typer.Typer(help="Run behaviour scenarios written as async step chains.")


@app.callback()
def main() -> None:
    """bddchain command group."""


async def _run_targets(
    targets: list[ScenarioTarget],
    registry: ScenarioRegistry,
    factory: ScenarioContextFactory,
    reporter: ConsoleReporter,
    feature: Optional[str],
    tags: list[str],
) -> int:
    failures = 0
    for target in targets:
        try:
            func = registry.resolve(target)
        except (ImportError, AttributeError, TypeError) as exc:
            reporter.print_error(f"Cannot load {target}: {exc}")
            failures += 1
            continue

        context = factory.create_from_source(inspect.getmodule(func), test=func, feature_name=feature)
        context.add_tags(*tags)
        raised = False
        try:
            async with scenario_scope(context):
                await maybe_await(func(context))
        except StepFailedError:
            # The failed step is recorded on the context and already reported.
            raised = True
        except Exception as exc:
            raised = True
            reporter.print_error(f"{target} raised {type(exc).__name__}: {exc}")

        if raised or not context.succeeded:
            failures += 1
    return failures


@app.command("run")
def run_command(
    targets: list[str] = typer.Argument(
        ...,
        help="Scenario functions as module:function; each receives a ScenarioContext.",
    ),
    feature: Optional[str] = typer.Option(
        None,
        help="Feature name overriding @feature metadata and module names.",
    ),
    continue_on_error: Optional[bool] = typer.Option(
        None,
        "--continue-on-error/--stop-on-error",
        help="Keep running steps after a failure.",
    ),
    step_timeout: Optional[float] = typer.Option(
        None,
        help="Per-step timeout in seconds.",
    ),
    options_file: Optional[Path] = typer.Option(
        None,
        exists=True,
        readable=True,
        help="YAML file with scenario options.",
    ),
    json_report: Optional[Path] = typer.Option(
        None,
        help="Write a JSON report with every scenario and step to this path.",
    ),
    output_format: Optional[str] = typer.Option(
        None,
        help="Console output: auto, rich, plain or json (default: CONSOLE_OUTPUT_FORMAT or auto).",
    ),
    log_level: str = typer.Option("warning", help="Log level for structured logs."),
    tag: list[str] = typer.Option(
        [],
        "--tag",
        "-t",
        help="Tags added to every scenario.",
    ),
    search_path: Path = typer.Option(
        Path("."),
        help="Directory prepended to sys.path before importing scenario modules.",
    ),
) -> None:
    """Run scenario functions and exit with status 1 if any failed."""

    resolved_format = get_output_format(output_format)
    configure_logging(log_level, get_log_format(resolved_format))

    try:
        parsed = [ScenarioTarget.parse(reference) for reference in targets]
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    try:
        options = resolve_options(
            {"continue_on_error": continue_on_error, "step_timeout": step_timeout},
            options_file,
        )
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid scenario options: {exc}") from exc

    reporter = ConsoleReporter(resolved_format)
    observers = ObserverDispatcher()
    observers.add(reporter)
    if json_report is not None:
        observers.add(JsonReportObserver(json_report))
    configuration = replace(get_configuration(), options=options, observers=observers)

    failures = asyncio.run(
        _run_targets(
            parsed,
            ScenarioRegistry(search_path.resolve()),
            ScenarioContextFactory(configuration),
            reporter,
            feature,
            tag,
        )
    )
    reporter.finish()
    if failures:
        raise typer.Exit(code=1)


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
