"""Scenario outlines: one scenario template run once per examples row."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from .bdd import scenario_scope
from .cancellation import CancellationToken
from .chain import ScenarioChain
from .context import ScenarioContext
from .errors import ExamplesFailedError, ScenarioCancelledError, StepFailedError
from .factory import ScenarioContextFactory
from .pipeline import maybe_await

E = TypeVar("E")


@dataclass(frozen=True)
class ExampleRow(Generic[E]):
    index: int
    data: E
    label: Optional[str] = None

    def __str__(self) -> str:
        return self.label or f"Example {self.index + 1}: {self.data}"


@dataclass(frozen=True)
class ExampleResult(Generic[E]):
    row: ExampleRow[E]
    context: ScenarioContext
    passed: bool
    error: Optional[BaseException] = None


class ExamplesResult(Generic[E]):
    def __init__(self, results: Iterable[ExampleResult[E]]) -> None:
        self.results = tuple(results)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed_count(self) -> int:
        return self.total_count - self.passed_count

    @property
    def all_passed(self) -> bool:
        return self.failed_count == 0

    def assert_all_passed(self) -> None:
        if self.all_passed:
            return
        failures = [result for result in self.results if not result.passed]
        lines = [f"{self.failed_count} of {self.total_count} examples failed."]
        for result in failures:
            first = result.context.first_failure
            reason = f"{first.kind.value} {first.title}" if first is not None else repr(result.error)
            lines.append(f"  {result.row}: {reason}")
        raise ExamplesFailedError("\n".join(lines), failures)


class ScenarioOutline(Generic[E]):
    """
    Runs the same chain against every examples row, each in a fresh context named
    ``"<title> [<row>]"``. Rows run one after another.
    """

    def __init__(
        self,
        feature_name: str,
        title: str,
        *,
        feature_description: Optional[str] = None,
        tags: Iterable[str] = (),
        factory: Optional[ScenarioContextFactory] = None,
    ) -> None:
        self.feature_name = feature_name
        self.feature_description = feature_description
        self.title = title
        self.tags = tuple(tags)
        self._factory = factory or ScenarioContextFactory()
        self._rows: list[ExampleRow[E]] = []

    @property
    def rows(self) -> tuple[ExampleRow[E], ...]:
        return tuple(self._rows)

    def example(self, data: E, label: Optional[str] = None) -> "ScenarioOutline[E]":
        self._rows.append(ExampleRow(index=len(self._rows), data=data, label=label))
        return self

    def examples(self, *rows: E) -> "ScenarioOutline[E]":
        for data in rows:
            self.example(data)
        return self

    async def run(
        self,
        build: Callable[[ScenarioContext, E], Any],
        token: Optional[CancellationToken] = None,
    ) -> ExamplesResult[E]:
        """``build(ctx, data)`` returns the chain (or any awaitable) for one row."""

        if not self._rows:
            raise ValueError(f"Scenario outline '{self.title}' has no examples")
        results: list[ExampleResult[E]] = []
        for row in self._rows:
            context = self._factory.create(
                self.feature_name,
                f"{self.title} [{row}]",
                self.feature_description,
                tags=self.tags,
            )
            error: Optional[BaseException] = None
            try:
                async with scenario_scope(context):
                    outcome = build(context, row.data)
                    if token is not None and isinstance(outcome, ScenarioChain):
                        outcome = outcome.run(token)
                    await maybe_await(outcome)
            except ScenarioCancelledError:
                raise
            except StepFailedError as exc:
                error = exc.__cause__ or exc
            except Exception as exc:
                error = exc
            results.append(
                ExampleResult(row=row, context=context, passed=error is None and context.succeeded, error=error)
            )
        return ExamplesResult(results)
