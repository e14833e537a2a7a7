"""Queued step execution: timing, IO capture, notifications and failure policy."""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional, Union

import structlog

from .cancellation import CancellationToken
from .context import ScenarioContext
from .errors import ScenarioCancelledError, StepFailedError, StepSkippedError, StepTimeoutError
from .models import StepInfo, StepIO, StepKind, StepPhase, StepResult, StepStatus

LOGGER = structlog.get_logger("bddchain")

StepBody = Callable[[Any, CancellationToken], Any]
FinallyBody = Callable[[Any, CancellationToken], Any]


@dataclass(frozen=True)
class QueuedStep:
    phase: StepPhase
    kind: StepKind
    title: str
    # bind resolves the body right before the step starts; it may raise to abort
    # the chain without recording anything.
    bind: Callable[[], StepBody]
    output_type: Optional[str] = None


@dataclass(frozen=True)
class FinallyMarker:
    title: str
    body: FinallyBody


async def maybe_await(outcome: Any) -> Any:
    if inspect.isawaitable(outcome):
        return await outcome
    return outcome


async def begin_scenario(context: ScenarioContext) -> bool:
    """Fire scenario-starting observers once per context; True if this call fired them."""

    if context.scenario_started:
        return False
    context.scenario_started = True
    await context.observers.scenario_starting(context)
    return True


async def end_scenario(context: ScenarioContext) -> None:
    if context.scenario_finished:
        return
    context.scenario_finished = True
    LOGGER.debug(
        "scenario_finished",
        feature=context.feature_name,
        scenario=context.scenario_name,
        steps=len(context.steps),
        all_passed=context.all_passed,
    )
    await context.observers.scenario_finished(context)


class Pipeline:
    """Runs queued steps of one chain strictly in order against a context."""

    def __init__(self, context: ScenarioContext) -> None:
        self.context = context
        self.last_phase = StepPhase.GIVEN
        self.value: Any = None
        self._queue: deque[Union[QueuedStep, FinallyMarker]] = deque()
        self._finally: list[tuple[str, FinallyBody, Any]] = []
        self._aborted: Optional[BaseException] = None

    def enqueue(
        self,
        phase: StepPhase,
        kind: StepKind,
        title: str,
        bind: Callable[[], StepBody],
        output_type: Optional[str] = None,
    ) -> None:
        self.last_phase = phase
        self._queue.append(QueuedStep(phase, kind, title or phase.value, bind, output_type))

    def enqueue_finally(self, title: str, body: FinallyBody) -> None:
        self._queue.append(FinallyMarker(title or "Finally", body))

    async def run(self, token: Optional[CancellationToken] = None) -> Any:
        if self._aborted is not None:
            # An aborted chain is terminal; awaiting it again reports the same abort.
            raise self._aborted
        token = token or CancellationToken()
        owns_scenario = await begin_scenario(self.context)
        try:
            while self._queue:
                token.raise_if_cancelled()
                item = self._queue.popleft()
                if isinstance(item, FinallyMarker):
                    self._finally.append((item.title, item.body, self.value))
                    continue
                await self._execute(item, token)
        except BaseException as exc:
            self._aborted = exc
            self._queue.clear()
            if not isinstance(exc, StepFailedError):
                self.context.record_scenario_error(exc)
            raise
        finally:
            await self._run_finally(token)
            if owns_scenario:
                await end_scenario(self.context)
        return self.value

    async def _execute(self, step: QueuedStep, token: CancellationToken) -> None:
        context = self.context
        info = StepInfo(
            kind=step.kind,
            title=step.title,
            phase=step.phase,
            input_type=None if self.value is None else type(self.value).__name__,
            output_type=step.output_type,
        )
        body = step.bind()
        await context.observers.step_starting(context, info)

        input_value = self.value
        output: Any = None
        error: Optional[BaseException] = None
        status = StepStatus.PASSED
        started = time.perf_counter()
        try:
            output = await self._invoke(body, input_value, token)
        except asyncio.CancelledError as exc:
            status, error = StepStatus.CANCELLED, exc
        except Exception as exc:
            cancelled = isinstance(exc, ScenarioCancelledError) or token.cancelled
            status = StepStatus.CANCELLED if cancelled else StepStatus.FAILED
            error = exc
        elapsed = timedelta(seconds=time.perf_counter() - started)

        result = StepResult(kind=step.kind, title=step.title, status=status, elapsed=elapsed, error=error)
        io = StepIO(
            kind=step.kind,
            title=step.title,
            input=input_value,
            output=output if status is StepStatus.PASSED else None,
        )
        context.record(result, io)
        if status is StepStatus.PASSED:
            self.value = output
            context.current_value = output
        await context.observers.step_finished(context, info, result, io)

        if status is StepStatus.PASSED:
            return
        LOGGER.info(
            "step_failed",
            feature=context.feature_name,
            scenario=context.scenario_name,
            kind=step.kind.value,
            title=step.title,
            status=status.value,
            error=f"{type(error).__name__}: {error}",
        )
        if status is StepStatus.CANCELLED:
            # Cancellation always aborts, continue_on_error notwithstanding.
            raise error  # type: ignore[misc]
        if context.options.continue_on_error:
            return
        if context.options.mark_remaining_as_skipped_on_failure:
            await self._drain_as_skipped()
        raise StepFailedError(f"Step failed: {step.kind.value} {step.title}", context, result) from error

    async def _invoke(self, body: StepBody, value: Any, token: CancellationToken) -> Any:
        timeout = self.context.options.step_timeout
        if timeout is None:
            return await maybe_await(body(value, token))
        try:
            return await asyncio.wait_for(maybe_await(body(value, token)), timeout)
        except asyncio.TimeoutError as exc:
            raise StepTimeoutError(f"Step exceeded timeout of {timeout}s") from exc

    async def _drain_as_skipped(self) -> None:
        context = self.context
        while self._queue:
            item = self._queue.popleft()
            if isinstance(item, FinallyMarker):
                continue
            info = StepInfo(kind=item.kind, title=item.title, phase=item.phase, output_type=item.output_type)
            await context.observers.step_starting(context, info)
            result = StepResult(
                kind=item.kind,
                title=item.title,
                status=StepStatus.SKIPPED,
                error=StepSkippedError("Skipped due to previous failure."),
            )
            io = StepIO(kind=item.kind, title=item.title)
            context.record(result, io)
            await context.observers.step_finished(context, info, result, io)

    async def _run_finally(self, token: CancellationToken) -> None:
        handlers, self._finally = self._finally, []
        for title, body, captured in handlers:
            try:
                await maybe_await(body(captured, token))
            except Exception as exc:
                LOGGER.warning(
                    "finally_handler_failed",
                    scenario=self.context.scenario_name,
                    title=title,
                    error=f"{type(exc).__name__}: {exc}",
                )
