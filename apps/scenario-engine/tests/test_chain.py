from __future__ import annotations

import asyncio

import pytest

from bddchain.bdd import create_context, given
from bddchain.cancellation import CancellationToken
from bddchain.context import ScenarioContext
from bddchain.errors import (
    BddAssertionError,
    ScenarioAssertionError,
    ScenarioCancelledError,
    StepFailedError,
    StepSkippedError,
    StepTimeoutError,
)
from bddchain.models import ScenarioOptions, StepKind, StepPhase, StepStatus
from bddchain.observers import ObserverDispatcher


def _explode(value: int) -> int:
    raise ValueError("bad input")


def _context(**options: object) -> ScenarioContext:
    return ScenarioContext("Calculator", "Arithmetic", options=ScenarioOptions(**options))


class StepInfoRecorder:
    def __init__(self) -> None:
        self.infos = []

    def on_step_starting(self, context, step) -> None:
        self.infos.append(step)

    def on_step_finished(self, context, step, result, io) -> None:
        pass


@pytest.mark.asyncio
async def test_chain_threads_values_and_records_every_step() -> None:
    ctx = create_context("Calculator", "Addition")

    result = await given(ctx, "five", 5).when("add three", lambda x: x + 3).then("is eight", lambda v: v == 8)

    assert result == 8
    assert [step.kind for step in ctx.steps] == [StepKind.GIVEN, StepKind.WHEN, StepKind.THEN]
    assert all(step.status is StepStatus.PASSED for step in ctx.steps)
    assert len(ctx.io) == len(ctx.steps)
    assert (ctx.io[1].input, ctx.io[1].output) == (5, 8)
    assert ctx.io[0].input is None and ctx.io[0].output == 5
    assert ctx.current_value == 8
    assert ctx.all_passed


@pytest.mark.asyncio
async def test_building_a_chain_runs_nothing_until_awaited() -> None:
    ctx = _context()
    calls: list[str] = []

    def setup() -> int:
        calls.append("given")
        return 1

    chain = given(ctx, "one", setup).when("record", lambda v: calls.append("when") or v)

    assert calls == []
    assert ctx.steps == ()

    await chain

    assert calls == ["given", "when"]


@pytest.mark.asyncio
async def test_async_steps_and_setup_shapes() -> None:
    ctx = _context()

    async def add_one(value: int) -> int:
        await asyncio.sleep(0)
        return value + 1

    async def is_positive(value: int, token: CancellationToken) -> bool:
        return value > 0 and not token.cancelled

    result = await given(ctx, "token-aware setup", lambda token: 10).when("add one", add_one).then("positive", is_positive)

    assert result == 11
    assert await given(_context(), "constant", "abc").when("upper", str.upper) == "ABC"
    assert await given(_context(), "no-arg factory", lambda: [1, 2]).when("count", len) == 2


@pytest.mark.asyncio
async def test_step_info_carries_value_types() -> None:
    recorder = StepInfoRecorder()
    ctx = ScenarioContext("Types", "Threading", observers=ObserverDispatcher().add(recorder))

    def to_text(value: int) -> str:
        return str(value)

    await given(ctx, "number", 7).when("to text", to_text)

    given_info, when_info = recorder.infos
    assert given_info.phase is StepPhase.GIVEN
    assert given_info.output_type == "int"
    assert when_info.input_type == "int"
    assert when_info.output_type == "str"


@pytest.mark.asyncio
async def test_failing_step_aborts_the_chain() -> None:
    ctx = _context()
    reached: list[str] = []

    with pytest.raises(StepFailedError) as info:
        await given(ctx, "one", 1).when("explode", _explode).then("never", lambda v: reached.append("then"))

    assert reached == []
    assert [step.status for step in ctx.steps] == [StepStatus.PASSED, StepStatus.FAILED]
    assert isinstance(ctx.steps[1].error, ValueError)
    assert isinstance(info.value.__cause__, ValueError)
    assert info.value.result.title == "explode"
    assert info.value.context is ctx
    assert str(info.value) == "Step failed: When explode"
    assert ctx.io[1].output is None


@pytest.mark.asyncio
async def test_false_predicate_fails_the_then_step() -> None:
    ctx = _context()

    with pytest.raises(StepFailedError):
        await given(ctx, "one", 1).then("is two", lambda v: v == 2)

    failure = ctx.first_failure
    assert failure is not None and failure.kind is StepKind.THEN
    assert isinstance(failure.error, BddAssertionError)
    assert str(failure.error) == "Assertion failed: is two"


@pytest.mark.asyncio
async def test_non_boolean_predicate_result_passes() -> None:
    ctx = _context()

    assert await given(ctx, "one", 1).then("anything", lambda v: None) == 1


@pytest.mark.asyncio
async def test_continue_on_error_carries_last_successful_value() -> None:
    ctx = _context(continue_on_error=True)

    result = await given(ctx, "one", 1).when("explode", _explode).when("double", lambda v: v * 2)

    assert result == 2
    assert [step.status for step in ctx.steps] == [StepStatus.PASSED, StepStatus.FAILED, StepStatus.PASSED]
    assert ctx.io[2].input == 1
    assert not ctx.all_passed


@pytest.mark.asyncio
async def test_remaining_steps_marked_skipped_on_failure() -> None:
    ctx = _context(mark_remaining_as_skipped_on_failure=True)

    with pytest.raises(StepFailedError):
        await (
            given(ctx, "one", 1)
            .when("explode", _explode)
            .when("double", lambda v: v * 2)
            .then("is two", lambda v: v == 2)
        )

    assert [step.status for step in ctx.steps] == [
        StepStatus.PASSED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
        StepStatus.SKIPPED,
    ]
    assert len(ctx.io) == 4
    assert isinstance(ctx.steps[2].error, StepSkippedError)
    assert ctx.steps[3].title == "is two"


@pytest.mark.asyncio
async def test_step_timeout_records_failure() -> None:
    ctx = _context(step_timeout=0.05)

    async def slow(value: int) -> int:
        await asyncio.sleep(1)
        return value

    with pytest.raises(StepFailedError):
        await given(ctx, "one", 1).when("slow", slow)

    assert ctx.steps[1].status is StepStatus.FAILED
    assert isinstance(ctx.steps[1].error, StepTimeoutError)


@pytest.mark.asyncio
async def test_finally_handlers_run_after_failure_with_captured_value() -> None:
    ctx = _context()
    released: list[str] = []

    def failing_cleanup(value: str) -> None:
        raise RuntimeError("cleanup broke")

    with pytest.raises(StepFailedError):
        await (
            given(ctx, "resource", "db-connection")
            .finally_("release", lambda resource: released.append(resource))
            .finally_("broken cleanup", failing_cleanup)
            .when("explode", _explode)
        )

    assert released == ["db-connection"]


@pytest.mark.asyncio
async def test_cancellation_aborts_even_with_continue_on_error() -> None:
    ctx = _context(continue_on_error=True)
    token = CancellationToken()

    def cancel(value: int, token: CancellationToken) -> int:
        token.cancel("operator stop")
        token.raise_if_cancelled()
        return value

    with pytest.raises(ScenarioCancelledError):
        await given(ctx, "one", 1).when("cancel", cancel).when("after", lambda v: v).run(token)

    assert [step.status for step in ctx.steps] == [StepStatus.PASSED, StepStatus.CANCELLED]


@pytest.mark.asyncio
async def test_cancelled_token_stops_before_next_step() -> None:
    ctx = _context()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(ScenarioCancelledError):
        await given(ctx, "one", 1).run(token)

    assert ctx.steps == ()


@pytest.mark.asyncio
async def test_and_but_continue_the_previous_phase() -> None:
    ctx = _context()

    result = await (
        given(ctx, "two", 2)
        .and_("plus one", lambda v: v + 1)
        .when("double", lambda v: v * 2)
        .but("minus one", lambda v: v - 1)
        .then("is five", lambda v: v == 5)
        .and_("is odd", lambda v: v % 2 == 1)
        .but("not seven", lambda v: v != 7)
    )

    assert result == 5
    assert [step.kind for step in ctx.steps] == [
        StepKind.GIVEN,
        StepKind.AND,
        StepKind.WHEN,
        StepKind.BUT,
        StepKind.THEN,
        StepKind.AND,
        StepKind.BUT,
    ]


@pytest.mark.asyncio
async def test_assert_passed_returns_value_or_raises_summary() -> None:
    assert await given(_context(), "one", 1).when("inc", lambda v: v + 1).assert_passed() == 2

    ctx = _context()
    with pytest.raises(ScenarioAssertionError) as info:
        await given(ctx, "one", 1).when("explode", _explode).assert_passed()

    assert info.value.kind == "When"
    assert info.value.title == "explode"
    assert "ValueError: bad input" in str(info.value)


@pytest.mark.asyncio
async def test_assert_failed() -> None:
    await given(_context(), "one", 1).when("explode", _explode).assert_failed()

    with pytest.raises(ScenarioAssertionError, match="no failed steps"):
        await given(_context(), "one", 1).assert_failed()


@pytest.mark.asyncio
async def test_aborted_chain_stays_aborted_when_awaited_again() -> None:
    ctx = _context()
    chain = given(ctx, "ten", 10).when("explode", _explode).then("after", lambda v: True)

    with pytest.raises(StepFailedError) as first:
        await chain
    with pytest.raises(StepFailedError) as second:
        await chain
    with pytest.raises(ScenarioAssertionError):
        await chain.assert_passed()

    assert second.value is first.value
    assert [step.title for step in ctx.steps] == ["ten", "explode"]
    assert len(ctx.io) == 2
    assert not ctx.all_passed


@pytest.mark.asyncio
async def test_cancelled_chain_stays_cancelled() -> None:
    ctx = _context()
    token = CancellationToken()
    token.cancel()
    chain = given(ctx, "one", 1).when("inc", lambda v: v + 1)

    with pytest.raises(ScenarioCancelledError):
        await chain.run(token)
    with pytest.raises(ScenarioCancelledError):
        await chain

    assert ctx.steps == ()
    assert isinstance(ctx.scenario_error, ScenarioCancelledError)
    assert not ctx.succeeded


@pytest.mark.asyncio
async def test_builtin_types_work_as_given_factories() -> None:
    assert await given(_context(), "empty list", list).when("size", len) == 0
    assert await given(_context(), "empty dict", dict).then("is empty", lambda v: v == {}) == {}
    assert await given(_context(), "zero", int).when("inc", lambda v: v + 1) == 1
