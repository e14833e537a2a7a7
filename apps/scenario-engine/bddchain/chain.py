"""Fluent, type-threading step chain."""

from __future__ import annotations

import inspect
from typing import Any, Callable, Generator, Generic, Optional, TypeVar

from .cancellation import CancellationToken
from .configuration import get_configuration
from .context import ScenarioContext
from .errors import BddAssertionError, HandlerNotFoundError, StepFailedError
from .handlers import StepHandlerFactory
from .models import StepKind, StepPhase
from .pipeline import Pipeline, StepBody, maybe_await

T = TypeVar("T")
TOut = TypeVar("TOut")
TRequest = TypeVar("TRequest")


def _signature_shape(fn: Callable[..., Any]) -> Optional[tuple[int, bool]]:
    """Required positional count and whether ``*args`` is accepted; None when unknown."""

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    required = 0
    star_args = False
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            star_args = True
        elif parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            if parameter.default is inspect.Parameter.empty:
                required += 1
    return required, star_args


def _positional_arity(fn: Callable[..., Any]) -> int:
    """Number of positional arguments a step callable takes; 2 stands for 'value and token'."""

    shape = _signature_shape(fn)
    if shape is None:
        return 1
    required, star_args = shape
    return 2 if star_args else required


def _declared_return(fn: Any) -> Optional[str]:
    annotation = getattr(fn, "__annotations__", {}).get("return")
    if annotation is None:
        return None
    if isinstance(annotation, str):
        return annotation
    return getattr(annotation, "__name__", repr(annotation))


def value_body(fn: Callable[..., Any]) -> StepBody:
    """Adapt ``fn()``, ``fn(value)`` or ``fn(value, token)`` to the step body shape."""

    arity = _positional_arity(fn)
    if arity == 0:
        return lambda value, token: fn()
    if arity == 1:
        return lambda value, token: fn(value)
    return lambda value, token: fn(value, token)


def setup_body(setup: Any) -> StepBody:
    """Adapt a Given setup: a constant, ``setup()`` or ``setup(token)``."""

    if not callable(setup):
        return lambda value, token: setup
    # Builtins and classes without an introspectable signature are factories.
    shape = _signature_shape(setup)
    if shape is None or shape[0] == 0:
        return lambda value, token: setup()
    return lambda value, token: setup(token)


def assertion_body(title: str, predicate: Callable[..., Any]) -> StepBody:
    check = value_body(predicate)

    async def body(value: Any, token: CancellationToken) -> Any:
        outcome = await maybe_await(check(value, token))
        if isinstance(outcome, bool) and not outcome:
            raise BddAssertionError(f"Assertion failed: {title}")
        return value

    return body


class ScenarioChain(Generic[T]):
    """
    One link of a scenario's step chain, carrying a value of type ``T``.

    Building operations only queue steps; awaiting the chain runs every queued step in
    order against the owning :class:`ScenarioContext`. Step callables may be plain
    functions or coroutines and may accept the current value and, optionally, a
    :class:`CancellationToken`::

        ctx = ScenarioContext("Calculator", "Addition")
        await (
            given(ctx, "five", 5)
            .when("add three", lambda x: x + 3)
            .then("is eight", lambda v: v == 8)
        )
    """

    def __init__(self, pipeline: Pipeline) -> None:
        self._pipeline = pipeline

    @classmethod
    def seed(cls, context: ScenarioContext, title: str, setup: Any) -> "ScenarioChain[Any]":
        pipeline = Pipeline(context)
        body = setup_body(setup)
        output_type = _declared_return(setup) if callable(setup) else type(setup).__name__
        pipeline.enqueue(StepPhase.GIVEN, StepKind.GIVEN, title, lambda: body, output_type)
        return cls(pipeline)

    @property
    def context(self) -> ScenarioContext:
        return self._pipeline.context

    def when(self, title: str, fn: Callable[..., TOut]) -> "ScenarioChain[TOut]":
        return self._step(StepPhase.WHEN, StepKind.WHEN, title, fn)

    def then(self, title: str, predicate: Callable[..., Any]) -> "ScenarioChain[T]":
        return self._step(StepPhase.THEN, StepKind.THEN, title, predicate)

    def and_(self, title: str, fn: Callable[..., Any]) -> "ScenarioChain[Any]":
        """Continue the previous phase: a transform after Given/When, an assertion after Then."""

        return self._step(self._pipeline.last_phase, StepKind.AND, title, fn)

    def but(self, title: str, fn: Callable[..., Any]) -> "ScenarioChain[Any]":
        return self._step(self._pipeline.last_phase, StepKind.BUT, title, fn)

    def handle(
        self,
        title: str,
        request_type: type[TRequest],
        to_request: Optional[Callable[[T], TRequest]] = None,
        *,
        factory: Optional[StepHandlerFactory] = None,
        kind: StepKind = StepKind.WHEN,
    ) -> "ScenarioChain[Any]":
        """
        Queue a step whose logic lives in a registered handler for ``request_type``.

        The handler is resolved when the step is reached, from ``factory``, the
        context's handler factory or the configured default, in that order. A missing
        handler raises :class:`HandlerNotFoundError` and records nothing.
        """

        if kind in (StepKind.AND, StepKind.BUT):
            phase = self._pipeline.last_phase
        else:
            phase = StepPhase(kind.value)

        def bind() -> StepBody:
            source = factory or self.context.handler_factory or get_configuration().handler_factory
            handler = source.create(request_type) if source is not None else None
            if handler is None:
                raise HandlerNotFoundError(request_type)

            async def body(value: Any, token: CancellationToken) -> Any:
                request = value if to_request is None else to_request(value)
                return await maybe_await(handler.handle(request, token))

            return body

        self._pipeline.enqueue(phase, kind, title, bind)
        return ScenarioChain(self._pipeline)

    def finally_(self, title: str, fn: Callable[..., Any]) -> "ScenarioChain[T]":
        """Register cleanup for the value reached so far; it runs once the chain ends."""

        self._pipeline.enqueue_finally(title, value_body(fn))
        return self

    async def run(self, token: Optional[CancellationToken] = None) -> T:
        return await self._pipeline.run(token)

    def __await__(self) -> Generator[Any, None, T]:
        return self.run().__await__()

    async def assert_passed(self, token: Optional[CancellationToken] = None) -> T:
        try:
            await self.run(token)
        except StepFailedError:
            pass
        self.context.assert_passed()
        return self._pipeline.value

    async def assert_failed(self, token: Optional[CancellationToken] = None) -> None:
        try:
            await self.run(token)
        except StepFailedError:
            return
        self.context.assert_failed()

    def _step(self, phase: StepPhase, kind: StepKind, title: str, fn: Callable[..., Any]) -> "ScenarioChain[Any]":
        if phase is StepPhase.THEN:
            body = assertion_body(title or kind.value, fn)
            output_type = None
        else:
            body = value_body(fn)
            output_type = _declared_return(fn)
        self._pipeline.enqueue(phase, kind, title, lambda: body, output_type)
        return ScenarioChain(self._pipeline)
