"""Step-handler indirection: step logic registered apart from the chain that uses it."""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar, Union, runtime_checkable

from .cancellation import CancellationToken

TRequest = TypeVar("TRequest", contravariant=True)
TResponse = TypeVar("TResponse", covariant=True)


@runtime_checkable
class StepHandler(Protocol, Generic[TRequest, TResponse]):
    # handle may be sync or async; the chain awaits whatever comes back.
    def handle(self, request: TRequest, token: CancellationToken) -> Any:
        ...


class StepHandlerFactory(Protocol):
    def create(self, request_type: type) -> Optional[StepHandler[Any, Any]]:
        ...


HandlerSource = Union[StepHandler[Any, Any], Callable[[], StepHandler[Any, Any]]]


class HandlerRegistry:
    """Maps request types to handler instances or zero-argument handler factories."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._factories: dict[type, Callable[[], StepHandler[Any, Any]]] = {}

    def register(self, request_type: type, handler: HandlerSource) -> "HandlerRegistry":
        factory: Callable[[], StepHandler[Any, Any]]
        if isinstance(handler, type):
            factory = handler
        elif isinstance(handler, StepHandler):
            factory = lambda: handler  # noqa: E731
        elif callable(handler):
            factory = handler
        else:
            raise TypeError(f"Handler for {request_type.__name__} must be a StepHandler or a factory")
        with self._lock:
            self._factories[request_type] = factory
        return self

    def handles(self, request_type: type) -> Callable[[type], type]:
        """Class decorator registering a handler class built with no arguments."""

        def decorator(handler_cls: type) -> type:
            self.register(request_type, handler_cls)
            return handler_cls

        return decorator

    def create(self, request_type: type) -> Optional[StepHandler[Any, Any]]:
        factory = self._factories.get(request_type)
        if factory is None:
            return None
        return factory()

    def __contains__(self, request_type: object) -> bool:
        return request_type in self._factories
