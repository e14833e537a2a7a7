"""Error types raised by the scenario engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .context import ScenarioContext
    from .models import StepResult


class BddError(Exception):
    """Base class for all engine errors."""


class StepFailedError(BddError):
    """A step failed and the chain was aborted."""

    def __init__(self, message: str, context: "ScenarioContext", result: "StepResult") -> None:
        super().__init__(message)
        self.context = context
        self.result = result


class BddAssertionError(BddError, AssertionError):
    """A `then` predicate did not hold."""


class StepTimeoutError(BddError, TimeoutError):
    """A step ran longer than the configured step timeout."""


class StepSkippedError(BddError):
    """Recorded on steps that never ran because an earlier step aborted the chain."""


class HandlerNotFoundError(BddError, LookupError):
    """No step handler is registered for a request type."""

    def __init__(self, request_type: type) -> None:
        super().__init__(f"No step handler registered for request type '{request_type.__name__}'")
        self.request_type = request_type


class ScenarioAssertionError(BddError, AssertionError):
    """Summary failure raised by `assert_passed` / `assert_failed`."""

    def __init__(self, message: str, kind: Optional[str] = None, title: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.title = title


class AmbientContextMissingError(BddError, RuntimeError):
    """The implicit API was used with no scenario context set on the current flow."""


class ScenarioCancelledError(BddError):
    """Cooperative cancellation requested through a cancellation token."""


class ExamplesFailedError(BddError, AssertionError):
    """One or more rows of a scenario outline failed."""

    def __init__(self, message: str, failures: list[Any]) -> None:
        super().__init__(message)
        self.failures = failures
