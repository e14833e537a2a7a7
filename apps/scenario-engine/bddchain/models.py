"""Step and scenario value models."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class StepKind(str, Enum):
    """Keyword printed in front of a step."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"


class StepPhase(str, Enum):
    """Phase a step belongs to; And/But inherit the previous one."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"

    @property
    def kind(self) -> StepKind:
        return StepKind(self.value)


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class StepInfo(BaseModel):
    """Static description of a step before it runs."""

    model_config = ConfigDict(frozen=True)

    kind: StepKind
    title: str
    phase: StepPhase
    input_type: Optional[str] = None
    output_type: Optional[str] = None


class StepResult(BaseModel):
    """Outcome of one executed step."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: StepKind
    title: str
    status: StepStatus
    elapsed: timedelta = timedelta(0)
    error: Optional[BaseException] = None

    @property
    def passed(self) -> bool:
        return self.status is StepStatus.PASSED


class StepIO(BaseModel):
    """Input and output values captured for one executed step."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: StepKind
    title: str
    input: Any = None
    output: Any = None


class ScenarioOptions(BaseModel):
    """Execution policy copied into every scenario context."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    continue_on_error: bool = False
    mark_remaining_as_skipped_on_failure: bool = False
    step_timeout: Optional[float] = Field(default=None, gt=0)
