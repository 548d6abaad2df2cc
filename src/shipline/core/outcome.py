"""Typed pipeline outcome passed between workflow nodes."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict

SUCCESS = "SUCCESS"
FAILURE = "FAILURE"


class Success(BaseModel):
    """Every stage that ran so far succeeded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"

    result: ClassVar[str] = SUCCESS


class Failure(BaseModel):
    """A stage failed; later stages do not run."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    stage: str | None = None
    reason: str | None = None

    result: ClassVar[str] = FAILURE

    def describe(self) -> str:
        """Human-readable, never-empty failure message."""
        if self.stage and self.reason:
            return f"Stage '{self.stage}' failed: {self.reason}"
        if self.stage:
            return f"Stage '{self.stage}' failed"
        if self.reason:
            return self.reason
        return "Build failed"


PipelineOutcome = Success | Failure


def should_deploy(previous_result: str | None) -> bool:
    """Deploy only when no earlier stage recorded anything but success."""
    return previous_result is None or previous_result == SUCCESS
