"""Workflow bookkeeping data structures owned by the workflow runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from modflow.datatypes.action_datatypes import StepResult
from modflow.datatypes.plan_datatypes import Plan


class WorkflowStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class WorkflowRecord:
    """State of one plan execution.

    Only the workflow runner mutates a record; everybody else reads it or the
    :class:`WorkflowSummary` derived from it.
    """

    id: str
    plan: Plan
    start_time: datetime
    status: WorkflowStatus = WorkflowStatus.RUNNING
    step_cursor: int = 0
    results: List[StepResult] = field(default_factory=list)
    end_time: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status is not WorkflowStatus.RUNNING

    @property
    def succeeded_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.succeeded_count

    def summarize(self) -> "WorkflowSummary":
        return WorkflowSummary(
            id=self.id,
            status=self.status,
            start_time=self.start_time,
            end_time=self.end_time,
            current_step=self.step_cursor,
            total_steps=len(self.plan.steps),
            succeeded=self.succeeded_count,
            failed=self.failed_count,
            error=self.error,
        )


@dataclass(frozen=True, slots=True)
class WorkflowSummary:
    """Read-only snapshot returned by ``WorkflowRunner.status``."""

    id: str
    status: WorkflowStatus
    start_time: datetime
    end_time: Optional[datetime]
    current_step: int
    total_steps: int
    succeeded: int
    failed: int
    error: Optional[str] = None
