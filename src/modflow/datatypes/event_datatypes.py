"""Payloads published on the event bus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from modflow.datatypes.action_datatypes import ResolutionSource, StepResult
from modflow.datatypes.approval_datatypes import ApprovalSession
from modflow.datatypes.workflow_datatypes import WorkflowSummary


@dataclass(frozen=True, slots=True)
class Notice:
    """Informational message for the requester's channel."""

    channel_id: Optional[str]
    message: str
    workflow_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ActionCorrection:
    """A step whose action id was replaced before dispatch."""

    workflow_id: str
    step_id: str
    requested: str
    corrected: str
    source: ResolutionSource
    confidence: float
    channel_id: Optional[str] = None

    def describe(self) -> str:
        return f"ℹ️ Action '{self.requested}' not found. Using '{self.corrected}' instead."


@dataclass(frozen=True, slots=True)
class StepEvent:
    workflow_id: str
    result: StepResult
    channel_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WorkflowEvent:
    summary: WorkflowSummary
    channel_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ApprovalEvent:
    """A session that was proposed or has just been settled."""

    session: ApprovalSession
    channel_id: Optional[str] = None
