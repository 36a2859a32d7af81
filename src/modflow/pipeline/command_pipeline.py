"""
End-to-end handling of one natural-language request.

request text -> ResponseGenerator -> plan_parser -> ApprovalGate (when the
plan asks for it) -> WorkflowRunner. Every error category is contained here
and mapped to a :class:`PipelineOutcome`; nothing propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from modflow.ai.plan_parser import parse_plan
from modflow.ai.prompt_builder import build_system_prompt
from modflow.ai.response_generator import ResponseGenerator
from modflow.approval.approval_gate import ApprovalGate
from modflow.configuration.app_configuration import app_config
from modflow.core.errors import (
    ApprovalRejected,
    ApprovalTimeout,
    GenerationError,
    ModflowError,
    ParseError,
    PlanValidationError,
)
from modflow.datatypes.plan_datatypes import GenerationResult, Plan
from modflow.datatypes.workflow_datatypes import WorkflowRecord, WorkflowStatus
from modflow.util.logger import get_logger
from modflow.workflow.executor import ExecutionContext
from modflow.workflow.workflow_runner import WorkflowRunner

logger = get_logger("command_pipeline")

NOT_UNDERSTOOD_MESSAGE = "❌ Sorry, I could not understand that request. Please try again."
UNAVAILABLE_MESSAGE = "❌ The language model is unavailable right now. Please try again later."
REJECTED_MESSAGE = "Plan rejected."
EXPIRED_MESSAGE = "Plan approval timed out."


class OutcomeKind(Enum):
    EXECUTED = "executed"
    GENERATION_FAILED = "generation_failed"
    PARSE_FAILED = "parse_failed"
    REJECTED = "rejected"
    EXPIRED = "expired"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class PipelineOutcome:
    """What happened to a request, plus the message to show the requester."""

    kind: OutcomeKind
    message: str
    plan: Optional[Plan] = None
    record: Optional[WorkflowRecord] = None
    generation: Optional[GenerationResult] = None


def summarize_record(record: WorkflowRecord) -> str:
    """One-line report of a finished workflow."""
    succeeded, failed = record.succeeded_count, record.failed_count
    if record.status is WorkflowStatus.FAILED:
        return f"❌ Workflow stopped at a critical step: {record.error or 'unknown error'}"
    if failed == 0:
        return f"✅ All {succeeded} action(s) completed successfully."
    return f"⚠️ {succeeded} action(s) succeeded, {failed} failed."


class CommandPipeline:
    """Wire the generator, the approval gate and the runner together."""

    def __init__(
        self,
        generator: ResponseGenerator,
        runner: WorkflowRunner,
        gate: ApprovalGate,
        system_prompt_template: Optional[str] = None,
        auto_approve_admins: Optional[bool] = None,
        max_steps: Optional[int] = None,
    ) -> None:
        self.generator = generator
        self.runner = runner
        self.gate = gate
        self.system_prompt = build_system_prompt(
            system_prompt_template if system_prompt_template is not None else app_config.system_prompt_template,
            runner.resolver.capabilities,
        )
        self.auto_approve_admins = (
            auto_approve_admins if auto_approve_admins is not None else app_config.auto_approve_admins
        )
        self.max_steps = max_steps if max_steps is not None else app_config.max_workflow_steps

    async def handle(self, user_text: str, context: ExecutionContext) -> PipelineOutcome:
        """Turn ``user_text`` into an executed workflow (or an explanation why not)."""
        logger.info("[PIPELINE] Handling request from %s: %s", context.requester_id, user_text)

        try:
            generation = await self.generator.generate(self.system_prompt, user_text)
        except GenerationError as exc:
            logger.error("[PIPELINE] Generation failed after %d attempt(s): %s", exc.attempts, exc)
            return PipelineOutcome(OutcomeKind.GENERATION_FAILED, UNAVAILABLE_MESSAGE)

        try:
            plan = parse_plan(generation, self.max_steps)
        except PlanValidationError as exc:
            logger.warning("[PIPELINE] Generated plan rejected: %s", exc)
            return PipelineOutcome(
                OutcomeKind.PARSE_FAILED, f"❌ The generated plan was invalid: {exc}", generation=generation
            )
        except ParseError as exc:
            logger.warning("[PIPELINE] Could not parse generated plan: %s", exc)
            return PipelineOutcome(OutcomeKind.PARSE_FAILED, NOT_UNDERSTOOD_MESSAGE, generation=generation)

        if plan.requires_approval:
            if self.auto_approve_admins and context.is_admin:
                logger.info("[PIPELINE] Auto-approving plan for administrator %s", context.requester_id)
            else:
                session = await self.gate.propose(plan, context.requester_id, context.channel_id)
                try:
                    session.raise_for_state()
                except ApprovalRejected:
                    return PipelineOutcome(OutcomeKind.REJECTED, REJECTED_MESSAGE, plan=plan, generation=generation)
                except ApprovalTimeout:
                    return PipelineOutcome(OutcomeKind.EXPIRED, EXPIRED_MESSAGE, plan=plan, generation=generation)

        try:
            record = await self.runner.execute(plan, context)
        except ModflowError as exc:
            logger.error("[PIPELINE] Plan could not be executed: %s", exc)
            return PipelineOutcome(OutcomeKind.ERROR, f"❌ An error occurred: {exc}", plan=plan, generation=generation)
        except Exception as exc:
            logger.exception("[PIPELINE] Unexpected error while executing plan")
            return PipelineOutcome(OutcomeKind.ERROR, f"❌ An error occurred: {exc}", plan=plan, generation=generation)

        return PipelineOutcome(
            OutcomeKind.EXECUTED,
            summarize_record(record),
            plan=plan,
            record=record,
            generation=generation,
        )
