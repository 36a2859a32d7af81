"""
Plan execution against an :class:`ActionExecutor`.

The runner resolves each step's action, writes the corrected identifier back
into the step, dispatches it, and records the outcome on the workflow's
:class:`WorkflowRecord`.

Strategies:
- sequential: steps run in plan order; a failed ``critical`` step stops the
  plan and marks the workflow failed.
- parallel: all steps are dispatched at once and joined all-settled; no
  failure stops the others.

Corrections, composite notices and progress are published on the event bus
instead of being sent anywhere directly.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from modflow.core.errors import ExecutionError, ResolutionError
from modflow.datatypes.action_datatypes import ResolutionSource, ResolvedAction, StepResult
from modflow.datatypes.event_datatypes import ActionCorrection, Notice, StepEvent, WorkflowEvent
from modflow.datatypes.plan_datatypes import DEFAULT_TOOL, ExecutionStrategy, Plan, Step
from modflow.datatypes.workflow_datatypes import WorkflowRecord, WorkflowStatus, WorkflowSummary
from modflow.events.event_bus import EventBus, EventTopic
from modflow.resolution.action_resolver import ActionResolver
from modflow.resolution.composite_patterns import COMPOSITE_HANDLERS, CompositePattern
from modflow.util.logger import get_logger
from modflow.workflow.executor import ActionExecutor, ExecutionContext, ExecutionOutcome
from modflow.workflow.workflow_registry import WorkflowRegistry

logger = get_logger("workflow_runner")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowRunner:
    """Run plans and keep track of their workflows.

    Args:
        executor: Performs canonical actions.
        resolver: Maps raw action ids to capabilities.
        event_bus: Receives corrections, notices and progress events.
        registry: Stores workflow records; a private one is created if omitted.
    """

    def __init__(
        self,
        executor: ActionExecutor,
        resolver: Optional[ActionResolver] = None,
        event_bus: Optional[EventBus] = None,
        registry: Optional[WorkflowRegistry] = None,
    ) -> None:
        self.executor = executor
        self.resolver = resolver or ActionResolver()
        self.event_bus = event_bus or EventBus()
        self.registry = registry or WorkflowRegistry()

    # --------------------------
    # Public API
    # --------------------------
    async def execute(self, plan: Plan, context: Optional[ExecutionContext] = None) -> WorkflowRecord:
        """Run every step of ``plan`` and return the finished record.

        Raises:
            PlanValidationError: If the plan's strategy is unknown. Nothing is
                registered or dispatched in that case.
        """
        strategy = plan.execution_strategy
        context = context or ExecutionContext(requester_id="")

        record = WorkflowRecord(id=self.registry.new_id(), plan=plan, start_time=_now())
        self.registry.register(record)
        logger.info(
            "[WORKFLOW] Starting %s (%d step(s), %s)", record.id, len(plan.steps), strategy
        )
        await self.event_bus.publish(
            EventTopic.WORKFLOW_STARTED, WorkflowEvent(record.summarize(), context.channel_id)
        )

        try:
            if strategy is ExecutionStrategy.SEQUENTIAL:
                await self._run_sequential(record, context)
            else:
                await self._run_parallel(record, context)
        except Exception as exc:
            record.status = WorkflowStatus.FAILED
            record.error = str(exc)
            record.end_time = _now()
            logger.exception("[WORKFLOW] %s crashed", record.id)
            await self._announce_finished(record, context)
            raise

        record.end_time = _now()
        logger.info(
            "[WORKFLOW] %s %s: %d succeeded, %d failed",
            record.id,
            record.status,
            record.succeeded_count,
            record.failed_count,
        )
        await self._announce_finished(record, context)
        return record

    def status(self, workflow_id: str) -> Optional[WorkflowSummary]:
        """Return a snapshot of the workflow, or None if the id is unknown."""
        record = self.registry.get(workflow_id)
        return record.summarize() if record is not None else None

    async def _announce_finished(self, record: WorkflowRecord, context: ExecutionContext) -> None:
        await self.event_bus.publish(
            EventTopic.WORKFLOW_FINISHED, WorkflowEvent(record.summarize(), context.channel_id)
        )

    # --------------------------
    # Strategies
    # --------------------------
    async def _run_sequential(self, record: WorkflowRecord, context: ExecutionContext) -> None:
        for step in record.plan.steps:
            result = await self._run_step(record.id, step, context)
            record.results.append(result)
            record.step_cursor += 1
            await self._report_step(record.id, result, context)

            if not result.success and step.critical:
                record.status = WorkflowStatus.FAILED
                record.error = result.error
                logger.warning("[WORKFLOW] Critical step %s failed in %s: %s", step.id, record.id, result.error)
                return

        record.status = WorkflowStatus.COMPLETED

    async def _run_parallel(self, record: WorkflowRecord, context: ExecutionContext) -> None:
        steps = record.plan.steps

        async def run_and_report(step: Step) -> StepResult:
            result = await self._run_step(record.id, step, context)
            await self._report_step(record.id, result, context)
            return result

        settled = await asyncio.gather(*(run_and_report(step) for step in steps), return_exceptions=True)

        results: List[StepResult] = []
        for step, outcome in zip(steps, settled):
            if isinstance(outcome, BaseException):
                logger.error("[WORKFLOW] Step %s raised in %s: %s", step.id, record.id, outcome)
                outcome = StepResult(
                    step_id=step.id,
                    action=step.action,
                    requested_action=step.action,
                    success=False,
                    error=str(outcome),
                )
            results.append(outcome)

        record.results.extend(results)
        record.step_cursor = len(steps)
        record.status = WorkflowStatus.COMPLETED

    # --------------------------
    # Steps
    # --------------------------
    async def _report_step(self, workflow_id: str, result: StepResult, context: ExecutionContext) -> None:
        await self.event_bus.publish(
            EventTopic.STEP_COMPLETED, StepEvent(workflow_id, result, context.channel_id)
        )

    async def _run_step(self, workflow_id: str, step: Step, context: ExecutionContext) -> StepResult:
        requested = step.action

        if step.tool != DEFAULT_TOOL:
            error = ExecutionError(f"Unknown tool: {step.tool}")
            return StepResult(step.id, requested, requested, success=False, error=str(error))

        resolved = self.resolver.resolve(requested, context.content)
        if not resolved.resolved:
            return StepResult(
                step.id,
                requested,
                requested,
                success=False,
                source=ResolutionSource.NONE,
                error=str(ResolutionError(requested)),
            )

        # The executed identifier is written back so results show what actually ran.
        step.action = resolved.canonical
        if resolved.source in (ResolutionSource.ALIAS, ResolutionSource.FUZZY):
            await self.event_bus.publish(
                EventTopic.ACTION_CORRECTED,
                ActionCorrection(
                    workflow_id=workflow_id,
                    step_id=step.id,
                    requested=requested,
                    corrected=resolved.canonical,
                    source=resolved.source,
                    confidence=resolved.confidence,
                    channel_id=context.channel_id,
                ),
            )

        if resolved.source is ResolutionSource.DYNAMIC:
            return await self._run_composite(workflow_id, step, requested, resolved, context)

        outcome = await self._dispatch(step.action, step.parameters, context)
        return StepResult(
            step_id=step.id,
            action=step.action,
            requested_action=requested,
            success=outcome.success,
            source=resolved.source,
            details=outcome.details,
            error=outcome.error,
        )

    async def _dispatch(self, action: str, parameters: dict, context: ExecutionContext) -> ExecutionOutcome:
        try:
            outcome = ExecutionOutcome.coerce(await self.executor.execute(action, dict(parameters), context))
        except Exception as exc:
            logger.exception("[WORKFLOW] Executor raised for %s", action)
            return ExecutionOutcome(success=False, error=str(ExecutionError(str(exc))))

        if not outcome.success and not outcome.error:
            outcome.error = f"Action '{action}' failed"
        return outcome

    async def _run_composite(
        self,
        workflow_id: str,
        step: Step,
        requested: str,
        resolved: ResolvedAction,
        context: ExecutionContext,
    ) -> StepResult:
        intent = resolved.composite
        handler = COMPOSITE_HANDLERS[CompositePattern(intent.pattern)]
        expansion = handler(intent, context)

        for message in expansion.notices:
            await self.event_bus.publish(EventTopic.NOTICE, Notice(context.channel_id, message, workflow_id))

        details = {"pattern": intent.pattern, **expansion.details}
        result = StepResult(
            step_id=step.id,
            action=step.action,
            requested_action=requested,
            success=expansion.error is None,
            source=ResolutionSource.DYNAMIC,
            details=details,
            error=expansion.error,
        )
        if expansion.error is not None:
            return result

        dispatched = 0
        for action, parameters in expansion.actions:
            outcome = await self._dispatch(action, parameters, context)
            if not outcome.success:
                result.success = False
                result.error = outcome.error
                break
            dispatched += 1

        details["dispatched"] = dispatched
        return result
