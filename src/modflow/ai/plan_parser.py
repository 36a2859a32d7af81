"""Turn generated plan JSON into validated :class:`Plan` objects.

Public exports
- plan_schema: dict - JSON schema of the plan wire format
- parse_plan(source, max_steps=None) -> Plan
    Parse a :class:`GenerationResult` (or raw JSON text) into a plan.

Notes
- Structural validation is done with ``jsonschema``; schema violations are
  reported as :class:`ParseError`, invariant violations (duplicate ids,
  unknown strategy, too many steps) as :class:`PlanValidationError`.
- Steps without an ``id`` get positional ids (``s1``, ``s2``...). Numeric
  ids are coerced to strings.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft7Validator

from modflow.core.errors import ParseError, PlanValidationError
from modflow.datatypes.plan_datatypes import (
    DEFAULT_TOOL,
    ExecutionStrategy,
    GenerationResult,
    Plan,
    Step,
)
from modflow.util.logger import get_logger

logger = get_logger("plan_parser")

plan_schema = {
    "type": "object",
    "properties": {
        "steps": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": ["string", "integer"]},
                    "tool": {"type": "string"},
                    "critical": {"type": "boolean"},
                    "params": {
                        "type": "object",
                        "properties": {
                            "action": {"type": "string", "minLength": 1},
                        },
                        "required": ["action"],
                    },
                },
                "required": ["params"],
            },
        },
        "meta": {
            "type": "object",
            "properties": {
                "strategy": {"type": "string"},
            },
        },
        "requiresApproval": {"type": "boolean"},
    },
    "required": ["steps"],
}
"""JSON schema of the plan wire format."""

_plan_validator = Draft7Validator(plan_schema)


def _build_step(index: int, payload: Dict[str, Any]) -> Step:
    params = dict(payload["params"])
    action = str(params.pop("action")).strip()
    step_id = payload.get("id")
    return Step(
        id=str(step_id) if step_id not in (None, "") else f"s{index}",
        action=action,
        parameters=params,
        critical=bool(payload.get("critical", False)),
        tool=str(payload.get("tool") or DEFAULT_TOOL),
    )


def parse_plan(source: Union[GenerationResult, str], max_steps: Optional[int] = None) -> Plan:
    """Parse generated JSON into a plan.

    Parameters
    ----------
    source:
        A generation result or the raw JSON text of a plan.
    max_steps:
        Upper bound on the number of steps; ``None`` disables the check.

    Returns
    -------
    Plan
        The validated plan. Its strategy is guaranteed to be recognized.

    Raises
    ------
    ParseError
        If the text is not JSON or does not have the plan shape.
    PlanValidationError
        If the plan violates an invariant.
    """
    text = source.raw_text if isinstance(source, GenerationResult) else source

    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.error("[PLAN PARSER] Response is not valid JSON: %s", exc)
        raise ParseError(f"Response is not valid JSON: {exc}") from exc

    errors = sorted(_plan_validator.iter_errors(payload), key=lambda err: [str(part) for part in err.path])
    if errors:
        first = errors[0]
        location = "/".join(str(part) for part in first.path) or "<root>"
        logger.error("[PLAN PARSER] Plan failed schema validation at %s: %s", location, first.message)
        raise ParseError(f"Invalid plan at {location}: {first.message}")

    raw_steps: List[Dict[str, Any]] = payload["steps"]
    if max_steps is not None and len(raw_steps) > max_steps:
        raise PlanValidationError(f"Plan has {len(raw_steps)} steps; the maximum is {max_steps}")

    strategy = str((payload.get("meta") or {}).get("strategy") or ExecutionStrategy.SEQUENTIAL.value)
    plan = Plan(
        steps=[_build_step(index, raw) for index, raw in enumerate(raw_steps, start=1)],
        strategy=strategy.lower(),
        requires_approval=bool(payload.get("requiresApproval", False)),
    )
    # Unknown strategies are rejected before anything is registered or run.
    _ = plan.execution_strategy

    logger.debug(
        "[PLAN PARSER] Parsed plan: %d step(s), strategy=%s, approval=%s",
        len(plan.steps),
        plan.strategy,
        plan.requires_approval,
    )
    return plan
