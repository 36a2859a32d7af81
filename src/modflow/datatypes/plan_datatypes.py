"""
Plan and step data structures.

A :class:`Plan` is the structured, multi-step description of platform actions
produced from a natural-language request, either by the generation backend or
by the deterministic fallback planner. Plans travel on the wire as::

    {"steps": [{"id": "s1", "tool": "discord.request",
                "params": {"action": "message.create", "content": "hi"}}],
     "meta": {"strategy": "sequential"},
     "requiresApproval": false}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from modflow.core.errors import PlanValidationError

DEFAULT_TOOL = "discord.request"


class ExecutionStrategy(Enum):
    """How the steps of a plan are scheduled."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """The two prompts of a single generation call."""

    system_prompt: str
    user_prompt: str


@dataclass(slots=True)
class GenerationResult:
    """Text produced by the generation backend (or the fallback planner).

    Attributes:
        raw_text: JSON text, repaired when ``repaired`` is True.
        repaired: Whether the self-healing pass changed the text.
        attempts: Number of backend calls issued for this result.
        used_fallback: True when the text was synthesized without the backend.
    """

    raw_text: str
    repaired: bool = False
    attempts: int = 0
    used_fallback: bool = False


@dataclass(slots=True)
class Step:
    """One unit of work within a plan.

    ``action`` holds the raw identifier as generated. The workflow runner
    overwrites it with the canonical identifier right before dispatch, which
    is the only mutation a step ever sees.
    """

    id: str
    action: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    critical: bool = False
    tool: str = DEFAULT_TOOL

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "tool": self.tool,
            "params": {"action": self.action, **self.parameters},
        }
        if self.critical:
            payload["critical"] = True
        return payload


@dataclass(slots=True)
class Plan:
    """Ordered steps plus the strategy used to run them.

    Raises:
        PlanValidationError: If two steps share an id.
    """

    steps: List[Step]
    strategy: str = ExecutionStrategy.SEQUENTIAL.value
    requires_approval: bool = False

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise PlanValidationError(f"Duplicate step id '{step.id}' in plan")
            seen.add(step.id)

    @property
    def execution_strategy(self) -> ExecutionStrategy:
        """Return the strategy as an enum member.

        Raises:
            PlanValidationError: If the strategy is not a recognized value.
        """
        try:
            return ExecutionStrategy(str(self.strategy).lower())
        except ValueError:
            raise PlanValidationError(f"Unknown execution strategy: {self.strategy}") from None

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "steps": [step.to_wire() for step in self.steps],
            "meta": {"strategy": str(self.strategy)},
        }
        if self.requires_approval:
            payload["requiresApproval"] = True
        return payload

    def render(self) -> str:
        """Pretty-printed wire form, used when showing a plan to a human."""
        return json.dumps(self.to_wire(), indent=2, ensure_ascii=False)
