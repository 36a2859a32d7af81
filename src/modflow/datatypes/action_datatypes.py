"""
Action resolution and step outcome data structures.

This module defines the ResolutionSource enum, the ResolvedAction produced by
the action resolver, the CompositeIntent synthesized from composite request
patterns, and the StepResult recorded for every executed step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ResolutionSource(Enum):
    """How a raw action identifier was mapped to a capability."""

    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    DYNAMIC = "dynamic"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class CompositeIntent:
    """Parameters synthesized from the user's text by a composite pattern.

    Attributes:
        pattern: Value of the matched ``CompositePattern``.
        parameters: Pattern specific parameters (counts, units, sources...).
    """

    pattern: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResolvedAction:
    """Result of resolving a raw action identifier.

    Attributes:
        canonical: Canonical action identifier, a ``composite.*`` label for
            dynamic matches, or an empty string when nothing matched.
        source: Which resolution path produced the match.
        confidence: Score in [0, 1].
        composite: Synthesized intent when ``source`` is DYNAMIC.
    """

    canonical: str
    source: ResolutionSource
    confidence: float
    composite: Optional[CompositeIntent] = None

    @property
    def resolved(self) -> bool:
        return self.source is not ResolutionSource.NONE

    @classmethod
    def unresolved(cls) -> "ResolvedAction":
        return cls(canonical="", source=ResolutionSource.NONE, confidence=0.0)


@dataclass(slots=True)
class StepResult:
    """Outcome of one plan step.

    Attributes:
        step_id: Id of the step this result belongs to.
        action: Identifier that was actually executed (post-correction).
        requested_action: Identifier as it appeared in the generated plan.
        success: Whether the step succeeded.
        source: Resolution path used for ``action``.
        details: Executor supplied details (message ids, counts...).
        error: Error text for failed steps, surfaced verbatim.
    """

    step_id: str
    action: str
    requested_action: str
    success: bool
    source: ResolutionSource = ResolutionSource.EXACT
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
