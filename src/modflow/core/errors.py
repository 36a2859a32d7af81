"""
Error taxonomy for the command execution pipeline.

Every error raised by modflow derives from :class:`ModflowError`, so callers
at the Discord boundary can contain a whole request with one ``except``.
Per-step errors (:class:`ResolutionError`, :class:`ExecutionError`) are
normally captured into failed step results instead of propagating.
"""

from __future__ import annotations


class ModflowError(Exception):
    """Base class for all modflow errors."""


class GenerationError(ModflowError):
    """The generation backend was unreachable or errored after every retry."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class ParseError(ModflowError):
    """Generated text could not be turned into a usable plan, even after repair."""


class PlanValidationError(ParseError):
    """The plan parsed but violates a structural invariant (ids, strategy, size)."""


class ResolutionError(ModflowError):
    """No canonical, alias, fuzzy or composite match exists for an action."""

    def __init__(self, raw_action: str) -> None:
        super().__init__(f"Unknown action: '{raw_action}'")
        self.raw_action = raw_action


class ExecutionError(ModflowError):
    """The action executor reported a failure or raised while running a step."""


class ApprovalError(ModflowError):
    """A plan was discarded at the approval gate before any side effect."""


class ApprovalRejected(ApprovalError):
    """The requester explicitly rejected the proposed plan."""


class ApprovalTimeout(ApprovalError):
    """No acknowledgement arrived before the approval window closed."""
