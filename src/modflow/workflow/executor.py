"""
Contract between the workflow runner and whatever performs platform actions.

The runner only knows this interface: an executor receives a canonical
action id, the step parameters and the :class:`ExecutionContext` of the
originating request, and answers with an :class:`ExecutionOutcome` (or a plain
mapping with a ``success`` key, which is coerced).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable


@dataclass(frozen=True, slots=True)
class MentionedMember:
    """A member mentioned in the request text."""

    user_id: str
    username: str
    nickname: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.username


@dataclass(slots=True)
class ExecutionContext:
    """Where a request came from and who issued it.

    Attributes:
        requester_id: Id of the user who issued the request.
        channel_id: Channel the request was posted in.
        guild_id: Guild the request was posted in.
        content: The request text with the command prefix removed.
        mentioned_members: Members mentioned in the request, in order.
        is_admin: Whether the requester has administrator permissions.
        origin: Platform object the request arrived on (e.g. a
            ``discord.Message``). Opaque to the core pipeline.
    """

    requester_id: str
    channel_id: Optional[str] = None
    guild_id: Optional[str] = None
    content: str = ""
    mentioned_members: List[MentionedMember] = field(default_factory=list)
    is_admin: bool = False
    origin: Any = None


@dataclass(slots=True)
class ExecutionOutcome:
    success: bool
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def coerce(cls, value: Union["ExecutionOutcome", Mapping[str, Any], None]) -> "ExecutionOutcome":
        """Normalize whatever an executor returned into an outcome."""
        if isinstance(value, ExecutionOutcome):
            return value
        if isinstance(value, Mapping):
            details = {key: val for key, val in value.items() if key not in ("success", "error")}
            error = value.get("error")
            return cls(
                success=bool(value.get("success", False)),
                details=details,
                error=str(error) if error is not None else None,
            )
        return cls(success=False, error=f"Executor returned an unexpected value: {value!r}")


@runtime_checkable
class ActionExecutor(Protocol):
    async def execute(
        self,
        action: str,
        parameters: Mapping[str, Any],
        context: ExecutionContext,
    ) -> Union[ExecutionOutcome, Mapping[str, Any]]:
        ...
