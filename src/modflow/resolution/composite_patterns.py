"""
Composite request patterns served without a canonical action.

Some requests cannot be expressed as one catalog action, e.g. "time out
@user for as many minutes as their name has letters". When a step's action
cannot be resolved, the resolver tests the original request text against
:data:`COMPOSITE_MATCHERS` in order. A match yields a
:class:`CompositeIntent`; at execution time the runner looks up the
pattern's expander in :data:`COMPOSITE_HANDLERS` and dispatches the primitive
actions it returns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from modflow.datatypes.action_datatypes import CompositeIntent

if TYPE_CHECKING:
    from modflow.workflow.executor import ExecutionContext

DEFAULT_REPEAT_LIMIT = 10

_NAME_LENGTH_RE = re.compile(
    r"name\s+(?:has|contains)\s+(?:how many|what number of)\s+letters", re.IGNORECASE
)
_TIMEOUT_WORD_RE = re.compile(r"\b(?:timeout|time out|mute)\b", re.IGNORECASE)
_REPEAT_RE = re.compile(r"(.+)\s+(?:repeat|say)\s+(\d+)(?:\s+times?)?", re.IGNORECASE | re.DOTALL)
_LEADING_ADDRESS_RE = re.compile(r"^(?:<@!?\d+>|modflow)\s+", re.IGNORECASE)

_UNIT_SECONDS = {"seconds": 1, "minutes": 60, "hours": 3600}


class CompositePattern(Enum):
    NAME_LENGTH_TIMEOUT = "name_length_timeout"
    REPEAT_MESSAGE = "repeat_message"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class CompositeExpansion:
    """Primitive actions computed for a composite intent.

    Attributes:
        actions: ``(canonical_action, parameters)`` pairs, dispatched in order.
        notices: Informational messages for the requester.
        details: Summary recorded on the step result.
        error: Set when the intent cannot be carried out; nothing is dispatched.
    """

    actions: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)
    notices: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


# --------------------------
# Matchers
# --------------------------
def _match_name_length_timeout(text: str, repeat_limit: int) -> Optional[CompositeIntent]:
    if not (_NAME_LENGTH_RE.search(text) and _TIMEOUT_WORD_RE.search(text)):
        return None
    lowered = text.lower()
    if "minute" in lowered:
        unit = "minutes"
    elif "hour" in lowered:
        unit = "hours"
    else:
        unit = "seconds"
    return CompositeIntent(
        pattern=CompositePattern.NAME_LENGTH_TIMEOUT.value,
        parameters={
            "name_source": "nickname" if "nickname" in lowered else "username",
            "strip_spaces": "without spaces" in lowered,
            "unit": unit,
        },
    )


def _match_repeat_message(text: str, repeat_limit: int) -> Optional[CompositeIntent]:
    match = _REPEAT_RE.search(text)
    if not match:
        return None
    content = _LEADING_ADDRESS_RE.sub("", match.group(1).strip()).strip()
    if not content:
        return None
    requested = int(match.group(2))
    return CompositeIntent(
        pattern=CompositePattern.REPEAT_MESSAGE.value,
        parameters={
            "content": content,
            "requested": requested,
            "count": max(0, min(requested, repeat_limit)),
            "limit": repeat_limit,
            "numbered": "number" in text.lower(),
        },
    )


COMPOSITE_MATCHERS: Tuple[Tuple[CompositePattern, Callable[[str, int], Optional[CompositeIntent]]], ...] = (
    (CompositePattern.NAME_LENGTH_TIMEOUT, _match_name_length_timeout),
    (CompositePattern.REPEAT_MESSAGE, _match_repeat_message),
)


def match_composite(user_text: Optional[str], repeat_limit: int = DEFAULT_REPEAT_LIMIT) -> Optional[CompositeIntent]:
    """Return the intent of the first pattern matching ``user_text``, if any."""
    if not user_text:
        return None
    for _, matcher in COMPOSITE_MATCHERS:
        intent = matcher(user_text, repeat_limit)
        if intent is not None:
            return intent
    return None


# --------------------------
# Expanders
# --------------------------
def expand_name_length_timeout(intent: CompositeIntent, context: "ExecutionContext") -> CompositeExpansion:
    if not context.mentioned_members:
        message = "❌ You need to mention a user for this command."
        return CompositeExpansion(notices=[message], error="No user mention found")

    member = context.mentioned_members[0]
    params = intent.parameters
    name = member.display_name if params.get("name_source") == "nickname" else member.username
    if params.get("strip_spaces"):
        name = re.sub(r"\s+", "", name)

    letters = len(name)
    unit = params.get("unit", "seconds")
    duration = letters * _UNIT_SECONDS.get(unit, 1)

    return CompositeExpansion(
        actions=[
            ("member.timeout", {
                "userId": member.user_id,
                "duration": duration,
                "reason": "Timeout based on name length",
            }),
            ("message.create", {
                "content": (
                    f"✅ <@{member.user_id}> has **{letters}** letters in their name. "
                    f"Applied timeout for **{letters} {unit}**."
                ),
            }),
        ],
        details={"userId": member.user_id, "letterCount": letters, "duration": duration, "unit": unit},
    )


def expand_repeat_message(intent: CompositeIntent, context: "ExecutionContext") -> CompositeExpansion:
    params = intent.parameters
    count = int(params.get("count", 0))
    content = str(params.get("content", ""))
    numbered = bool(params.get("numbered"))

    notices = []
    if int(params.get("requested", count)) > count:
        notices.append(f"⚠️ I can only repeat up to {count} times. Will repeat {count} times.")

    actions = [
        ("message.create", {"content": f"{index}. {content}" if numbered else content})
        for index in range(1, count + 1)
    ]
    return CompositeExpansion(
        actions=actions,
        notices=notices,
        details={"content": content, "repeatCount": count, "numbered": numbered},
    )


COMPOSITE_HANDLERS: Dict[CompositePattern, Callable[[CompositeIntent, "ExecutionContext"], CompositeExpansion]] = {
    CompositePattern.NAME_LENGTH_TIMEOUT: expand_name_length_timeout,
    CompositePattern.REPEAT_MESSAGE: expand_repeat_message,
}
