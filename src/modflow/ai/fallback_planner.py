"""
Deterministic plan synthesis used when the generation backend is unavailable.

The planner walks :data:`FALLBACK_RULES`, an ordered table of
``(matcher, extractor)`` pairs. The first rule whose matcher fires on the
request text runs its extractor, which returns a typed intent record; the
record then renders itself into wire-format steps. Requests that match no
rule produce a single explanatory message step.

Rule order matters and is part of the contract:

1. repeated message (``write`` / ``send`` ... ``N times``)
2. timeout / mute
3. bulk delete (purge)
4. ban
5. kick
6. role grant / revoke
7. channel create / delete
8. nickname change
9. generic ``repeat``
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, List, Optional, Pattern, Tuple

from modflow.datatypes.plan_datatypes import DEFAULT_TOOL, ExecutionStrategy
from modflow.util.format_utils import (
    CHANNEL_MENTION_RE,
    ROLE_MENTION_RE,
    first_user_mention,
    format_duration,
    strip_mentions,
)
from modflow.util.logger import get_logger

logger = get_logger("fallback_planner")

DEFAULT_REPEAT_LIMIT = 5
PURGE_DEFAULT = 10
PURGE_MAX = 100
TIMEOUT_DEFAULT_SECONDS = 300
BAN_DELETE_DAYS_MAX = 7
DEFAULT_REASON = "Requested through bot command"
UNAVAILABLE_MESSAGE = (
    "The language model is unavailable right now. Please phrase the request more "
    'explicitly (for example: send "hello" 3 times) or try again later.'
)

_QUOTED_RE = re.compile(r"[\"']([^\"']+)[\"']")
_COUNT_RE = re.compile(r"(\d+)\s*(?:times?|x)\b", re.IGNORECASE)
_WRITE_CONTENT_RE = re.compile(
    r"\b(?:write|send)\s+(.*?)(?:\s+\d+\s*(?:times?|x)\b.*)?$", re.IGNORECASE | re.DOTALL
)
_REPEAT_CONTENT_RE = re.compile(
    r"\brepeat\s+(.*?)(?:\s+\d+\s*(?:times?|x)\b.*)?$", re.IGNORECASE | re.DOTALL
)
_NUMBERED_RE = re.compile(r"\bnumber(?:ed|s)?\b", re.IGNORECASE)
_INCREMENT_RE = re.compile(r"\bincrement(?:ing|al)?\b", re.IGNORECASE)
_DURATION_RE = re.compile(
    r"(\d+)\s*(seconds?|secs?|s|minutes?|mins?|m|hours?|hrs?|h|days?|d)\b", re.IGNORECASE
)
_REASON_RE = re.compile(r"reason[: ]+\"([^\"]+)\"", re.IGNORECASE)
_PURGE_COUNT_RE = re.compile(r"(\d+)\s*(?:messages?|msgs?)\b", re.IGNORECASE)
_DELETE_DAYS_RE = re.compile(r"delete[: ]+(\d+)", re.IGNORECASE)
_ROLE_ADD_RE = re.compile(r"\b(add|give|grant|assign)\b", re.IGNORECASE)
_ROLE_NAME_RE = re.compile(r"role[: ]+\"([^\"]+)\"", re.IGNORECASE)
_CHANNEL_CREATE_RE = re.compile(r"\b(create|add|make|new)\b", re.IGNORECASE)
_CHANNEL_DELETE_RE = re.compile(r"\b(delete|remove)\b", re.IGNORECASE)
_CHANNEL_NAME_RE = re.compile(r"name[: ]+\"([^\"]+)\"", re.IGNORECASE)
_VOICE_RE = re.compile(r"\bvoice\b", re.IGNORECASE)
_NICKNAME_TO_RE = re.compile(r"\bto\s+(\S+)", re.IGNORECASE)

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def _step(index: int, action: str, **params: Any) -> Dict[str, Any]:
    return {"id": f"s{index}", "tool": DEFAULT_TOOL, "params": {"action": action, **params}}


def _user_params(user_id: Optional[str]) -> Dict[str, Any]:
    return {"userId": user_id} if user_id else {}


def _who(user_id: Optional[str]) -> str:
    return f"<@{user_id}>" if user_id else "the member"


def _quoted(text: str) -> Optional[str]:
    match = _QUOTED_RE.search(text)
    return match.group(1) if match else None


def _reason(text: str) -> str:
    match = _REASON_RE.search(text)
    return match.group(1) if match else DEFAULT_REASON


def _count(text: str, default: int, limit: int) -> int:
    match = _COUNT_RE.search(text)
    if not match:
        return default
    return max(1, min(int(match.group(1)), limit))


# --------------------------
# Intent records
# --------------------------
class FallbackIntent:
    """Base for the typed records produced by extractors."""

    requires_approval: ClassVar[bool] = False

    def steps(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


@dataclass(slots=True)
class MessageRepeat(FallbackIntent):
    content: str
    count: int = 1
    numbered: bool = False
    incrementing: bool = False
    mention: Optional[str] = None

    def steps(self) -> List[Dict[str, Any]]:
        prefix = f"<@{self.mention}> " if self.mention else ""
        result = []
        for index in range(1, self.count + 1):
            if self.incrementing:
                text = f"{prefix}{self.content} {index}"
            elif self.numbered:
                text = f"{index}. {prefix}{self.content}"
            else:
                text = f"{prefix}{self.content}"
            result.append(_step(index, "message.create", content=text))
        return result


@dataclass(slots=True)
class TimeoutRequest(FallbackIntent):
    user_id: Optional[str]
    duration: int = TIMEOUT_DEFAULT_SECONDS
    reason: str = DEFAULT_REASON

    def steps(self) -> List[Dict[str, Any]]:
        return [
            _step(1, "member.timeout", **_user_params(self.user_id), duration=self.duration, reason=self.reason),
            _step(2, "message.create",
                  content=f"✅ {_who(self.user_id)} has been timed out for {format_duration(self.duration)}."),
        ]


@dataclass(slots=True)
class PurgeRequest(FallbackIntent):
    limit: int = PURGE_DEFAULT
    user_id: Optional[str] = None

    def steps(self) -> List[Dict[str, Any]]:
        suffix = f" from <@{self.user_id}>" if self.user_id else ""
        return [
            _step(1, "channel.purge", limit=self.limit, **_user_params(self.user_id)),
            _step(2, "message.create", content=f"✅ Cleared {self.limit} messages{suffix}."),
        ]


@dataclass(slots=True)
class BanRequest(FallbackIntent):
    requires_approval: ClassVar[bool] = True

    user_id: Optional[str]
    reason: str = DEFAULT_REASON
    delete_message_days: int = 0

    def steps(self) -> List[Dict[str, Any]]:
        return [
            _step(1, "member.ban", **_user_params(self.user_id), reason=self.reason,
                  deleteMessageDays=self.delete_message_days),
            _step(2, "message.create", content=f"✅ {_who(self.user_id)} has been banned from the server."),
        ]


@dataclass(slots=True)
class KickRequest(FallbackIntent):
    requires_approval: ClassVar[bool] = True

    user_id: Optional[str]
    reason: str = DEFAULT_REASON

    def steps(self) -> List[Dict[str, Any]]:
        return [
            _step(1, "member.kick", **_user_params(self.user_id), reason=self.reason),
            _step(2, "message.create", content=f"✅ {_who(self.user_id)} has been kicked from the server."),
        ]


@dataclass(slots=True)
class RoleChange(FallbackIntent):
    add: bool
    user_id: Optional[str] = None
    role_id: Optional[str] = None
    role_name: Optional[str] = None

    def steps(self) -> List[Dict[str, Any]]:
        role_params: Dict[str, Any] = {}
        if self.role_id:
            role_params["roleId"] = self.role_id
            label = f"<@&{self.role_id}>"
        else:
            if self.role_name:
                role_params["roleName"] = self.role_name
            label = f'"{self.role_name or "requested"}"'
        verb = f"Gave {label} to" if self.add else f"Removed {label} from"
        return [
            _step(1, "role.add" if self.add else "role.remove", **_user_params(self.user_id), **role_params),
            _step(2, "message.create", content=f"✅ {verb} {_who(self.user_id)}."),
        ]


@dataclass(slots=True)
class ChannelChange(FallbackIntent):
    operation: str
    name: str = "new-channel"
    channel_type: str = "text"
    channel_id: Optional[str] = None

    @property
    def requires_approval(self) -> bool:  # type: ignore[override]
        return self.operation == "delete"

    def steps(self) -> List[Dict[str, Any]]:
        if self.operation == "create":
            return [
                _step(1, "channel.create", name=self.name, type=self.channel_type),
                _step(2, "message.create", content=f'✅ Created channel "{self.name}".'),
            ]
        if self.operation == "delete":
            params = {"channelId": self.channel_id} if self.channel_id else {}
            return [
                _step(1, "channel.delete", **params),
                _step(2, "message.create", content="✅ Channel deleted."),
            ]
        return [_step(1, "message.create", content="❓ Please say whether the channel should be created or deleted.")]


@dataclass(slots=True)
class NicknameChange(FallbackIntent):
    user_id: Optional[str]
    nickname: str = "New Nickname"

    def steps(self) -> List[Dict[str, Any]]:
        return [
            _step(1, "member.nickname", **_user_params(self.user_id), nickname=self.nickname,
                  reason="Changed via bot command"),
            _step(2, "message.create",
                  content=f'✅ Changed the nickname of {_who(self.user_id)} to "{self.nickname}".'),
        ]


@dataclass(slots=True)
class UnrecognizedRequest(FallbackIntent):
    message: str = UNAVAILABLE_MESSAGE

    def steps(self) -> List[Dict[str, Any]]:
        return [_step(1, "message.create", content=self.message)]


# --------------------------
# Extractors
# --------------------------
def extract_message_repeat(text: str, repeat_limit: int) -> MessageRepeat:
    content = _quoted(text)
    if content is None:
        match = _WRITE_CONTENT_RE.search(text)
        content = strip_mentions(match.group(1)) if match else ""
    return MessageRepeat(
        content=content or "Hello!",
        count=_count(text, 1, repeat_limit),
        numbered=bool(_NUMBERED_RE.search(text)),
        incrementing=bool(_INCREMENT_RE.search(text)),
        mention=first_user_mention(text),
    )


def extract_timeout(text: str, repeat_limit: int) -> TimeoutRequest:
    duration = TIMEOUT_DEFAULT_SECONDS
    match = _DURATION_RE.search(text)
    if match:
        duration = int(match.group(1)) * _UNIT_SECONDS[match.group(2)[0].lower()]
    return TimeoutRequest(user_id=first_user_mention(text), duration=duration, reason=_reason(text))


def extract_purge(text: str, repeat_limit: int) -> PurgeRequest:
    match = _PURGE_COUNT_RE.search(text)
    limit = min(int(match.group(1)), PURGE_MAX) if match else PURGE_DEFAULT
    return PurgeRequest(limit=max(1, limit), user_id=first_user_mention(text))


def extract_ban(text: str, repeat_limit: int) -> BanRequest:
    match = _DELETE_DAYS_RE.search(text)
    days = min(int(match.group(1)), BAN_DELETE_DAYS_MAX) if match else 0
    return BanRequest(user_id=first_user_mention(text), reason=_reason(text), delete_message_days=days)


def extract_kick(text: str, repeat_limit: int) -> KickRequest:
    return KickRequest(user_id=first_user_mention(text), reason=_reason(text))


def extract_role(text: str, repeat_limit: int) -> RoleChange:
    role_match = ROLE_MENTION_RE.search(text)
    name_match = _ROLE_NAME_RE.search(text)
    return RoleChange(
        add=bool(_ROLE_ADD_RE.search(text)),
        user_id=first_user_mention(text),
        role_id=role_match.group(1) if role_match else None,
        role_name=None if role_match else (name_match.group(1) if name_match else _quoted(text)),
    )


def extract_channel(text: str, repeat_limit: int) -> ChannelChange:
    if _CHANNEL_CREATE_RE.search(text):
        name_match = _CHANNEL_NAME_RE.search(text)
        name = name_match.group(1) if name_match else (_quoted(text) or "new-channel")
        return ChannelChange(
            operation="create",
            name=name,
            channel_type="voice" if _VOICE_RE.search(text) else "text",
        )
    if _CHANNEL_DELETE_RE.search(text):
        channel_match = CHANNEL_MENTION_RE.search(text)
        return ChannelChange(operation="delete", channel_id=channel_match.group(1) if channel_match else None)
    return ChannelChange(operation="unspecified")


def extract_nickname(text: str, repeat_limit: int) -> NicknameChange:
    nickname = _quoted(text)
    if nickname is None:
        match = _NICKNAME_TO_RE.search(text)
        nickname = match.group(1) if match else "New Nickname"
    return NicknameChange(user_id=first_user_mention(text), nickname=nickname)


def extract_repeat(text: str, repeat_limit: int) -> MessageRepeat:
    content = _quoted(text)
    if content is None:
        match = _REPEAT_CONTENT_RE.search(text)
        content = strip_mentions(match.group(1)) if match else ""
    return MessageRepeat(
        content=content or "Repeat message",
        count=_count(text, 3, repeat_limit),
        numbered=bool(_NUMBERED_RE.search(text)),
    )


@dataclass(frozen=True, slots=True)
class FallbackRule:
    name: str
    matcher: Pattern[str]
    extractor: Callable[[str, int], FallbackIntent]


FALLBACK_RULES: Tuple[FallbackRule, ...] = (
    FallbackRule("message_repeat", re.compile(r"\b(write|send)\b", re.IGNORECASE), extract_message_repeat),
    FallbackRule("timeout", re.compile(r"\b(timeout|time out|mute|silence)\b", re.IGNORECASE), extract_timeout),
    FallbackRule(
        "purge",
        re.compile(r"\b(purge|clear|clean)\b|\bdelete\b.*\bmessages?\b", re.IGNORECASE | re.DOTALL),
        extract_purge,
    ),
    FallbackRule("ban", re.compile(r"\bban\b", re.IGNORECASE), extract_ban),
    FallbackRule("kick", re.compile(r"\bkick\b", re.IGNORECASE), extract_kick),
    FallbackRule("role", re.compile(r"\broles?\b|<@&\d+>", re.IGNORECASE), extract_role),
    FallbackRule("channel", re.compile(r"\bchannel\b", re.IGNORECASE), extract_channel),
    FallbackRule("nickname", re.compile(r"\b(nick|nickname|rename)\b", re.IGNORECASE), extract_nickname),
    FallbackRule("repeat", re.compile(r"\brepeat\b", re.IGNORECASE), extract_repeat),
)


def match_intent(user_text: str, repeat_limit: int = DEFAULT_REPEAT_LIMIT) -> FallbackIntent:
    """Run the first matching rule and return its intent record."""
    for rule in FALLBACK_RULES:
        if rule.matcher.search(user_text):
            logger.debug("[FALLBACK] Rule '%s' matched", rule.name)
            return rule.extractor(user_text, repeat_limit)
    return UnrecognizedRequest()


def synthesize_plan(user_text: str, repeat_limit: int = DEFAULT_REPEAT_LIMIT) -> Dict[str, Any]:
    """Build a wire-format plan for ``user_text`` without calling the backend.

    Args:
        user_text: The raw request.
        repeat_limit: Upper bound for repeated message counts.

    Returns:
        A plan in wire format, always with the sequential strategy.
    """
    intent = match_intent(user_text, repeat_limit)
    plan: Dict[str, Any] = {
        "steps": intent.steps(),
        "meta": {"strategy": ExecutionStrategy.SEQUENTIAL.value},
    }
    if intent.requires_approval:
        plan["requiresApproval"] = True
    logger.info(
        "[FALLBACK] Synthesized %s plan with %d step(s)", type(intent).__name__, len(plan["steps"])
    )
    return plan
