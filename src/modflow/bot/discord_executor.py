"""
Discord implementation of the :class:`ActionExecutor` contract.

Each canonical action maps to one coroutine that receives the originating
``discord.Message`` (from ``ExecutionContext.origin``), the step parameters
and the context. Parameter problems raise :class:`ExecutionError` inside the
handler; ``execute`` turns those and Discord API errors into failed outcomes
so the workflow runner only sees genuinely unexpected exceptions.
"""

from __future__ import annotations

import datetime
import re
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import discord

from modflow.core.errors import ExecutionError
from modflow.util.logger import get_logger
from modflow.workflow.executor import ExecutionContext, ExecutionOutcome

logger = get_logger("discord_executor")

PURGE_DEFAULT = 10
PURGE_MAX = 100
BULK_DELETE_WINDOW = datetime.timedelta(days=14)
TIMEOUT_DEFAULT_SECONDS = 300
TIMEOUT_MAX_SECONDS = 28 * 24 * 60 * 60
BAN_DELETE_DAYS_MAX = 7
DEFAULT_REASON = "Requested through modflow"

_ID_RE = re.compile(r"(\d{5,})")
_SELF_REFERENCE_RE = re.compile(r"\b(me|myself|self)\b", re.IGNORECASE)

Handler = Callable[[discord.Message, Dict[str, Any], ExecutionContext], Awaitable[Dict[str, Any]]]


def _snowflake(value: Any, name: str) -> int:
    """Parse an id that may arrive as int, digits, or a mention token."""
    if isinstance(value, int):
        return value
    match = _ID_RE.search(str(value or ""))
    if not match:
        raise ExecutionError(f"Invalid {name}: {value!r}")
    return int(match.group(1))


def _require(params: Mapping[str, Any], key: str, action: str) -> Any:
    value = params.get(key)
    if value in (None, ""):
        raise ExecutionError(f"Missing {key} in {action} step")
    return value


def _clamp(value: Any, default: int, low: int, high: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = default
    return max(low, min(number, high))


class DiscordActionExecutor:
    """Perform canonical actions in the guild a request came from."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {
            "message.create": self._message_create,
            "message.edit": self._message_edit,
            "message.delete": self._message_delete,
            "message.react": self._message_react,
            "message.pin": self._message_pin,
            "message.unpin": self._message_unpin,
            "channel.create": self._channel_create,
            "channel.delete": self._channel_delete,
            "channel.purge": self._channel_purge,
            "channel.lock": self._channel_lock,
            "channel.unlock": self._channel_unlock,
            "member.timeout": self._member_timeout,
            "member.kick": self._member_kick,
            "member.ban": self._member_ban,
            "member.unban": self._member_unban,
            "member.nickname": self._member_nickname,
            "role.add": self._role_add,
            "role.remove": self._role_remove,
        }

    @property
    def supported_actions(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    async def execute(
        self,
        action: str,
        parameters: Mapping[str, Any],
        context: ExecutionContext,
    ) -> ExecutionOutcome:
        handler = self._handlers.get(action)
        if handler is None:
            return ExecutionOutcome(success=False, error=f"Unsupported action: {action}")

        message = context.origin
        if message is None or getattr(message, "guild", None) is None:
            return ExecutionOutcome(success=False, error=f"{action} needs a guild message to act on")

        try:
            details = await handler(message, dict(parameters), context)
        except ExecutionError as exc:
            logger.warning("[EXECUTOR] %s rejected: %s", action, exc)
            return ExecutionOutcome(success=False, error=str(exc))
        except discord.Forbidden:
            logger.warning("[EXECUTOR] Missing permissions for %s in guild %s", action, message.guild.id)
            return ExecutionOutcome(success=False, error=f"Missing permissions for {action}")
        except discord.NotFound as exc:
            return ExecutionOutcome(success=False, error=f"Not found while running {action}: {exc.text}")
        except discord.HTTPException as exc:
            logger.error("[EXECUTOR] Discord API error for %s: %s", action, exc)
            return ExecutionOutcome(success=False, error=f"Discord API error: {exc}")

        logger.info("[EXECUTOR] %s succeeded in guild %s", action, message.guild.id)
        return ExecutionOutcome(success=True, details=details)

    # --------------------------
    # Lookups
    # --------------------------
    @staticmethod
    def _channel(message: discord.Message, params: Mapping[str, Any]):
        channel_id = params.get("channelId")
        if channel_id in (None, ""):
            return message.channel
        channel = message.guild.get_channel(_snowflake(channel_id, "channelId"))
        if channel is None:
            raise ExecutionError(f"Channel {channel_id} not found")
        return channel

    @staticmethod
    def _user_id(params: Mapping[str, Any], context: ExecutionContext, action: str) -> int:
        if params.get("userId") not in (None, ""):
            return _snowflake(params["userId"], "userId")
        self_reference = _SELF_REFERENCE_RE.search(context.content or "")
        if action.startswith("role.") and self_reference and context.requester_id:
            return int(context.requester_id)
        if context.mentioned_members:
            return int(context.mentioned_members[0].user_id)
        raise ExecutionError(f"Missing userId in {action} step")

    async def _member(self, guild: discord.Guild, user_id: int) -> discord.Member:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.NotFound:
            raise ExecutionError(f"Member {user_id} not found") from None

    @staticmethod
    async def _target_message(message: discord.Message, params: Mapping[str, Any], channel) -> discord.Message:
        message_id = params.get("messageId")
        if message_id in (None, ""):
            return message
        return await channel.fetch_message(_snowflake(message_id, "messageId"))

    @staticmethod
    def _role(guild: discord.Guild, params: Mapping[str, Any], action: str) -> discord.Role:
        if params.get("roleId") not in (None, ""):
            role = guild.get_role(_snowflake(params["roleId"], "roleId"))
            if role is None:
                raise ExecutionError(f"Role {params['roleId']} not found")
            return role
        role_name = params.get("roleName")
        if role_name:
            wanted = str(role_name).lower()
            role = next((r for r in guild.roles if r.name.lower() == wanted), None)
            if role is None:
                raise ExecutionError(f'Role named "{role_name}" not found')
            return role
        raise ExecutionError(f"Missing roleId in {action} step")

    # --------------------------
    # Message actions
    # --------------------------
    async def _message_create(self, message, params, context) -> Dict[str, Any]:
        content = str(_require(params, "content", "message.create"))
        channel = self._channel(message, params)
        sent = await channel.send(content[:2000])
        return {"messageId": str(sent.id), "channelId": str(channel.id)}

    async def _message_edit(self, message, params, context) -> Dict[str, Any]:
        content = str(_require(params, "content", "message.edit"))
        _require(params, "messageId", "message.edit")
        channel = self._channel(message, params)
        target = await self._target_message(message, params, channel)
        await target.edit(content=content[:2000])
        return {"messageId": str(target.id)}

    async def _message_delete(self, message, params, context) -> Dict[str, Any]:
        _require(params, "messageId", "message.delete")
        channel = self._channel(message, params)
        target = await self._target_message(message, params, channel)
        await target.delete(reason=params.get("reason") or DEFAULT_REASON)
        return {"messageId": str(target.id)}

    async def _message_react(self, message, params, context) -> Dict[str, Any]:
        emoji = str(_require(params, "emoji", "message.react"))
        channel = self._channel(message, params)
        target = await self._target_message(message, params, channel)
        await target.add_reaction(emoji)
        return {"messageId": str(target.id), "emoji": emoji}

    async def _message_pin(self, message, params, context) -> Dict[str, Any]:
        channel = self._channel(message, params)
        target = await self._target_message(message, params, channel)
        await target.pin(reason=params.get("reason") or DEFAULT_REASON)
        return {"messageId": str(target.id)}

    async def _message_unpin(self, message, params, context) -> Dict[str, Any]:
        channel = self._channel(message, params)
        target = await self._target_message(message, params, channel)
        await target.unpin(reason=params.get("reason") or DEFAULT_REASON)
        return {"messageId": str(target.id)}

    # --------------------------
    # Channel actions
    # --------------------------
    async def _channel_create(self, message, params, context) -> Dict[str, Any]:
        guild = message.guild
        name = str(params.get("name") or "new-channel")
        reason = params.get("reason") or DEFAULT_REASON
        channel_type = str(params.get("type") or "text").lower()
        if "voice" in channel_type:
            channel = await guild.create_voice_channel(name, reason=reason)
        else:
            channel = await guild.create_text_channel(name, topic=params.get("topic"), reason=reason)
        return {"channelId": str(channel.id), "name": channel.name}

    async def _channel_delete(self, message, params, context) -> Dict[str, Any]:
        _require(params, "channelId", "channel.delete")
        channel = self._channel(message, params)
        await channel.delete(reason=params.get("reason") or DEFAULT_REASON)
        return {"channelId": str(channel.id)}

    async def _channel_purge(self, message, params, context) -> Dict[str, Any]:
        channel = self._channel(message, params)
        limit = _clamp(params.get("limit", params.get("count")), PURGE_DEFAULT, 1, PURGE_MAX)
        author_id: Optional[int] = None
        if params.get("userId") not in (None, ""):
            author_id = _snowflake(params["userId"], "userId")

        def check(candidate: discord.Message) -> bool:
            return candidate.id != message.id and (author_id is None or candidate.author.id == author_id)

        # Bulk delete only accepts messages younger than 14 days.
        cutoff = discord.utils.utcnow() - BULK_DELETE_WINDOW
        deleted = await channel.purge(limit=limit, check=check, after=cutoff, bulk=True)
        return {"deleted": len(deleted), "channelId": str(channel.id)}

    async def _set_send_permission(self, message, params, allowed: Optional[bool]) -> Dict[str, Any]:
        channel = self._channel(message, params)
        default_role = message.guild.default_role
        overwrite = channel.overwrites_for(default_role)
        overwrite.send_messages = allowed
        await channel.set_permissions(default_role, overwrite=overwrite, reason=params.get("reason") or DEFAULT_REASON)
        return {"channelId": str(channel.id)}

    async def _channel_lock(self, message, params, context) -> Dict[str, Any]:
        return await self._set_send_permission(message, params, False)

    async def _channel_unlock(self, message, params, context) -> Dict[str, Any]:
        return await self._set_send_permission(message, params, None)

    # --------------------------
    # Member actions
    # --------------------------
    async def _member_timeout(self, message, params, context) -> Dict[str, Any]:
        member = await self._member(message.guild, self._user_id(params, context, "member.timeout"))
        seconds = _clamp(params.get("duration"), TIMEOUT_DEFAULT_SECONDS, 1, TIMEOUT_MAX_SECONDS)
        until = discord.utils.utcnow() + datetime.timedelta(seconds=seconds)
        await member.timeout(until, reason=params.get("reason") or DEFAULT_REASON)
        return {"userId": str(member.id), "duration": seconds}

    async def _member_kick(self, message, params, context) -> Dict[str, Any]:
        member = await self._member(message.guild, self._user_id(params, context, "member.kick"))
        await message.guild.kick(member, reason=params.get("reason") or DEFAULT_REASON)
        return {"userId": str(member.id)}

    async def _member_ban(self, message, params, context) -> Dict[str, Any]:
        user_id = self._user_id(params, context, "member.ban")
        days = _clamp(params.get("deleteMessageDays"), 0, 0, BAN_DELETE_DAYS_MAX)
        await message.guild.ban(
            discord.Object(id=user_id),
            reason=params.get("reason") or DEFAULT_REASON,
            delete_message_seconds=days * 24 * 60 * 60,
        )
        return {"userId": str(user_id), "deleteMessageDays": days}

    async def _member_unban(self, message, params, context) -> Dict[str, Any]:
        user_id = _snowflake(_require(params, "userId", "member.unban"), "userId")
        await message.guild.unban(discord.Object(id=user_id), reason=params.get("reason") or DEFAULT_REASON)
        return {"userId": str(user_id)}

    async def _member_nickname(self, message, params, context) -> Dict[str, Any]:
        member = await self._member(message.guild, self._user_id(params, context, "member.nickname"))
        nickname = params.get("nickname", params.get("nick"))
        if nickname is None:
            raise ExecutionError("Missing nickname in member.nickname step")
        await member.edit(nick=str(nickname)[:32] or None, reason=params.get("reason") or DEFAULT_REASON)
        return {"userId": str(member.id), "nickname": nickname}

    # --------------------------
    # Role actions
    # --------------------------
    async def _role_add(self, message, params, context) -> Dict[str, Any]:
        role = self._role(message.guild, params, "role.add")
        member = await self._member(message.guild, self._user_id(params, context, "role.add"))
        await member.add_roles(role, reason=params.get("reason") or DEFAULT_REASON)
        return {"userId": str(member.id), "roleId": str(role.id)}

    async def _role_remove(self, message, params, context) -> Dict[str, Any]:
        role = self._role(message.guild, params, "role.remove")
        member = await self._member(message.guild, self._user_id(params, context, "role.remove"))
        await member.remove_roles(role, reason=params.get("reason") or DEFAULT_REASON)
        return {"userId": str(member.id), "roleId": str(role.id)}
