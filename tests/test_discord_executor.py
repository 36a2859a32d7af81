"""Tests for the Discord action executor."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from modflow.bot import discord_executor
from modflow.bot.discord_executor import DiscordActionExecutor
from modflow.resolution.capabilities import CANONICAL_ACTIONS
from modflow.workflow.executor import ExecutionContext, MentionedMember

MEMBER_ID = 123456789
REQUESTER_ID = 777777777


def _member(user_id=MEMBER_ID):
    member = MagicMock()
    member.id = user_id
    member.timeout = AsyncMock()
    member.edit = AsyncMock()
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


@pytest.fixture()
def message():
    channel = MagicMock()
    channel.id = 10
    channel.send = AsyncMock(return_value=SimpleNamespace(id=555))
    channel.purge = AsyncMock(return_value=[object(), object(), object()])
    channel.set_permissions = AsyncMock()
    channel.overwrites_for = MagicMock(return_value=SimpleNamespace(send_messages=None))

    guild = MagicMock()
    guild.id = 1
    guild.get_member = MagicMock(side_effect=lambda user_id: _member(user_id))
    guild.kick = AsyncMock()
    guild.ban = AsyncMock()
    guild.unban = AsyncMock()
    guild.roles = [SimpleNamespace(name="Member", id=42)]

    msg = MagicMock()
    msg.id = 999
    msg.guild = guild
    msg.channel = channel
    return msg


def _context(message, content="", mentions=()):
    return ExecutionContext(
        requester_id=str(REQUESTER_ID),
        channel_id="10",
        guild_id="1",
        content=content,
        mentioned_members=list(mentions),
        origin=message,
    )


@pytest.fixture()
def executor():
    return DiscordActionExecutor()


def test_every_canonical_action_has_a_handler(executor):
    assert set(executor.supported_actions) == set(CANONICAL_ACTIONS)


class TestGuards:

    @pytest.mark.asyncio
    async def test_unsupported_action(self, executor, message):
        outcome = await executor.execute("message.explode", {}, _context(message))

        assert outcome.success is False
        assert outcome.error == "Unsupported action: message.explode"

    @pytest.mark.asyncio
    async def test_requires_guild_message(self, executor):
        outcome = await executor.execute("message.create", {"content": "hi"}, ExecutionContext(requester_id="1"))

        assert outcome.success is False
        assert "needs a guild message" in outcome.error

    @pytest.mark.asyncio
    async def test_missing_parameter(self, executor, message):
        outcome = await executor.execute("message.create", {}, _context(message))

        assert outcome.error == "Missing content in message.create step"


class TestMessages:

    @pytest.mark.asyncio
    async def test_message_create(self, executor, message):
        outcome = await executor.execute("message.create", {"content": "hello"}, _context(message))

        assert outcome.success is True
        assert outcome.details == {"messageId": "555", "channelId": "10"}
        message.channel.send.assert_awaited_once_with("hello")

    @pytest.mark.asyncio
    async def test_purge_is_capped_and_skips_the_request(self, executor, message):
        outcome = await executor.execute("channel.purge", {"limit": 500}, _context(message))

        assert outcome.details["deleted"] == 3
        kwargs = message.channel.purge.await_args.kwargs
        assert kwargs["limit"] == discord_executor.PURGE_MAX
        assert kwargs["bulk"] is True
        check = kwargs["check"]
        assert check(SimpleNamespace(id=999, author=SimpleNamespace(id=1))) is False
        assert check(SimpleNamespace(id=1000, author=SimpleNamespace(id=1))) is True

    @pytest.mark.asyncio
    async def test_channel_lock(self, executor, message):
        outcome = await executor.execute("channel.lock", {}, _context(message))

        assert outcome.success is True
        overwrite = message.channel.set_permissions.await_args.kwargs["overwrite"]
        assert overwrite.send_messages is False


class TestMembers:

    @pytest.mark.asyncio
    async def test_timeout_is_clamped(self, executor, message):
        outcome = await executor.execute(
            "member.timeout", {"userId": str(MEMBER_ID), "duration": 10 ** 9}, _context(message)
        )

        assert outcome.success is True
        assert outcome.details == {
            "userId": str(MEMBER_ID),
            "duration": discord_executor.TIMEOUT_MAX_SECONDS,
        }

    @pytest.mark.asyncio
    async def test_ban_clamps_delete_days(self, executor, message):
        outcome = await executor.execute(
            "member.ban", {"userId": f"<@{MEMBER_ID}>", "deleteMessageDays": 30}, _context(message)
        )

        assert outcome.details["deleteMessageDays"] == 7
        args, kwargs = message.guild.ban.await_args
        assert args[0].id == MEMBER_ID
        assert kwargs["delete_message_seconds"] == 7 * 86400

    @pytest.mark.asyncio
    async def test_kick_falls_back_to_first_mention(self, executor, message):
        mentions = [MentionedMember(user_id=str(MEMBER_ID), username="bob")]

        outcome = await executor.execute("member.kick", {}, _context(message, mentions=mentions))

        assert outcome.details == {"userId": str(MEMBER_ID)}
        message.guild.kick.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_target(self, executor, message):
        outcome = await executor.execute("member.kick", {}, _context(message, content="kick me"))

        assert outcome.error == "Missing userId in member.kick step"

    @pytest.mark.asyncio
    async def test_unknown_member(self, executor, message):
        message.guild.get_member = MagicMock(return_value=None)
        message.guild.fetch_member = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Member"))

        outcome = await executor.execute("member.timeout", {"userId": str(MEMBER_ID)}, _context(message))

        assert outcome.error == f"Member {MEMBER_ID} not found"

    @pytest.mark.asyncio
    async def test_forbidden(self, executor, message):
        message.guild.ban = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Missing Permissions"))

        outcome = await executor.execute("member.ban", {"userId": str(MEMBER_ID)}, _context(message))

        assert outcome.success is False
        assert outcome.error == "Missing permissions for member.ban"


class TestRoles:

    @pytest.mark.asyncio
    async def test_role_add_for_requester_by_name(self, executor, message):
        outcome = await executor.execute(
            "role.add", {"roleName": "member"}, _context(message, content="give me the Member role")
        )

        assert outcome.details == {"userId": str(REQUESTER_ID), "roleId": "42"}

    @pytest.mark.asyncio
    async def test_unknown_role_name(self, executor, message):
        outcome = await executor.execute(
            "role.remove", {"roleName": "Ghost", "userId": str(MEMBER_ID)}, _context(message)
        )

        assert outcome.error == 'Role named "Ghost" not found'
