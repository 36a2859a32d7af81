"""Command listener Cog for modflow.

Watches guild messages for the configured prefix or a bot mention, hands the
rest of the message to the :class:`CommandPipeline`, and replies with the
outcome.
"""

from __future__ import annotations

import re
from typing import List, Optional

import discord
from discord.ext import commands

from modflow.pipeline.command_pipeline import CommandPipeline
from modflow.util.logger import get_logger
from modflow.workflow.executor import ExecutionContext, MentionedMember

logger = get_logger("command_listener_cog")


def extract_request(content: str, prefix: str, bot_user_id: Optional[int]) -> Optional[str]:
    """Return the request text if ``content`` addresses the bot, else None.

    A message addresses the bot when it starts with ``prefix``
    (case-insensitive) or mentions the bot anywhere.
    """
    text = content.strip()
    if prefix and text.lower().startswith(prefix.lower()):
        return text[len(prefix):].strip() or None

    if bot_user_id is not None:
        mention = re.compile(rf"<@!?{bot_user_id}>")
        if mention.search(text):
            return mention.sub("", text).strip() or None

    return None


def build_context(message: discord.Message, request: str, bot_user_id: Optional[int]) -> ExecutionContext:
    """Describe the originating message for the pipeline."""
    mentioned: List[MentionedMember] = [
        MentionedMember(
            user_id=str(user.id),
            username=user.name,
            nickname=getattr(user, "nick", None),
        )
        for user in message.mentions
        if user.id != bot_user_id
    ]
    author = message.author
    is_admin = isinstance(author, discord.Member) and author.guild_permissions.administrator
    return ExecutionContext(
        requester_id=str(author.id),
        channel_id=str(message.channel.id),
        guild_id=str(message.guild.id) if message.guild else None,
        content=request,
        mentioned_members=mentioned,
        is_admin=is_admin,
        origin=message,
    )


class CommandListenerCog(commands.Cog):
    """Cog that turns addressed messages into executed plans."""

    def __init__(self, discord_bot_instance, pipeline: CommandPipeline, prefix: str):
        """
        Initialize the command listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        pipeline:
            Pipeline that handles each request.
        prefix:
            Text prefix that addresses the bot.
        """
        self.bot = discord_bot_instance
        self.pipeline = pipeline
        self.prefix = prefix
        logger.info("Command listener cog loaded (prefix=%r)", prefix)

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return

        bot_user_id = self.bot.user.id if self.bot.user else None
        request = extract_request(message.content, self.prefix, bot_user_id)
        if request is None:
            return

        context = build_context(message, request, bot_user_id)
        async with message.channel.typing():
            outcome = await self.pipeline.handle(request, context)

        logger.info("[PIPELINE] Request from %s finished as %s", context.requester_id, outcome.kind)
        try:
            await message.reply(outcome.message, mention_author=False)
        except discord.HTTPException as exc:
            logger.error("Failed to reply to message %s: %s", message.id, exc)


def setup(discord_bot_instance, pipeline: CommandPipeline, prefix: str) -> None:
    """Register the command listener cog with the bot."""
    discord_bot_instance.add_cog(CommandListenerCog(discord_bot_instance, pipeline, prefix))
