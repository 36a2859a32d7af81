"""Relay pipeline events to Discord channels."""

from __future__ import annotations

from typing import Dict, List, Optional

import discord

from modflow.approval.approval_gate import ApprovalGate
from modflow.bot.approval_ui import ApprovalView, build_plan_embed
from modflow.datatypes.approval_datatypes import ApprovalState
from modflow.datatypes.event_datatypes import ActionCorrection, ApprovalEvent, Notice
from modflow.events.event_bus import EventBus, EventTopic
from modflow.util.logger import get_logger

logger = get_logger("notifier")

SCOPE_ID = "discord_notifier"


class DiscordNotifier:
    """Subscribe to the event bus and post user-facing messages.

    All subscriptions share :data:`SCOPE_ID`, so :meth:`close` removes them
    in one call.
    """

    def __init__(self, bot: discord.Bot, event_bus: EventBus, gate: ApprovalGate) -> None:
        self.bot = bot
        self.event_bus = event_bus
        self.gate = gate
        self._views: Dict[str, ApprovalView] = {}
        self._subscriptions: List[str] = []

    def start(self) -> None:
        subscribe = self.event_bus.subscribe
        self._subscriptions = [
            subscribe(EventTopic.ACTION_CORRECTED, self.on_action_corrected, scope_id=SCOPE_ID),
            subscribe(EventTopic.NOTICE, self.on_notice, scope_id=SCOPE_ID),
            subscribe(EventTopic.APPROVAL_REQUESTED, self.on_approval_requested, priority=10, scope_id=SCOPE_ID),
            subscribe(EventTopic.APPROVAL_RESOLVED, self.on_approval_resolved, scope_id=SCOPE_ID),
        ]
        logger.info("[NOTIFIER] Subscribed to %d topics", len(self._subscriptions))

    def close(self) -> int:
        removed = self.event_bus.unsubscribe_scope(SCOPE_ID)
        self._subscriptions.clear()
        return removed

    def _channel(self, channel_id: Optional[str]):
        if not channel_id:
            return None
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            logger.warning("[NOTIFIER] Channel %s is not cached; dropping message", channel_id)
        return channel

    async def _send(self, channel_id: Optional[str], content: str) -> bool:
        channel = self._channel(channel_id)
        if channel is None:
            return False
        await channel.send(content)
        return True

    async def on_action_corrected(self, event: ActionCorrection) -> bool:
        return await self._send(event.channel_id, event.describe())

    async def on_notice(self, notice: Notice) -> bool:
        return await self._send(notice.channel_id, notice.message)

    async def on_approval_requested(self, event: ApprovalEvent) -> bool:
        channel = self._channel(event.channel_id)
        if channel is None:
            return False
        view = ApprovalView(self.gate, event.session)
        view.message = await channel.send(
            content=f"<@{event.session.requester_id}> this request needs your confirmation.",
            embed=build_plan_embed(event.session, self.gate.timeout),
            view=view,
        )
        self._views[event.session.session_id] = view
        return True

    async def on_approval_resolved(self, event: ApprovalEvent) -> bool:
        view = self._views.pop(event.session.session_id, None)
        if view is not None and not view.is_finished():
            view.disable_all()
            view.stop()
            if view.message is not None:
                await view.message.edit(view=view)
        if event.session.state is ApprovalState.APPROVED:
            return await self._send(event.channel_id, "Plan approved, executing...")
        return False
