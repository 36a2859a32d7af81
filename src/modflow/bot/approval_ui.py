"""
Approve / Reject buttons for plans waiting at the approval gate.

Button presses are forwarded to :meth:`ApprovalGate.acknowledge`; the gate
decides whether they count. Anyone but the requester gets an ephemeral
refusal and the session is left untouched.
"""

from __future__ import annotations

import discord

from modflow.approval.approval_gate import ApprovalGate
from modflow.datatypes.approval_datatypes import ApprovalSession
from modflow.util.logger import get_logger

logger = get_logger("approval_ui")

EMBED_PLAN_LIMIT = 3900


def build_plan_embed(session: ApprovalSession, timeout_seconds: float) -> discord.Embed:
    """Embed showing the plan awaiting confirmation."""
    rendered = session.plan.render()
    if len(rendered) > EMBED_PLAN_LIMIT:
        rendered = rendered[:EMBED_PLAN_LIMIT] + "\n..."
    embed = discord.Embed(
        title="Confirmation required",
        description=f"```json\n{rendered}\n```",
        color=discord.Color.orange(),
    )
    embed.add_field(name="Steps", value=str(len(session.plan.steps)))
    embed.add_field(name="Strategy", value=str(session.plan.strategy))
    embed.set_footer(text=f"Press ✅ within {int(timeout_seconds)} seconds to confirm.")
    return embed


class ApprovalView(discord.ui.View):
    """Buttons bound to a single approval session."""

    def __init__(self, gate: ApprovalGate, session: ApprovalSession):
        super().__init__(timeout=gate.timeout)
        self.gate = gate
        self.session = session
        self.message: discord.Message | None = None

    def disable_all(self) -> None:
        for child in self.children:
            if isinstance(child, discord.ui.Button):
                child.disabled = True

    async def _acknowledge(self, interaction: discord.Interaction, accepted: bool) -> None:
        user_id = str(interaction.user.id) if interaction.user else ""
        if user_id != self.session.requester_id:
            await interaction.response.send_message(
                "❌ Only the person who made the request can answer this.", ephemeral=True
            )
            return

        if not self.gate.acknowledge(self.session.session_id, user_id, accepted):
            await interaction.response.send_message("This request is no longer pending.", ephemeral=True)
            return

        logger.info(
            "[APPROVAL UI] Session %s %s by %s",
            self.session.session_id,
            "approved" if accepted else "rejected",
            user_id,
        )
        self.disable_all()
        self.stop()
        await interaction.response.edit_message(view=self)

    @discord.ui.button(label="Approve", emoji="✅", style=discord.ButtonStyle.success)
    async def approve_button(self, button: discord.ui.Button, interaction: discord.Interaction):
        await self._acknowledge(interaction, accepted=True)

    @discord.ui.button(label="Reject", emoji="❌", style=discord.ButtonStyle.danger)
    async def reject_button(self, button: discord.ui.Button, interaction: discord.Interaction):
        await self._acknowledge(interaction, accepted=False)

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        self.disable_all()
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException as exc:
                logger.debug("[APPROVAL UI] Could not disable expired buttons: %s", exc)
