"""
Timed confirmation gate for plans that need the requester's sign-off.

``propose`` opens an :class:`ApprovalSession`, announces it on the event bus
(the Discord layer renders Approve / Reject buttons for it) and waits until
the requester acknowledges or the window closes. Only the awaiting request is
suspended; other requests keep flowing through the event loop.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from modflow.configuration.app_configuration import app_config
from modflow.datatypes.approval_datatypes import ApprovalSession, ApprovalState
from modflow.datatypes.event_datatypes import ApprovalEvent
from modflow.datatypes.plan_datatypes import Plan
from modflow.events.event_bus import EventBus, EventTopic
from modflow.util.logger import get_logger

logger = get_logger("approval_gate")


class ApprovalGate:
    """Owns the pending approval sessions.

    Args:
        event_bus: Bus on which proposals and resolutions are announced.
        timeout: Window length in seconds; defaults to the configured
            ``approval.timeout_seconds``.
    """

    def __init__(self, event_bus: Optional[EventBus] = None, timeout: Optional[float] = None) -> None:
        self.event_bus = event_bus or EventBus()
        self.timeout = float(timeout if timeout is not None else app_config.approval_timeout)
        self._pending: Dict[str, Tuple[ApprovalSession, asyncio.Future]] = {}
        self._sequence = itertools.count(1)

    def pending_sessions(self) -> List[ApprovalSession]:
        return [session for session, _ in self._pending.values()]

    def get(self, session_id: str) -> Optional[ApprovalSession]:
        entry = self._pending.get(session_id)
        return entry[0] if entry else None

    async def propose(self, plan: Plan, requester_id: str, channel_id: Optional[str] = None) -> ApprovalSession:
        """Gate ``plan`` behind its requester's acknowledgement.

        Returns the session once it reached a terminal state. Callers proceed
        only when ``session.state`` is APPROVED; ``session.raise_for_state()``
        turns the other outcomes into approval errors.
        """
        proposed_at = datetime.now(timezone.utc)
        session = ApprovalSession(
            session_id=f"approval_{next(self._sequence)}",
            plan=plan,
            requester_id=str(requester_id),
            proposed_at=proposed_at,
            deadline=proposed_at + timedelta(seconds=self.timeout),
        )
        decision: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[session.session_id] = (session, decision)
        logger.info(
            "[APPROVAL] Session %s proposed for requester %s (%.0fs window)",
            session.session_id,
            session.requester_id,
            self.timeout,
        )

        try:
            await self.event_bus.publish(EventTopic.APPROVAL_REQUESTED, ApprovalEvent(session, channel_id))
            # The window runs from proposal, not from when the prompt was delivered.
            remaining = (session.deadline - datetime.now(timezone.utc)).total_seconds()
            try:
                await asyncio.wait_for(decision, timeout=max(remaining, 0.0))
            except asyncio.TimeoutError:
                pass
        finally:
            self._pending.pop(session.session_id, None)
            # No-op when an acknowledgement already settled the session.
            session.transition(ApprovalState.EXPIRED)
            logger.info("[APPROVAL] Session %s resolved as %s", session.session_id, session.state)
            await self.event_bus.publish(EventTopic.APPROVAL_RESOLVED, ApprovalEvent(session, channel_id))

        return session

    def acknowledge(self, session_id: str, user_id: str, accepted: bool) -> bool:
        """Record an accept / reject signal.

        Signals from anyone but the requester, or for unknown or already
        settled sessions, are ignored. So is anything that arrives after the
        session deadline.

        Returns:
            bool: True if the signal settled the session.
        """
        entry = self._pending.get(session_id)
        if entry is None:
            logger.debug("[APPROVAL] Ignoring acknowledgement for unknown session %s", session_id)
            return False

        session, decision = entry
        if str(user_id) != session.requester_id:
            logger.debug(
                "[APPROVAL] Ignoring acknowledgement from %s on session %s (requester is %s)",
                user_id,
                session_id,
                session.requester_id,
            )
            return False

        if datetime.now(timezone.utc) > session.deadline:
            logger.debug("[APPROVAL] Ignoring late acknowledgement on session %s", session_id)
            return False

        new_state = ApprovalState.APPROVED if accepted else ApprovalState.REJECTED
        if not session.transition(new_state, decided_by=str(user_id)):
            return False
        if not decision.done():
            decision.set_result(new_state)
        return True
