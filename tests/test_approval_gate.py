"""Tests for the approval gate."""

import asyncio

import pytest

from modflow.approval.approval_gate import ApprovalGate
from modflow.core.errors import ApprovalRejected, ApprovalTimeout
from modflow.datatypes.approval_datatypes import ApprovalState
from modflow.datatypes.plan_datatypes import Plan, Step
from modflow.events.event_bus import EventBus, EventTopic


def _plan():
    return Plan(steps=[Step(id="s1", action="member.ban", parameters={"userId": "5"})], requires_approval=True)


def _answer(bus, gate, user_id, accepted, results=None):
    def handler(event):
        outcome = gate.acknowledge(event.session.session_id, user_id, accepted)
        if results is not None:
            results.append(outcome)

    bus.subscribe(EventTopic.APPROVAL_REQUESTED, handler)


class TestApprovalGate:

    @pytest.mark.asyncio
    async def test_requester_approves(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=5)
        _answer(bus, gate, "42", True)
        resolved = []
        bus.subscribe(EventTopic.APPROVAL_RESOLVED, resolved.append)

        session = await gate.propose(_plan(), "42", channel_id="10")

        assert session.state is ApprovalState.APPROVED
        assert session.decided_by == "42"
        session.raise_for_state()
        assert gate.pending_sessions() == []
        assert resolved[0].session is session
        assert resolved[0].channel_id == "10"

    @pytest.mark.asyncio
    async def test_requester_rejects(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=5)
        _answer(bus, gate, "42", False)

        session = await gate.propose(_plan(), "42")

        assert session.state is ApprovalState.REJECTED
        with pytest.raises(ApprovalRejected):
            session.raise_for_state()

    @pytest.mark.asyncio
    async def test_other_users_are_ignored_and_session_expires(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=0.05)
        results = []
        _answer(bus, gate, "99", True, results)

        session = await gate.propose(_plan(), "42")

        assert results == [False]
        assert session.state is ApprovalState.EXPIRED
        assert session.decided_by is None
        with pytest.raises(ApprovalTimeout):
            session.raise_for_state()

    @pytest.mark.asyncio
    async def test_second_acknowledgement_is_ignored(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=5)
        results = []
        _answer(bus, gate, "42", True, results)
        _answer(bus, gate, "42", False, results)

        session = await gate.propose(_plan(), "42")

        assert results == [True, False]
        assert session.state is ApprovalState.APPROVED

    @pytest.mark.asyncio
    async def test_session_is_pending_while_waiting(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=0.05)
        seen = []
        bus.subscribe(EventTopic.APPROVAL_REQUESTED, lambda event: seen.append(gate.get(event.session.session_id)))

        session = await gate.propose(_plan(), "42")

        assert seen == [session]
        assert gate.get(session.session_id) is None

    def test_unknown_session_is_ignored(self):
        gate = ApprovalGate(timeout=1)

        assert gate.acknowledge("approval_404", "1", True) is False

    @pytest.mark.asyncio
    async def test_window_counts_from_proposal_not_prompt_delivery(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=0.1)
        results = []

        async def slow_prompt(event):
            await asyncio.sleep(0.3)
            results.append(gate.acknowledge(event.session.session_id, "42", True))

        bus.subscribe(EventTopic.APPROVAL_REQUESTED, slow_prompt)

        session = await gate.propose(_plan(), "42")

        assert results == [False]
        assert session.state is ApprovalState.EXPIRED
        assert session.decided_by is None

    @pytest.mark.asyncio
    async def test_acknowledgement_after_slow_prompt_is_refused(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=0.1)
        late = []

        async def slow_prompt(event):
            await asyncio.sleep(0.3)

        async def answer_late(session_id):
            await asyncio.sleep(0.35)
            late.append(gate.acknowledge(session_id, "42", True))

        pending_answers = []

        def schedule_answer(event):
            pending_answers.append(asyncio.create_task(answer_late(event.session.session_id)))

        bus.subscribe(EventTopic.APPROVAL_REQUESTED, slow_prompt)
        bus.subscribe(EventTopic.APPROVAL_REQUESTED, schedule_answer, priority=10)

        session = await gate.propose(_plan(), "42")
        await asyncio.gather(*pending_answers)

        assert late == [False]
        assert session.state is ApprovalState.EXPIRED

    @pytest.mark.asyncio
    async def test_cancelled_proposal_still_announces_resolution(self):
        bus = EventBus()
        gate = ApprovalGate(event_bus=bus, timeout=5)
        resolved = []
        bus.subscribe(EventTopic.APPROVAL_RESOLVED, resolved.append)

        task = asyncio.create_task(gate.propose(_plan(), "42", channel_id="10"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(resolved) == 1
        assert resolved[0].session.state is ApprovalState.EXPIRED
        assert gate.pending_sessions() == []
