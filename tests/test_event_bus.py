"""Tests for the event bus."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from modflow.events.event_bus import EventBus, EventTopic


class TestSubscribe:

    def test_ids_and_counts(self):
        bus = EventBus()

        first = bus.subscribe(EventTopic.NOTICE, lambda payload: None)
        second = bus.subscribe("custom", lambda payload: None)

        assert first == "notice_1"
        assert second == "custom_2"
        assert bus.listener_counts() == {"notice": 1, "custom": 1}

    def test_unsubscribe(self):
        bus = EventBus()
        sub_id = bus.subscribe(EventTopic.NOTICE, lambda payload: None)

        assert bus.unsubscribe(sub_id) is True
        assert bus.unsubscribe(sub_id) is False
        assert bus.listener_counts() == {}

    def test_unsubscribe_scope(self):
        bus = EventBus()
        bus.subscribe(EventTopic.NOTICE, lambda payload: None, scope_id="cog")
        bus.subscribe(EventTopic.ACTION_CORRECTED, lambda payload: None, scope_id="cog")
        bus.subscribe(EventTopic.NOTICE, lambda payload: None)

        assert bus.unsubscribe_scope("cog") == 2
        assert bus.listener_counts() == {"notice": 1}


class TestPublish:

    @pytest.mark.asyncio
    async def test_priority_then_subscription_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe("t", lambda payload: calls.append("low"), priority=-1)
        bus.subscribe("t", lambda payload: calls.append("first"))
        bus.subscribe("t", lambda payload: calls.append("high"), priority=5)
        bus.subscribe("t", lambda payload: calls.append("second"))

        await bus.publish("t", None)

        assert calls == ["high", "first", "second", "low"]

    @pytest.mark.asyncio
    async def test_async_handlers_receive_payload(self):
        bus = EventBus()
        handler = AsyncMock(return_value=None)
        bus.subscribe(EventTopic.NOTICE, handler)

        handled = await bus.publish(EventTopic.NOTICE, {"message": "hi"})

        handler.assert_awaited_once_with({"message": "hi"})
        assert handled is False

    @pytest.mark.asyncio
    async def test_exclusive_handler_stops_dispatch(self):
        bus = EventBus()
        later = MagicMock()
        bus.subscribe("t", lambda payload: True, priority=10, exclusive=True)
        bus.subscribe("t", later)

        handled = await bus.publish("t", None)

        assert handled is True
        later.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_exclusive_handled_continues(self):
        bus = EventBus()
        later = MagicMock()
        bus.subscribe("t", lambda payload: True, priority=10)
        bus.subscribe("t", later)

        assert await bus.publish("t", None) is True
        later.assert_called_once()

    @pytest.mark.asyncio
    async def test_exclusive_handler_that_declines_does_not_stop(self):
        bus = EventBus()
        later = MagicMock()
        bus.subscribe("t", lambda payload: False, priority=10, exclusive=True)
        bus.subscribe("t", later)

        await bus.publish("t", None)

        later.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self):
        bus = EventBus()
        later = MagicMock(return_value=True)
        bus.subscribe("t", MagicMock(side_effect=RuntimeError("boom")), priority=1)
        bus.subscribe("t", later)

        assert await bus.publish("t", 1) is True
        later.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self):
        assert await EventBus().publish("nobody", None) is False

    @pytest.mark.asyncio
    async def test_handler_may_unsubscribe_during_publish(self):
        bus = EventBus()
        calls = []

        def once(payload):
            calls.append(payload)
            bus.unsubscribe(sub_id)

        sub_id = bus.subscribe("t", once)

        await bus.publish("t", 1)
        await bus.publish("t", 2)

        assert calls == [1]
