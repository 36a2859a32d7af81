"""
Priority-ordered publish/subscribe bus.

Components talk to each other through the bus instead of holding direct
references: the workflow runner announces corrections and results, the
approval gate announces proposals, and the Discord layer subscribes to relay
those as channel messages. Subscriptions can be tagged with a scope id so a
cohesive unit (a cog, an extension) can drop all of them in one call.
"""

from __future__ import annotations

import inspect
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from modflow.util.logger import get_logger

logger = get_logger("event_bus")

Handler = Callable[[Any], Union[Optional[bool], Awaitable[Optional[bool]]]]


class EventTopic(Enum):
    """Topics published by the core pipeline."""

    ACTION_CORRECTED = "action.corrected"
    NOTICE = "notice"
    APPROVAL_REQUESTED = "approval.requested"
    APPROVAL_RESOLVED = "approval.resolved"
    WORKFLOW_STARTED = "workflow.started"
    STEP_COMPLETED = "workflow.step_completed"
    WORKFLOW_FINISHED = "workflow.finished"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class Subscription:
    id: str
    topic: str
    handler: Handler
    priority: int = 0
    scope_id: Optional[str] = None
    exclusive: bool = False
    order: int = field(default=0, compare=False)


class EventBus:
    """In-process event bus with priority, exclusive and scoped subscriptions."""

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._counter = itertools.count(1)

    @staticmethod
    def _topic_key(topic: Union[str, EventTopic]) -> str:
        return str(topic)

    def subscribe(
        self,
        topic: Union[str, EventTopic],
        handler: Handler,
        *,
        priority: int = 0,
        scope_id: Optional[str] = None,
        exclusive: bool = False,
    ) -> str:
        """Register ``handler`` for ``topic`` and return its subscription id.

        Handlers run in descending ``priority``; equal priorities run in
        subscription order. A handler may return True to signal that it
        handled the event; if it was registered ``exclusive`` that also stops
        dispatch to the remaining handlers for that publish call.
        """
        key = self._topic_key(topic)
        order = next(self._counter)
        subscription = Subscription(
            id=f"{key}_{order}",
            topic=key,
            handler=handler,
            priority=priority,
            scope_id=scope_id,
            exclusive=exclusive,
            order=order,
        )
        listeners = self._subscriptions.setdefault(key, [])
        listeners.append(subscription)
        listeners.sort(key=lambda sub: (-sub.priority, sub.order))
        logger.debug("[EVENT BUS] Subscribed %s (priority=%d, scope=%s)", subscription.id, priority, scope_id)
        return subscription.id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a single subscription. Returns False if the id is unknown."""
        for listeners in self._subscriptions.values():
            for index, subscription in enumerate(listeners):
                if subscription.id == subscription_id:
                    del listeners[index]
                    return True
        return False

    def unsubscribe_scope(self, scope_id: str) -> int:
        """Remove every subscription tagged with ``scope_id``; return how many."""
        removed = 0
        for topic, listeners in self._subscriptions.items():
            kept = [sub for sub in listeners if sub.scope_id != scope_id]
            removed += len(listeners) - len(kept)
            self._subscriptions[topic] = kept
        if removed:
            logger.debug("[EVENT BUS] Removed %d subscription(s) for scope %s", removed, scope_id)
        return removed

    async def publish(self, topic: Union[str, EventTopic], payload: Any = None) -> bool:
        """Dispatch ``payload`` to the subscribers of ``topic``.

        Returns:
            bool: True if any handler signaled that it handled the event.
        """
        key = self._topic_key(topic)
        # Snapshot so handlers can (un)subscribe while we iterate.
        listeners = list(self._subscriptions.get(key, ()))
        handled = False

        for subscription in listeners:
            try:
                result = subscription.handler(payload)
                if inspect.isawaitable(result):
                    result = await result
            except Exception:
                logger.exception("[EVENT BUS] Handler %s failed for topic %s", subscription.id, key)
                continue

            if result is True:
                handled = True
                if subscription.exclusive:
                    break

        return handled

    def listener_counts(self) -> Dict[str, int]:
        """Number of live subscriptions per topic."""
        return {topic: len(listeners) for topic, listeners in self._subscriptions.items() if listeners}
