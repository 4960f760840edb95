"""Topic-based event bus used by process hosts to publish agent events.

Usage:
    bus = EventBus()

    # Subscribe to a run-scoped topic
    async def on_output(event):
        print(event.data["payload"])

    subscription = bus.subscribe("output:run-1", on_output)

    # Publish events
    await bus.publish("output:run-1", {"payload": "hello"}, source="run-1")

    # Drop the handler again (idempotent)
    subscription.unsubscribe()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import inspect
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


@dataclass
class Event:
    """Event data container."""

    name: str
    data: dict[str, Any]
    source: str | None = None


@dataclass(eq=False)
class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`.

    Handles compare by identity so the same handler may be subscribed twice
    and each registration removed independently.
    """

    bus: EventBus = field(repr=False)
    topic: str
    handler: Callable = field(repr=False)
    active: bool = True

    def unsubscribe(self) -> None:
        """Remove this registration from its bus; repeated calls are no-ops."""
        if not self.active:
            return
        self.active = False
        self.bus._remove(self)


class EventBus:
    """Publish/subscribe bus keyed by topic name.

    Handlers may be plain callables or coroutine functions. Each call to
    :meth:`subscribe` yields its own :class:`Subscription` handle.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, topic: str, handler: Callable) -> Subscription:
        """Subscribe to a topic.

        Args:
            topic: Topic to listen for (e.g., "output:<run token>")
            handler: Function or coroutine function called with an Event

        Returns:
            Subscription handle used to unsubscribe
        """
        subscription = Subscription(bus=self, topic=topic, handler=handler)
        self._subscribers.setdefault(topic, []).append(subscription)
        LOGGER.debug("Subscribed to topic: %s", topic)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        handlers = self._subscribers.get(subscription.topic)
        if not handlers:
            return
        for index, registered in enumerate(handlers):
            if registered is subscription:
                del handlers[index]
                break
        if not handlers:
            del self._subscribers[subscription.topic]
        LOGGER.debug("Unsubscribed from topic: %s", subscription.topic)

    async def publish(
        self, topic: str, data: dict[str, Any], source: str | None = None
    ) -> None:
        """Publish an event to all subscribers of ``topic``.

        Args:
            topic: Topic name
            data: Event data
            source: Optional source identifier
        """
        subscriptions = list(self._subscribers.get(topic, ()))
        if not subscriptions:
            LOGGER.debug("No subscribers for topic: %s", topic)
            return

        event = Event(name=topic, data=data, source=source)
        for subscription in subscriptions:
            # A handler earlier in this loop may have unsubscribed later ones.
            if not subscription.active:
                continue
            try:
                if inspect.iscoroutinefunction(subscription.handler):
                    await subscription.handler(event)
                else:
                    subscription.handler(event)
            except Exception as exc:  # noqa: BLE001 - one handler must not break others.
                LOGGER.error(
                    "bus.handler.failed",
                    extra={
                        "event": "bus.handler.failed",
                        "topic": topic,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )

    def subscriber_count(self, topic: str | None = None) -> int:
        """Return the number of live subscriptions, optionally for one topic."""
        if topic is not None:
            return len(self._subscribers.get(topic, ()))
        return sum(len(handlers) for handlers in self._subscribers.values())

    def clear(self, topic: str | None = None) -> None:
        """Clear subscribers.

        Args:
            topic: Specific topic to clear, or None for all
        """
        if topic is not None:
            removed = self._subscribers.pop(topic, [])
        else:
            removed = [sub for subs in self._subscribers.values() for sub in subs]
            self._subscribers.clear()
        for subscription in removed:
            subscription.active = False
