"""Abstract process-host interface consumed by agent sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ..events.bus import EventBus, Subscription

TOPIC_OUTPUT = "output"
TOPIC_ERROR = "error"
TOPIC_COMPLETE = "complete"
HOST_TOPICS: tuple[str, ...] = (TOPIC_OUTPUT, TOPIC_ERROR, TOPIC_COMPLETE)


def topic_name(topic: str, run_token: str) -> str:
    """Return the bus topic that carries ``topic`` events for one run."""
    return f"{topic}:{run_token}"


class ProcessHost(ABC):
    """Start, feed, and stop external agent processes keyed by run token.

    Hosts publish three event topics per run on their :class:`EventBus`:
    ``output`` (one line of agent output), ``error`` (one line of diagnostic
    output), and ``complete`` (``True`` when the run finished successfully).
    Each event carries its value under ``event.data["payload"]``.
    """

    kind = "abstract"

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or EventBus()

    @abstractmethod
    async def start(
        self, agent_id: str, work_directory: str, model: str | None = None
    ) -> str:
        """Launch an agent and return its opaque run token."""

    @abstractmethod
    async def send(self, run_token: str, content: str) -> None:
        """Deliver one message to the agent's input channel."""

    @abstractmethod
    async def stop(self, run_token: str) -> bool:
        """Request termination; return whether a run was known."""

    @abstractmethod
    async def status(self, run_token: str) -> str | None:
        """Return a short status string, or None for an unknown run."""

    async def subscribe(
        self,
        topic: str,
        run_token: str,
        handler: Callable[..., Any],
    ) -> Subscription:
        """Register ``handler`` for one topic of one run.

        Raises:
            ValueError: If ``topic`` is not one of the host topics
        """
        if topic not in HOST_TOPICS:
            raise ValueError(f"Unknown host topic {topic!r}.")
        return self.bus.subscribe(topic_name(topic, run_token), handler)

    async def close(self) -> None:
        """Release host-wide resources. The default host holds none."""

    async def _publish(self, topic: str, run_token: str, payload: Any) -> None:
        await self.bus.publish(
            topic_name(topic, run_token), {"payload": payload}, source=run_token
        )
