"""In-process agent host used when no agent binary is available."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import uuid

from ..events.bus import EventBus
from ..exceptions import HostCommunicationError
from .base import TOPIC_COMPLETE, TOPIC_ERROR, TOPIC_OUTPUT, ProcessHost

LOGGER = logging.getLogger(__name__)


@dataclass
class MemoryRun:
    """Bookkeeping for one in-process agent run."""

    agent_id: str
    work_directory: str
    model: str | None
    inbox: list[str] = field(default_factory=list)


class InMemoryProcessHost(ProcessHost):
    """Echo agent that lives entirely inside the event loop.

    Every message sent to a run is recorded in its inbox and, when ``echo``
    is enabled, published straight back as output. Tests drive the remaining
    topics through :meth:`emit_output`, :meth:`emit_error`, and
    :meth:`complete`.
    """

    kind = "memory"

    def __init__(self, bus: EventBus | None = None, *, echo: bool = True) -> None:
        super().__init__(bus)
        self.echo = echo
        self._runs: dict[str, MemoryRun] = {}

    async def start(
        self, agent_id: str, work_directory: str, model: str | None = None
    ) -> str:
        run_token = str(uuid.uuid4())
        self._runs[run_token] = MemoryRun(
            agent_id=agent_id, work_directory=work_directory, model=model
        )
        LOGGER.info(
            "host.memory.started",
            extra={
                "event": "host.memory.started",
                "agent_id": agent_id,
                "run_token": run_token,
            },
        )
        return run_token

    def _require(self, run_token: str) -> MemoryRun:
        run = self._runs.get(run_token)
        if run is None:
            raise HostCommunicationError(f"Unknown run token {run_token!r}.")
        return run

    async def send(self, run_token: str, content: str) -> None:
        run = self._require(run_token)
        run.inbox.append(content)
        if self.echo:
            await self._publish(TOPIC_OUTPUT, run_token, content)

    async def stop(self, run_token: str) -> bool:
        return self._runs.pop(run_token, None) is not None

    async def status(self, run_token: str) -> str | None:
        return "running" if run_token in self._runs else None

    def run(self, run_token: str) -> MemoryRun | None:
        return self._runs.get(run_token)

    @property
    def active_runs(self) -> list[str]:
        return list(self._runs)

    async def emit_output(self, run_token: str, text: str) -> None:
        await self._publish(TOPIC_OUTPUT, run_token, text)

    async def emit_error(self, run_token: str, text: str) -> None:
        await self._publish(TOPIC_ERROR, run_token, text)

    async def complete(self, run_token: str, success: bool = True) -> None:
        """Finish a run and publish its completion event."""
        self._runs.pop(run_token, None)
        await self._publish(TOPIC_COMPLETE, run_token, success)

    async def close(self) -> None:
        self._runs.clear()
