"""Process host that runs each agent as a local subprocess."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
import os
from pathlib import Path
import uuid

from ..events.bus import EventBus
from ..exceptions import HostCommunicationError
from ..task_manager import RunTaskGroup
from .base import TOPIC_COMPLETE, TOPIC_ERROR, TOPIC_OUTPUT, ProcessHost

LOGGER = logging.getLogger(__name__)

AGENT_ID_PLACEHOLDER = "{agent_id}"
MODEL_PLACEHOLDER = "{model}"


class SubprocessHost(ProcessHost):
    """Launch agents with ``asyncio.create_subprocess_exec``.

    Each run gets one watcher task that relays stdout lines as ``output``
    events and stderr lines as ``error`` events. Once both streams are
    exhausted it publishes ``complete`` with ``returncode == 0``.
    """

    kind = "subprocess"

    def __init__(
        self,
        command: Sequence[str],
        bus: EventBus | None = None,
        *,
        model_flag: str = "--model",
        terminate_timeout_seconds: float = 5.0,
    ) -> None:
        if not command:
            raise ValueError("Agent command must not be empty.")
        super().__init__(bus)
        self.command = list(command)
        self.model_flag = model_flag
        self.terminate_timeout_seconds = terminate_timeout_seconds
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._tasks = RunTaskGroup()

    def build_argv(self, agent_id: str, model: str | None) -> list[str]:
        """Expand the command template for one agent.

        ``{agent_id}`` and ``{model}`` placeholders are substituted in place.
        When the template has no ``{model}`` slot and a model is given, the
        model flag and value are appended.
        """
        uses_model_slot = any(MODEL_PLACEHOLDER in part for part in self.command)
        argv: list[str] = []
        for part in self.command:
            if MODEL_PLACEHOLDER in part and not model:
                continue
            argv.append(
                part.replace(AGENT_ID_PLACEHOLDER, agent_id).replace(
                    MODEL_PLACEHOLDER, model or ""
                )
            )
        if model and not uses_model_slot and self.model_flag:
            argv.extend([self.model_flag, model])
        return argv

    async def start(
        self, agent_id: str, work_directory: str, model: str | None = None
    ) -> str:
        argv = self.build_argv(agent_id, model)
        cwd = Path(work_directory or ".").expanduser()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=(os.name != "nt"),
            )
        except OSError as exc:
            raise HostCommunicationError(
                f"Unable to launch agent {agent_id!r}: {exc}"
            ) from exc

        run_token = str(uuid.uuid4())
        self._processes[run_token] = proc
        self._tasks.spawn(run_token, self._watch(run_token, proc), label="watch")
        LOGGER.info(
            "host.subprocess.started",
            extra={
                "event": "host.subprocess.started",
                "agent_id": agent_id,
                "run_token": run_token,
                "pid": proc.pid,
            },
        )
        return run_token

    async def _relay(
        self, run_token: str, stream: asyncio.StreamReader | None, topic: str
    ) -> None:
        if stream is None:
            return
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            await self._publish(topic, run_token, text)

    async def _watch(self, run_token: str, proc: asyncio.subprocess.Process) -> None:
        await asyncio.gather(
            self._relay(run_token, proc.stdout, TOPIC_OUTPUT),
            self._relay(run_token, proc.stderr, TOPIC_ERROR),
        )
        returncode = await proc.wait()
        LOGGER.info(
            "host.subprocess.exited",
            extra={
                "event": "host.subprocess.exited",
                "run_token": run_token,
                "returncode": returncode,
            },
        )
        # Runs ended through stop() publish no completion.
        if self._processes.pop(run_token, None) is None:
            return
        await self._publish(TOPIC_COMPLETE, run_token, returncode == 0)

    async def send(self, run_token: str, content: str) -> None:
        proc = self._processes.get(run_token)
        if proc is None or proc.stdin is None:
            raise HostCommunicationError(f"Unknown run token {run_token!r}.")
        # One message per line on the agent's stdin.
        proc.stdin.write(content.encode("utf-8") + b"\n")
        try:
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise HostCommunicationError(
                f"Agent input channel closed for run {run_token!r}."
            ) from exc

    async def stop(self, run_token: str) -> bool:
        proc = self._processes.pop(run_token, None)
        if proc is None:
            return False
        if proc.returncode is None:
            try:
                proc.terminate()
                await asyncio.wait_for(
                    proc.wait(), timeout=self.terminate_timeout_seconds
                )
            except ProcessLookupError:
                pass
            except TimeoutError:
                LOGGER.warning(
                    "host.subprocess.kill",
                    extra={"event": "host.subprocess.kill", "run_token": run_token},
                )
                proc.kill()
                await proc.wait()
        await self._tasks.cancel(run_token)
        return True

    async def status(self, run_token: str) -> str | None:
        proc = self._processes.get(run_token)
        if proc is None:
            return None
        return "running" if proc.returncode is None else "exited"

    @property
    def active_runs(self) -> list[str]:
        return list(self._processes)

    async def close(self) -> None:
        for run_token in list(self._processes):
            await self.stop(run_token)
        await self._tasks.cancel_all()
