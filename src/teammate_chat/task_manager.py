"""Lifecycle tracking for background asyncio tasks grouped by run token."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class RunTaskGroup:
    """Track the reader and watcher tasks that belong to each agent run.

    Tasks are registered under the run token they serve. Finished tasks drop
    out of their group on their own; a failure inside one is logged so it is
    not silently lost.
    """

    def __init__(self) -> None:
        self._groups: dict[str, set[asyncio.Task[Any]]] = {}

    def spawn(
        self,
        run_token: str,
        coroutine: Coroutine[Any, Any, Any],
        *,
        label: str = "task",
    ) -> asyncio.Task[Any]:
        """Schedule ``coroutine`` and file it under ``run_token``."""
        task = asyncio.create_task(coroutine, name=f"{label}:{run_token}")
        self._groups.setdefault(run_token, set()).add(task)
        task.add_done_callback(lambda done: self._forget(run_token, done))
        task.add_done_callback(self._log_exception)
        return task

    def _forget(self, run_token: str, task: asyncio.Task[Any]) -> None:
        group = self._groups.get(run_token)
        if group is None:
            return
        group.discard(task)
        if not group:
            self._groups.pop(run_token, None)

    def _log_exception(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning(
                "task.run.exception",
                extra={
                    "event": "task.run.exception",
                    "task": task.get_name(),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )

    async def cancel(self, run_token: str) -> None:
        """Cancel every task of one run and wait for them to settle.

        The calling task is skipped when it belongs to the run itself.
        """
        current = asyncio.current_task()
        tasks = [
            task
            for task in self._groups.pop(run_token, ())
            if not task.done() and task is not current
        ]
        await self._cancel_and_wait(tasks)

    async def cancel_all(self) -> None:
        """Cancel every tracked task and await them all."""
        tasks = [
            task
            for group in self._groups.values()
            for task in group
            if not task.done()
        ]
        self._groups.clear()
        await self._cancel_and_wait(tasks)

    @staticmethod
    async def _cancel_and_wait(tasks: list[asyncio.Task[Any]]) -> None:
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def __len__(self) -> int:
        return sum(len(group) for group in self._groups.values())
