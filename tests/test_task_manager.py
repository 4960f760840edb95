"""Tests for the RunTaskGroup lifecycle helper."""

from __future__ import annotations

import asyncio
import unittest

from teammate_chat.task_manager import RunTaskGroup


class RunTaskGroupTests(unittest.IsolatedAsyncioTestCase):
    """Validate per-run task tracking and cancellation."""

    async def test_spawn_tracks_and_cancel_by_run(self) -> None:
        group = RunTaskGroup()
        cancelled: list[bool] = []

        async def _worker() -> None:
            try:
                await asyncio.sleep(9999)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        task = group.spawn("run-1", _worker(), label="watch")
        other = group.spawn("run-2", asyncio.sleep(9999))
        await asyncio.sleep(0)  # Let the tasks start.
        self.assertEqual(task.get_name(), "watch:run-1")
        self.assertEqual(len(group), 2)

        await group.cancel("run-1")
        self.assertTrue(task.done())
        self.assertTrue(cancelled)
        self.assertEqual(len(group), 1)
        self.assertFalse(other.done())
        await group.cancel_all()
        self.assertTrue(other.cancelled())
        self.assertEqual(len(group), 0)

    async def test_finished_tasks_drop_out(self) -> None:
        group = RunTaskGroup()

        async def _quick() -> str:
            return "done"

        task = group.spawn("run-1", _quick())
        self.assertEqual(await task, "done")
        await asyncio.sleep(0)
        self.assertEqual(len(group), 0)

    async def test_task_exception_is_logged(self) -> None:
        group = RunTaskGroup()

        async def _broken() -> None:
            raise RuntimeError("reader died")

        with self.assertLogs("teammate_chat.task_manager", level="WARNING") as logs:
            task = group.spawn("run-1", _broken(), label="relay")
            await asyncio.wait([task])
            await asyncio.sleep(0)
        self.assertIn("task.run.exception", logs.output[0])

    async def test_cancel_from_inside_the_run_skips_the_caller(self) -> None:
        group = RunTaskGroup()
        sibling = group.spawn("run-1", asyncio.sleep(9999))

        async def _stopper() -> str:
            await group.cancel("run-1")
            return "finished"

        task = group.spawn("run-1", _stopper())
        self.assertEqual(await task, "finished")
        self.assertTrue(sibling.cancelled())
        self.assertEqual(len(group), 0)

    async def test_cancel_unknown_run_is_noop(self) -> None:
        group = RunTaskGroup()
        await group.cancel("missing")
        await group.cancel_all()
        self.assertEqual(len(group), 0)


if __name__ == "__main__":
    unittest.main()
