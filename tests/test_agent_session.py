"""Tests for the agent session lifecycle."""

from __future__ import annotations

import asyncio
import unittest

from teammate_chat.agent_session import AgentSession
from teammate_chat.exceptions import (
    AlreadyRunningError,
    HostCommunicationError,
    NotRunningError,
    SessionCancelledError,
)
from teammate_chat.host.memory import InMemoryProcessHost
from teammate_chat.state import SessionState


class GatedStartHost(InMemoryProcessHost):
    """Memory host whose start waits until the test releases it."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()
        self.stopped: list[str] = []

    async def start(self, agent_id: str, work_directory: str, model: str | None = None) -> str:
        await self.release.wait()
        return await super().start(agent_id, work_directory, model)

    async def stop(self, run_token: str) -> bool:
        self.stopped.append(run_token)
        return await super().stop(run_token)


class BrokenHost(InMemoryProcessHost):
    """Memory host with switchable failures."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_start = False
        self.fail_stop = False
        self.fail_status = False
        self.fail_subscribe_after = -1
        self._subscribed = 0

    async def start(self, agent_id: str, work_directory: str, model: str | None = None) -> str:
        if self.fail_start:
            raise RuntimeError("spawn failed")
        return await super().start(agent_id, work_directory, model)

    async def stop(self, run_token: str) -> bool:
        if self.fail_stop:
            raise RuntimeError("stop failed")
        return await super().stop(run_token)

    async def status(self, run_token: str) -> str | None:
        if self.fail_status:
            raise RuntimeError("status failed")
        return await super().status(run_token)

    async def subscribe(self, topic, run_token, handler):  # type: ignore[no-untyped-def]
        if self._subscribed == self.fail_subscribe_after:
            raise RuntimeError("subscribe failed")
        self._subscribed += 1
        return await super().subscribe(topic, run_token, handler)


class StalledSubscribeHost(InMemoryProcessHost):
    """Memory host that hangs on the second subscription."""

    def __init__(self) -> None:
        super().__init__()
        self._subscribed = 0

    async def subscribe(self, topic, run_token, handler):  # type: ignore[no-untyped-def]
        if self._subscribed == 1:
            await asyncio.Event().wait()
        self._subscribed += 1
        return await super().subscribe(topic, run_token, handler)


class AgentSessionTests(unittest.IsolatedAsyncioTestCase):
    """Validate start, events, kill, status, and destroy."""

    def setUp(self) -> None:
        self.host = InMemoryProcessHost(echo=False)
        self.session = AgentSession(self.host, "assistant", "/work", "sonnet")

    async def test_start_subscribes_three_topics(self) -> None:
        token = await self.session.start()
        self.assertIs(self.session.state, SessionState.RUNNING)
        self.assertTrue(self.session.is_running)
        self.assertEqual(self.session.run_token, token)
        self.assertEqual(self.session.subscription_count, 3)
        self.assertEqual(self.host.bus.subscriber_count(), 3)
        run = self.host.run(token)
        assert run is not None
        self.assertEqual((run.agent_id, run.work_directory, run.model), ("assistant", "/work", "sonnet"))

    async def test_second_start_is_rejected(self) -> None:
        await self.session.start()
        with self.assertRaises(AlreadyRunningError):
            await self.session.start()
        self.assertEqual(self.session.subscription_count, 3)

    async def test_concurrent_start_is_rejected_while_starting(self) -> None:
        host = GatedStartHost()
        session = AgentSession(host, "a", "/w")
        first = asyncio.create_task(session.start())
        await asyncio.sleep(0)
        self.assertIs(session.state, SessionState.STARTING)
        with self.assertRaises(AlreadyRunningError):
            await session.start()
        host.release.set()
        await first
        self.assertTrue(session.is_running)

    async def test_output_and_error_reach_callbacks_in_order(self) -> None:
        seen: list[str] = []
        self.session.on_output(lambda text: seen.append(f"1:{text}"))
        self.session.on_output(lambda text: seen.append(f"2:{text}"))
        self.session.on_error(lambda text: seen.append(f"err:{text}"))
        token = await self.session.start()
        await self.host.emit_output(token, "hello")
        await self.host.emit_error(token, "warn")
        self.assertEqual(seen, ["1:hello", "2:hello", "err:warn"])

    async def test_raising_callback_does_not_stop_others(self) -> None:
        seen: list[str] = []

        def broken(_text: str) -> None:
            raise ValueError("bad listener")

        self.session.on_output(broken)
        self.session.on_output(seen.append)
        token = await self.session.start()
        with self.assertLogs("teammate_chat.events.observers", level="WARNING"):
            await self.host.emit_output(token, "x")
        self.assertEqual(seen, ["x"])

    async def test_removed_listener_is_not_called(self) -> None:
        seen: list[str] = []
        callback = self.session.on_output(seen.append)
        self.session.remove_output_listener(callback)
        self.session.remove_output_listener(callback)
        token = await self.session.start()
        await self.host.emit_output(token, "x")
        self.assertEqual(seen, [])

    async def test_completion_tears_down_before_callbacks(self) -> None:
        observed: list[tuple[bool, SessionState, int]] = []
        self.session.on_complete(
            lambda ok: observed.append(
                (ok, self.session.state, self.session.subscription_count)
            )
        )
        token = await self.session.start()
        await self.host.complete(token, success=False)
        self.assertEqual(observed, [(False, SessionState.IDLE, 0)])
        self.assertIsNone(self.session.run_token)
        self.assertEqual(self.host.bus.subscriber_count(), 0)

    async def test_events_after_completion_are_ignored(self) -> None:
        seen: list[str] = []
        self.session.on_output(seen.append)
        token = await self.session.start()
        await self.host.complete(token)
        await self.host.emit_output(token, "late")
        self.assertEqual(seen, [])

    async def test_send_requires_running_session(self) -> None:
        with self.assertRaises(NotRunningError):
            await self.session.send_message("hi")

    async def test_send_reaches_host(self) -> None:
        token = await self.session.start()
        await self.session.send_message("do it")
        run = self.host.run(token)
        assert run is not None
        self.assertEqual(run.inbox, ["do it"])

    async def test_send_failure_is_wrapped(self) -> None:
        token = await self.session.start()
        await self.host.stop(token)
        with self.assertRaises(HostCommunicationError):
            await self.session.send_message("lost")

    async def test_kill_idle_returns_false(self) -> None:
        self.assertFalse(await self.session.kill())

    async def test_kill_running_stops_host_run(self) -> None:
        token = await self.session.start()
        self.assertTrue(await self.session.kill())
        self.assertIs(self.session.state, SessionState.IDLE)
        self.assertEqual(self.session.subscription_count, 0)
        self.assertNotIn(token, self.host.active_runs)

    async def test_kill_failure_propagates_after_local_teardown(self) -> None:
        host = BrokenHost()
        session = AgentSession(host, "a", "/w")
        await session.start()
        host.fail_stop = True
        with self.assertRaises(HostCommunicationError):
            await session.kill()
        self.assertIs(session.state, SessionState.IDLE)
        self.assertEqual(host.bus.subscriber_count(), 0)

    async def test_start_failure_returns_to_idle(self) -> None:
        host = BrokenHost()
        host.fail_start = True
        session = AgentSession(host, "a", "/w")
        with self.assertRaises(HostCommunicationError):
            await session.start()
        self.assertIs(session.state, SessionState.IDLE)

    async def test_partial_subscriptions_are_rolled_back(self) -> None:
        host = BrokenHost()
        host.fail_subscribe_after = 2
        session = AgentSession(host, "a", "/w")
        with self.assertRaises(HostCommunicationError):
            await session.start()
        self.assertIs(session.state, SessionState.IDLE)
        self.assertEqual(host.bus.subscriber_count(), 0)
        self.assertEqual(host.active_runs, [])

    async def test_kill_during_start_cancels_it(self) -> None:
        host = GatedStartHost()
        session = AgentSession(host, "a", "/w")
        pending = asyncio.create_task(session.start())
        await asyncio.sleep(0)
        self.assertFalse(await session.kill())
        self.assertIs(session.state, SessionState.IDLE)
        host.release.set()
        with self.assertRaises(SessionCancelledError):
            await pending
        self.assertEqual(len(host.stopped), 1)
        self.assertEqual(host.bus.subscriber_count(), 0)
        self.assertIs(session.state, SessionState.IDLE)

    async def test_timed_out_start_returns_to_idle(self) -> None:
        host = GatedStartHost()
        session = AgentSession(host, "a", "/w")
        with self.assertLogs("teammate_chat.agent_session", level="WARNING") as logs:
            with self.assertRaises(asyncio.TimeoutError):
                await asyncio.wait_for(session.start(), 0.05)
        self.assertIs(session.state, SessionState.IDLE)
        self.assertTrue(any("session.start.interrupted" in line for line in logs.output))

        host.release.set()
        run_token = await session.start()
        self.assertIs(session.state, SessionState.RUNNING)
        self.assertEqual(host.active_runs, [run_token])

    async def test_timed_out_subscribe_stops_launched_run(self) -> None:
        host = StalledSubscribeHost()
        session = AgentSession(host, "a", "/w")
        with self.assertRaises(asyncio.TimeoutError):
            await asyncio.wait_for(session.start(), 0.05)
        self.assertIs(session.state, SessionState.IDLE)
        self.assertIsNone(session.run_token)
        self.assertEqual(host.active_runs, [])
        self.assertEqual(host.bus.subscriber_count(), 0)

    async def test_status(self) -> None:
        self.assertIsNone(await self.session.get_status())
        await self.session.start()
        self.assertEqual(await self.session.get_status(), "running")

    async def test_status_failure_returns_none(self) -> None:
        host = BrokenHost()
        session = AgentSession(host, "a", "/w")
        await session.start()
        host.fail_status = True
        self.assertIsNone(await session.get_status())

    async def test_destroy_clears_everything(self) -> None:
        host = BrokenHost()
        session = AgentSession(host, "a", "/w")
        seen: list[str] = []
        session.on_output(seen.append)
        await session.start()
        host.fail_stop = True
        with self.assertLogs("teammate_chat.agent_session", level="WARNING"):
            await session.destroy()
        self.assertIs(session.state, SessionState.IDLE)
        self.assertEqual(host.bus.subscriber_count(), 0)

        host.fail_stop = False
        token = await session.start()
        await host.emit_output(token, "after destroy")
        self.assertEqual(seen, [])

    async def test_session_can_restart_after_completion(self) -> None:
        token = await self.session.start()
        await self.host.complete(token)
        second = await self.session.start()
        self.assertNotEqual(token, second)
        self.assertEqual(self.session.subscription_count, 3)


if __name__ == "__main__":
    unittest.main()
