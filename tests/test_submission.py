"""Tests for the submission gate."""

from __future__ import annotations

import unittest

from teammate_chat.composer.submission import (
    SubmissionGate,
    SubmitOutcome,
    SubmitRequest,
)
from teammate_chat.exceptions import DispatchError


class SubmissionGateTests(unittest.IsolatedAsyncioTestCase):
    """Validate suppression, agent dispatch, and normal sends."""

    async def asyncSetUp(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.dispatched: list[str] = []

    async def _send(self, text: str, model_id: str) -> None:
        self.sent.append((text, model_id))

    async def _dispatch(self, text: str) -> None:
        self.dispatched.append(text)

    async def test_suppression_reasons(self) -> None:
        gate = SubmissionGate(self._send, agent_dispatch=self._dispatch)
        for request in (
            SubmitRequest(text="hi", composing=True),
            SubmitRequest(text="hi", picker_open=True),
            SubmitRequest(text="   \n"),
        ):
            self.assertIs(await gate.submit(request), SubmitOutcome.SUPPRESSED)
        gate.disabled = True
        self.assertIs(
            await gate.submit(SubmitRequest(text="hi")), SubmitOutcome.SUPPRESSED
        )
        self.assertEqual(self.sent, [])
        self.assertEqual(self.dispatched, [])
        self.assertFalse(SubmitOutcome.SUPPRESSED.clears_buffer)

    async def test_agent_mention_goes_to_dispatcher(self) -> None:
        gate = SubmissionGate(self._send, agent_dispatch=self._dispatch)
        outcome = await gate.submit(
            SubmitRequest(text="  @James please look  ", thinking_mode="ultrathink")
        )
        self.assertIs(outcome, SubmitOutcome.DISPATCHED_TO_AGENT)
        self.assertTrue(outcome.clears_buffer)
        self.assertEqual(self.dispatched, ["@James please look"])
        self.assertEqual(self.sent, [])

    async def test_dispatch_failure_is_logged_and_still_dispatched(self) -> None:
        async def failing(_text: str) -> None:
            raise DispatchError("no such agent")

        gate = SubmissionGate(self._send, agent_dispatch=failing)
        with self.assertLogs("teammate_chat.composer.submission", level="WARNING") as logs:
            outcome = await gate.submit(SubmitRequest(text="@Nobody hi"))
        self.assertIs(outcome, SubmitOutcome.DISPATCHED_TO_AGENT)
        self.assertTrue(any("submit.dispatch.failed" in line for line in logs.output))
        self.assertEqual(self.sent, [])

    async def test_mentions_are_sent_normally_without_dispatcher(self) -> None:
        gate = SubmissionGate(self._send)
        outcome = await gate.submit(SubmitRequest(text="look @img.png", model_id="opus"))
        self.assertIs(outcome, SubmitOutcome.SENT)
        self.assertEqual(self.sent, [("look @img.png", "opus")])

    async def test_depth_phrase_is_appended(self) -> None:
        gate = SubmissionGate(self._send)
        await gate.submit(SubmitRequest(text="fix bug", thinking_mode="think_hard"))
        self.assertEqual(self.sent, [("fix bug.\n\nthink hard.", "sonnet")])

    async def test_auto_mode_sends_text_unchanged(self) -> None:
        gate = SubmissionGate(self._send)
        await gate.submit(SubmitRequest(text="fix bug"))
        self.assertEqual(self.sent, [("fix bug", "sonnet")])

    async def test_send_failure_propagates(self) -> None:
        async def failing(_text: str, _model: str) -> None:
            raise RuntimeError("boom")

        gate = SubmissionGate(failing)
        with self.assertRaises(RuntimeError):
            await gate.submit(SubmitRequest(text="hello"))


if __name__ == "__main__":
    unittest.main()
