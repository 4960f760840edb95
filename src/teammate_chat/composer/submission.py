"""Submit decision: suppress, hand off to a mentioned agent, or send normally."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any

from ..catalog import DEFAULT_MODEL, DEFAULT_THINKING_MODE, apply_depth_phrase

LOGGER = logging.getLogger(__name__)

AGENT_MENTION = re.compile(r"@(\w+)")

AgentDispatch = Callable[[str], Awaitable[Any]]
NormalSend = Callable[[str, str], Awaitable[Any]]


class SubmitOutcome(str, Enum):
    SUPPRESSED = "suppressed"
    DISPATCHED_TO_AGENT = "dispatched_to_agent"
    SENT = "sent"

    @property
    def clears_buffer(self) -> bool:
        return self is not SubmitOutcome.SUPPRESSED


@dataclass(frozen=True)
class SubmitRequest:
    """Snapshot of the composer at the moment Enter was pressed."""

    text: str
    picker_open: bool = False
    composing: bool = False
    thinking_mode: str = DEFAULT_THINKING_MODE
    model_id: str = DEFAULT_MODEL


class SubmissionGate:
    """Decide what a submit request does.

    Checks run in a fixed order: suppression (IME input, open picker, empty
    text, disabled gate), then agent dispatch when the text mentions
    ``@word`` and a dispatcher is configured, then the normal send.

    A failing agent dispatch is logged and still reported as dispatched, so
    the caller clears the buffer. A failing normal send propagates.
    """

    def __init__(
        self,
        send: NormalSend,
        *,
        agent_dispatch: AgentDispatch | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            send: Coroutine called with ``(text, model_id)`` for normal sends
            agent_dispatch: Optional coroutine that receives ``@agent`` messages
        """
        self._send = send
        self._agent_dispatch = agent_dispatch
        self.disabled = False

    def suppression_reason(self, request: SubmitRequest) -> str | None:
        if request.composing:
            return "composing"
        if request.picker_open:
            return "picker_open"
        if not request.text.strip():
            return "empty"
        if self.disabled:
            return "disabled"
        return None

    async def submit(self, request: SubmitRequest) -> SubmitOutcome:
        reason = self.suppression_reason(request)
        if reason is not None:
            LOGGER.debug(
                "submit.suppressed",
                extra={"event": "submit.suppressed", "reason": reason},
            )
            return SubmitOutcome.SUPPRESSED

        text = request.text.strip()
        if self._agent_dispatch is not None and AGENT_MENTION.search(text):
            try:
                await self._agent_dispatch(text)
            except Exception as exc:  # noqa: BLE001 - dispatch failures are logged only.
                LOGGER.warning(
                    "submit.dispatch.failed",
                    extra={
                        "event": "submit.dispatch.failed",
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
            else:
                LOGGER.info(
                    "submit.dispatched",
                    extra={"event": "submit.dispatched", "length": len(text)},
                )
            return SubmitOutcome.DISPATCHED_TO_AGENT

        payload = apply_depth_phrase(text, request.thinking_mode)
        await self._send(payload, request.model_id)
        LOGGER.info(
            "submit.sent",
            extra={
                "event": "submit.sent",
                "model": request.model_id,
                "thinking_mode": request.thinking_mode,
            },
        )
        return SubmitOutcome.SENT
